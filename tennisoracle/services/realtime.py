"""WebSocket relay with per-client channel subscriptions.

Client frames (JSON):
    {"type": "subscribe", "channel": "analysis:completed"}
    {"type": "unsubscribe", "channel": "analysis:completed"}
    {"type": "ping"}

Server frames:
    {"type": "connected", "clientId": ..., "message": ...}   on accept
    {"type": "subscribed" | "unsubscribed", "channel": ..., "clientId": ...}
    {"type": "pong", "clientId": ...}
    {"channel": ..., "data": ...}                             broadcasts
"""

import asyncio
import json
import secrets
from dataclasses import dataclass, field
from typing import Any

import structlog
from fastapi import WebSocket, WebSocketDisconnect
from fastapi.encoders import jsonable_encoder

logger = structlog.get_logger(__name__)

AGENT_STATUS_CHANNEL = "agents:status"


@dataclass
class RelayClient:
    id: str
    websocket: WebSocket
    subscriptions: set[str] = field(default_factory=set)


class RealtimeRelay:
    """Tracks connected clients and fans out channel events to subscribers."""

    def __init__(self):
        self.clients: dict[str, RelayClient] = {}

    async def connect(self, websocket: WebSocket) -> RelayClient:
        await websocket.accept()
        client = RelayClient(id=secrets.token_hex(4), websocket=websocket)
        self.clients[client.id] = client
        logger.info("ws_client_connected", client_id=client.id)
        await websocket.send_json(
            {
                "type": "connected",
                "clientId": client.id,
                "message": "Connected to TennisOracle",
            }
        )
        return client

    def disconnect(self, client_id: str) -> None:
        if self.clients.pop(client_id, None) is not None:
            logger.info("ws_client_disconnected", client_id=client_id)

    async def handle_frame(self, client: RelayClient, raw: str) -> None:
        """Apply one client frame. Malformed or unknown frames are logged and ignored."""
        try:
            message = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("ws_invalid_frame", client_id=client.id)
            return
        if not isinstance(message, dict):
            logger.warning("ws_invalid_frame", client_id=client.id)
            return

        frame_type = message.get("type")
        channel = message.get("channel")
        if frame_type == "subscribe" and isinstance(channel, str):
            client.subscriptions.add(channel)
            await client.websocket.send_json(
                {"type": "subscribed", "channel": channel, "clientId": client.id}
            )
        elif frame_type == "unsubscribe" and isinstance(channel, str):
            client.subscriptions.discard(channel)
            await client.websocket.send_json(
                {"type": "unsubscribed", "channel": channel, "clientId": client.id}
            )
        elif frame_type == "ping":
            await client.websocket.send_json({"type": "pong", "clientId": client.id})
        else:
            logger.debug("ws_unknown_frame", client_id=client.id, frame_type=frame_type)

    async def broadcast(self, channel: str, data: Any) -> int:
        """Send ``{channel, data}`` to every subscriber. Returns the delivery count."""
        payload = {"channel": channel, "data": jsonable_encoder(data)}
        delivered = 0
        for client in list(self.clients.values()):
            if channel not in client.subscriptions:
                continue
            try:
                await client.websocket.send_json(payload)
                delivered += 1
            except Exception as e:
                logger.warning(
                    "ws_send_failed", client_id=client.id, channel=channel, error=str(e)
                )
                self.disconnect(client.id)
        return delivered

    async def serve(self, websocket: WebSocket) -> None:
        """Run one client connection until it closes."""
        client = await self.connect(websocket)
        try:
            while True:
                raw = await websocket.receive_text()
                await self.handle_frame(client, raw)
        except WebSocketDisconnect:
            pass
        finally:
            self.disconnect(client.id)


async def broadcast_agent_status(relay: RealtimeRelay, registry, interval: float) -> None:
    """Publish the registry snapshot on ``agents:status`` every ``interval`` seconds."""
    while True:
        await asyncio.sleep(interval)
        try:
            statuses = await registry.statuses()
            await relay.broadcast(AGENT_STATUS_CHANNEL, [s.to_dict() for s in statuses])
        except Exception as e:
            logger.error("agent_status_broadcast_failed", error=str(e))
