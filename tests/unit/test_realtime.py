"""Unit tests for the WebSocket relay."""

import asyncio
import json
from datetime import datetime, timezone

import pytest

from tennisoracle.services.agent_registry import AgentRegistry
from tennisoracle.services.realtime import AGENT_STATUS_CHANNEL, RealtimeRelay, broadcast_agent_status
from tennisoracle.services.state_store import InMemoryStateStore


class FakeWebSocket:
    """Records frames sent by the relay."""

    def __init__(self, fail_sends: bool = False):
        self.accepted = False
        self.sent: list[dict] = []
        self.fail_sends = fail_sends

    async def accept(self):
        self.accepted = True

    async def send_json(self, data):
        if self.fail_sends and self.accepted and self.sent:
            raise RuntimeError("socket closed")
        self.sent.append(data)


class TestRealtimeRelay:
    """Frame handling and fan-out."""

    def setup_method(self):
        self.relay = RealtimeRelay()

    async def test_connect_sends_greeting(self):
        ws = FakeWebSocket()
        client = await self.relay.connect(ws)
        assert ws.accepted
        assert ws.sent[0] == {
            "type": "connected",
            "clientId": client.id,
            "message": "Connected to TennisOracle",
        }

    async def test_subscribe_unsubscribe_ping(self):
        ws = FakeWebSocket()
        client = await self.relay.connect(ws)

        await self.relay.handle_frame(client, json.dumps({"type": "subscribe", "channel": "matches:new"}))
        assert "matches:new" in client.subscriptions
        assert ws.sent[-1]["type"] == "subscribed"

        await self.relay.handle_frame(client, json.dumps({"type": "ping"}))
        assert ws.sent[-1] == {"type": "pong", "clientId": client.id}

        await self.relay.handle_frame(client, json.dumps({"type": "unsubscribe", "channel": "matches:new"}))
        assert client.subscriptions == set()
        assert ws.sent[-1]["type"] == "unsubscribed"

    @pytest.mark.parametrize("raw", ["not json", "[1, 2]", '{"type": "dance"}', '{"type": "subscribe"}'])
    async def test_malformed_frames_are_ignored(self, raw):
        ws = FakeWebSocket()
        client = await self.relay.connect(ws)
        await self.relay.handle_frame(client, raw)
        assert len(ws.sent) == 1
        assert client.subscriptions == set()

    async def test_broadcast_only_to_subscribers(self):
        subscribed, other = FakeWebSocket(), FakeWebSocket()
        client = await self.relay.connect(subscribed)
        await self.relay.connect(other)
        await self.relay.handle_frame(client, json.dumps({"type": "subscribe", "channel": "analysis:completed"}))

        when = datetime(2026, 10, 19, tzinfo=timezone.utc)
        delivered = await self.relay.broadcast("analysis:completed", {"matchId": 3, "at": when})

        assert delivered == 1
        assert subscribed.sent[-1] == {
            "channel": "analysis:completed",
            "data": {"matchId": 3, "at": when.isoformat()},
        }
        assert len(other.sent) == 1

    async def test_failed_send_drops_client(self):
        ws = FakeWebSocket(fail_sends=True)
        client = await self.relay.connect(ws)
        client.subscriptions.add("matches:new")

        assert await self.relay.broadcast("matches:new", {"id": 1}) == 0
        assert client.id not in self.relay.clients


async def test_status_broadcaster_publishes_registry():
    registry = AgentRegistry(InMemoryStateStore())
    await registry.initialize()
    relay = RealtimeRelay()
    ws = FakeWebSocket()
    client = await relay.connect(ws)
    client.subscriptions.add(AGENT_STATUS_CHANNEL)

    task = asyncio.create_task(broadcast_agent_status(relay, registry, interval=0.01))
    for _ in range(100):
        if len(ws.sent) > 1:
            break
        await asyncio.sleep(0.01)
    task.cancel()

    frame = ws.sent[1]
    assert frame["channel"] == AGENT_STATUS_CHANNEL
    assert len(frame["data"]) == 19
