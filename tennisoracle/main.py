"""TennisOracle FastAPI application.

Multi-agent tennis match prediction: nineteen factor agents, one synthesis
step, persisted predictions and a WebSocket relay for live status.
"""

import asyncio
import contextlib
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, WebSocket
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from tennisoracle import __version__
from tennisoracle.api.routes import (
    agents,
    head_to_head,
    health,
    matches,
    news,
    players,
    predictions,
    sync,
)
from tennisoracle.config import get_settings
from tennisoracle.models.base import async_session_factory
from tennisoracle.services.agent_registry import AgentRegistry
from tennisoracle.services.completion import CompletionClient
from tennisoracle.services.orchestrator import AnalysisOrchestrator
from tennisoracle.services.realtime import RealtimeRelay, broadcast_agent_status
from tennisoracle.services.state_store import build_state_store
from tennisoracle.services.storage import TennisStorage

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build long-lived services and start the status broadcaster."""
    logger.info("starting_tennisoracle", version=__version__)

    state_store = build_state_store(settings)
    registry = AgentRegistry(state_store)
    await registry.initialize()

    completion_client = CompletionClient()
    relay = RealtimeRelay()
    storage = TennisStorage(async_session_factory)

    app.state.state_store = state_store
    app.state.registry = registry
    app.state.completion_client = completion_client
    app.state.relay = relay
    app.state.storage = storage
    app.state.orchestrator = AnalysisOrchestrator(
        storage=storage,
        registry=registry,
        state_store=state_store,
        completion_client=completion_client,
        relay=relay,
        settings=settings,
    )

    if not settings.completion_configured:
        logger.warning("completion_api_key_missing")

    broadcaster = asyncio.create_task(
        broadcast_agent_status(relay, registry, settings.status_broadcast_interval)
    )
    yield

    logger.info("shutting_down_tennisoracle")
    broadcaster.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await broadcaster
    await completion_client.close()
    await state_store.close()


app = FastAPI(
    title="TennisOracle",
    description="Multi-agent tennis match prediction service",
    version=__version__,
    lifespan=lifespan,
)

app.include_router(health.router)
app.include_router(players.router)
app.include_router(matches.router)
app.include_router(predictions.router)
app.include_router(agents.router)
app.include_router(head_to_head.router)
app.include_router(news.router)
app.include_router(sync.router)


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """Realtime channel subscriptions."""
    await websocket.app.state.relay.serve(websocket)


# Error handlers
@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    logger.info("request_validation_failed", path=request.url.path)
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request data", "details": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(500)
async def server_error_handler(request: Request, exc):
    logger.error("server_error", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=500, content={"error": "Internal server error"})
