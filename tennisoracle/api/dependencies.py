"""FastAPI dependencies for TennisOracle.

Long-lived services are built once in the application lifespan and kept on
``app.state``; these accessors hand them to the routes.
"""

from collections.abc import AsyncGenerator

import redis.asyncio as redis
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from tennisoracle.config import get_settings
from tennisoracle.models.base import async_session_factory
from tennisoracle.services.agent_registry import AgentRegistry
from tennisoracle.services.orchestrator import AnalysisOrchestrator
from tennisoracle.services.realtime import RealtimeRelay
from tennisoracle.services.storage import TennisStorage


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    async with async_session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def get_redis() -> AsyncGenerator[redis.Redis, None]:
    """Get Redis client dependency."""
    settings = get_settings()
    client = redis.from_url(settings.redis_url)
    try:
        yield client
    finally:
        await client.aclose()


def get_storage(request: Request) -> TennisStorage:
    return request.app.state.storage


def get_registry(request: Request) -> AgentRegistry:
    return request.app.state.registry


def get_orchestrator(request: Request) -> AnalysisOrchestrator:
    return request.app.state.orchestrator


def get_relay(request: Request) -> RealtimeRelay:
    return request.app.state.relay
