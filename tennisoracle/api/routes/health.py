"""Health check endpoints."""

from datetime import datetime, timezone

import redis.asyncio as redis
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from tennisoracle.api.dependencies import get_db, get_redis
from tennisoracle.config import get_settings

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: datetime


class ReadyCheck(BaseModel):
    """Individual readiness check."""

    status: str
    message: str | None = None


class ReadyResponse(BaseModel):
    """Readiness check response."""

    ready: bool
    checks: dict[str, ReadyCheck]


@router.get("/health", response_model=HealthResponse)
async def health():
    """Liveness: healthy whenever the process is serving requests."""
    return HealthResponse(status="healthy", timestamp=datetime.now(timezone.utc))


@router.get("/ready", response_model=ReadyResponse)
async def ready(
    db: AsyncSession = Depends(get_db),
    redis_client: redis.Redis = Depends(get_redis),
):
    """
    Readiness check for all dependencies.

    Checks:
    - Database connectivity
    - Redis connectivity (only when Redis backs the state store)
    - Completion API key configured
    """
    settings = get_settings()
    checks = {}
    all_ready = True

    try:
        await db.execute(text("SELECT 1"))
        checks["db"] = ReadyCheck(status="ok")
    except Exception as e:
        checks["db"] = ReadyCheck(status="error", message=str(e))
        all_ready = False

    if settings.state_backend == "redis":
        try:
            await redis_client.ping()
            checks["redis"] = ReadyCheck(status="ok")
        except Exception as e:
            checks["redis"] = ReadyCheck(status="error", message=str(e))
            all_ready = False
    else:
        checks["redis"] = ReadyCheck(status="skipped", message="In-memory state store")

    # Warning only, never blocks readiness
    if settings.completion_configured:
        checks["completion"] = ReadyCheck(status="ok", message="API key configured")
    else:
        checks["completion"] = ReadyCheck(status="warning", message="API key not configured")

    return ReadyResponse(ready=all_ready, checks=checks)
