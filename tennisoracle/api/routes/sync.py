"""Endpoints that enqueue reference data sync jobs."""

import structlog
from fastapi import APIRouter, Query
from pydantic import BaseModel

from tennisoracle.tasks import celery_app

router = APIRouter(prefix="/api/sync", tags=["sync"])
logger = structlog.get_logger(__name__)


class SyncQueued(BaseModel):
    message: str
    task_id: str


def _enqueue(task_name: str, label: str, **kwargs) -> SyncQueued:
    result = celery_app.send_task(f"tennisoracle.tasks.sync.{task_name}", kwargs=kwargs)
    logger.info("sync_enqueued", task=task_name, task_id=result.id)
    return SyncQueued(message=f"{label} sync started", task_id=result.id)


@router.post("/players", response_model=SyncQueued, status_code=202)
async def sync_players():
    return _enqueue("sync_players", "Player")


@router.post("/tournaments", response_model=SyncQueued, status_code=202)
async def sync_tournaments():
    return _enqueue("sync_tournaments", "Tournament")


@router.post("/matches", response_model=SyncQueued, status_code=202)
async def sync_matches(
    tournament_id: int | None = Query(None, description="Limit to one tournament"),
):
    return _enqueue("sync_matches", "Match", tournament_id=tournament_id)


@router.post("/news", response_model=SyncQueued, status_code=202)
async def sync_news():
    return _enqueue("sync_news", "News")
