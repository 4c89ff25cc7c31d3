"""Reference data sync tasks.

Each task wraps one TennisDataService method and records a JobRun row.
"""

import asyncio
from datetime import datetime, timezone

import structlog

from tennisoracle.models.base import get_engine, get_session_factory
from tennisoracle.models.domain import JobRun
from tennisoracle.services.ingestion import TennisDataService
from tennisoracle.services.storage import TennisStorage
from tennisoracle.tasks import celery_app

logger = structlog.get_logger(__name__)


def _run(coro):
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


async def run_sync_job(task, job_name: str, method: str, **kwargs) -> dict:
    """
    Run ``TennisDataService.<method>`` with a JobRun audit row.

    A fresh engine is created per run so each task owns its event loop.
    Failed runs are retried with a linear backoff.
    """
    engine = get_engine()
    try:
        return await _audited_run(task, job_name, method, get_session_factory(engine), kwargs)
    finally:
        await engine.dispose()


async def _audited_run(task, job_name: str, method: str, session_factory, kwargs: dict) -> dict:
    started_at = datetime.now(timezone.utc)
    stats: dict = {}
    job_status = "running"
    error_message = None

    async with session_factory() as session:
        job_run = JobRun(job_name=job_name, started_at=started_at, status="running")
        session.add(job_run)
        await session.commit()

        try:
            async with TennisDataService(TennisStorage(session_factory)) as service:
                stats = await getattr(service, method)(**kwargs)
            job_status = "success"
            logger.info(
                "sync_task_complete",
                job=job_name,
                stats=stats,
                duration_seconds=(datetime.now(timezone.utc) - started_at).total_seconds(),
            )
        except Exception as e:
            job_status = "failed"
            error_message = str(e)
            logger.error("sync_task_failed", job=job_name, error=str(e), task_id=task.request.id)
            if task.request.retries < task.max_retries:
                raise task.retry(exc=e, countdown=60 * (task.request.retries + 1))
        finally:
            job_run.completed_at = datetime.now(timezone.utc)
            job_run.status = job_status
            job_run.error_message = error_message
            job_run.records_processed = stats.get("created", 0) + stats.get("updated", 0)
            job_run.job_metadata = stats
            await session.commit()

    return stats


@celery_app.task(bind=True, max_retries=2, soft_time_limit=300, time_limit=360)
def sync_players(self):
    """Upsert the top ranked players."""
    return _run(run_sync_job(self, "sync_players", "sync_players"))


@celery_app.task(bind=True, max_retries=2, soft_time_limit=300, time_limit=360)
def sync_tournaments(self):
    """Add newly listed tournaments."""
    return _run(run_sync_job(self, "sync_tournaments", "sync_tournaments"))


@celery_app.task(bind=True, max_retries=2, soft_time_limit=300, time_limit=360)
def sync_matches(self, tournament_id: int | None = None):
    """Create scheduled matches from the daily order of play."""
    return _run(
        run_sync_job(self, "sync_matches", "sync_matches", tournament_id=tournament_id)
    )


@celery_app.task(bind=True, max_retries=2, soft_time_limit=300, time_limit=360)
def sync_news(self):
    """Fetch general and injury news."""
    return _run(run_sync_job(self, "sync_news", "sync_news"))
