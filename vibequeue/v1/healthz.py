from datetime import UTC, datetime

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from sqlalchemy import text

from vibequeue.config.logging import get_logger
from vibequeue.config.settings import Settings
from vibequeue.infra.database import Database, get_database
from vibequeue.v1.core.exceptions import create_success_response
from vibequeue.v1.infra.jobs.schemas import QueueSummary

logger = get_logger(__name__)
router = APIRouter()


class DatabaseHealth(BaseModel):
    """Database health status."""

    connected: bool
    response_time_ms: float | None = None
    error: str | None = None


@router.get("/healthz", response_model=dict)
async def health_check(
    request: Request, database: Database = Depends(get_database)
):
    """Health check with database and queue status."""

    settings: Settings = request.app.state.settings
    timestamp = datetime.now(UTC).isoformat()

    db_health = await _check_database_health(database)

    # Queue summary failure doesn't fail overall health
    queue_summary = None
    if db_health.connected:
        try:
            queue_summary = await _queue_summary(request, settings)
        except Exception as e:
            logger.warning("Queue summary unavailable", error=str(e))

    health_data = {
        "ok": db_health.connected,
        "version": settings.version,
        "environment": settings.environment,
        "timestamp": timestamp,
        "database": db_health.model_dump(),
        "queue": queue_summary.model_dump() if queue_summary else None,
    }

    return create_success_response(data=health_data)


async def _check_database_health(database: Database) -> DatabaseHealth:
    """Check database connectivity and response time."""
    start_time = datetime.now(UTC)

    try:
        async with database.SessionLocal() as session:
            await session.execute(text("SELECT 1"))

        end_time = datetime.now(UTC)
        response_time_ms = (end_time - start_time).total_seconds() * 1000

        return DatabaseHealth(
            connected=True, response_time_ms=round(response_time_ms, 2)
        )

    except Exception as e:
        return DatabaseHealth(connected=False, error=str(e))


async def _queue_summary(request: Request, settings: Settings) -> QueueSummary:
    state = request.app.state
    return QueueSummary(
        by_status=await state.job_store.count_by_status(),
        processor_running=state.queue_processor.is_running,
        autoprocess_models=settings.autoprocess_models,
        max_attempts=settings.ai_queue_max_attempts,
    )
