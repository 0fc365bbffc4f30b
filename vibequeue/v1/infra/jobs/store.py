"""
SQLAlchemy-backed job store for the AI queue.

Every state change is a single UPDATE guarded by the state it expects to
find, so concurrent callers racing on one row see exactly one winner.
"""

from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from sqlalchemy import and_, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from vibequeue.infra.database import Database
from vibequeue.v1.core.exceptions import StoreError
from vibequeue.v1.infra.jobs.models import AIQueueJob, JobStatus


class JobStore:
    """Durable storage for queue rows."""

    def __init__(self, database: Database):
        self.database = database

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncIterator[AsyncSession]:
        async with self.database.SessionLocal() as session:
            try:
                yield session
            except SQLAlchemyError as e:
                await session.rollback()
                raise StoreError(
                    f"Job store {operation} failed: {e}",
                    details={"operation": operation},
                ) from e

    async def create_job(self, job_type: str, model: str, prompt: str) -> AIQueueJob:
        """Insert a new pending job."""
        async with self._session("create") as session:
            job = AIQueueJob(
                type=job_type,
                model=model,
                prompt=prompt,
                status=JobStatus.PENDING.value,
                attempts=0,
            )
            session.add(job)
            await session.commit()
            await session.refresh(job)
            return job

    async def get_job(self, job_id: int) -> AIQueueJob | None:
        """Get job by ID."""
        async with self._session("get") as session:
            result = await session.execute(select(AIQueueJob).where(AIQueueJob.id == job_id))
            return result.scalar_one_or_none()

    async def get_jobs(self, job_ids: Sequence[int]) -> list[AIQueueJob]:
        """Get the jobs with the given IDs, ordered by id. Unknown ids are skipped."""
        if not job_ids:
            return []

        async with self._session("get_many") as session:
            result = await session.execute(
                select(AIQueueJob)
                .where(AIQueueJob.id.in_(list(job_ids)))
                .order_by(AIQueueJob.id)
            )
            return list(result.scalars().all())

    async def get_next_eligible(
        self, models: Sequence[str], max_attempts: int
    ) -> AIQueueJob | None:
        """Oldest pending job under the attempt limit whose model is allow-listed."""
        if not models:
            return None

        async with self._session("select_next") as session:
            result = await session.execute(
                select(AIQueueJob)
                .where(
                    and_(
                        AIQueueJob.status == JobStatus.PENDING.value,
                        AIQueueJob.attempts < max_attempts,
                        AIQueueJob.model.in_(list(models)),
                    )
                )
                .order_by(AIQueueJob.id)
                .limit(1)
            )
            return result.scalar_one_or_none()

    async def claim(self, job_id: int, max_attempts: int) -> bool:
        """
        Move a pending job to processing and count the attempt.

        Returns False when another caller claimed the row first or the job
        is no longer eligible.
        """
        now = datetime.now(UTC)
        async with self._session("claim") as session:
            result = await session.execute(
                update(AIQueueJob)
                .where(
                    and_(
                        AIQueueJob.id == job_id,
                        AIQueueJob.status == JobStatus.PENDING.value,
                        AIQueueJob.attempts < max_attempts,
                    )
                )
                .values(
                    status=JobStatus.PROCESSING.value,
                    attempts=AIQueueJob.attempts + 1,
                    started_at=now,
                    completed_at=None,
                )
            )
            await session.commit()
            return result.rowcount == 1

    async def mark_completed(self, job_id: int, response: str) -> bool:
        """Record a successful attempt."""
        return await self._finish(
            job_id, JobStatus.COMPLETED, response=response, error=None
        )

    async def mark_failed(self, job_id: int, error: str) -> bool:
        """Record a failed attempt."""
        return await self._finish(job_id, JobStatus.FAILED, response=None, error=error)

    async def _finish(
        self,
        job_id: int,
        status: JobStatus,
        response: str | None,
        error: str | None,
    ) -> bool:
        async with self._session("finish") as session:
            result = await session.execute(
                update(AIQueueJob)
                .where(
                    and_(
                        AIQueueJob.id == job_id,
                        AIQueueJob.status == JobStatus.PROCESSING.value,
                    )
                )
                .values(
                    status=status.value,
                    response=response,
                    error=error,
                    completed_at=datetime.now(UTC),
                )
            )
            await session.commit()
            return result.rowcount == 1

    async def reset_failed(self, job_id: int, max_attempts: int) -> bool:
        """Put a failed job back to pending and clear its error."""
        async with self._session("reset_failed") as session:
            result = await session.execute(
                update(AIQueueJob)
                .where(
                    and_(
                        AIQueueJob.id == job_id,
                        AIQueueJob.status == JobStatus.FAILED.value,
                        AIQueueJob.attempts < max_attempts,
                    )
                )
                .values(status=JobStatus.PENDING.value, error=None)
            )
            await session.commit()
            return result.rowcount == 1

    async def reset_processing(self) -> int:
        """Put every processing job back to pending. Returns the row count."""
        async with self._session("reset_processing") as session:
            result = await session.execute(
                update(AIQueueJob)
                .where(AIQueueJob.status == JobStatus.PROCESSING.value)
                .values(status=JobStatus.PENDING.value)
            )
            await session.commit()
            return result.rowcount

    async def count_by_status(self) -> dict[str, int]:
        """Number of jobs in each status."""
        async with self._session("count") as session:
            result = await session.execute(
                select(AIQueueJob.status, func.count(AIQueueJob.id)).group_by(
                    AIQueueJob.status
                )
            )
            counts = {status.value: 0 for status in JobStatus}
            counts.update(dict(result.all()))
            return counts
