"""
Job service for enqueueing, inspecting and manually processing AI queue jobs.
"""

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass

from fastapi import status

from vibequeue.config.logging import get_logger
from vibequeue.v1.core.exceptions import PreconditionError, ValidationError
from vibequeue.v1.infra.jobs.executor import JobExecutor
from vibequeue.v1.infra.jobs.models import AIQueueJob, JobStatus
from vibequeue.v1.infra.jobs.schemas import JobStatusItem, ProcessJobResponse
from vibequeue.v1.infra.jobs.store import JobStore

logger = get_logger(__name__)


@dataclass
class ProcessJobHandle:
    """Outcome of a manual trigger. `task` is set only when accepted."""

    job_id: int
    accepted: bool
    reason: str | None = None
    status_code: int | None = None
    task: asyncio.Task | None = None

    def to_response(self) -> ProcessJobResponse:
        return ProcessJobResponse(
            id=self.job_id,
            accepted=self.accepted,
            reason=self.reason,
            status=JobStatus.PROCESSING if self.accepted else None,
        )


class JobService:
    """Service for the producer, operator and UI polling paths of the queue."""

    def __init__(self, store: JobStore, executor: JobExecutor, max_attempts: int):
        self.store = store
        self.executor = executor
        self.max_attempts = max_attempts
        self._background: set[asyncio.Task] = set()

    async def enqueue_job(self, job_type: str, model: str, prompt: str) -> AIQueueJob:
        """Insert a pending job for the processor or a manual trigger to pick up."""
        blank = [
            name
            for name, value in (("type", job_type), ("model", model), ("prompt", prompt))
            if not value or not value.strip()
        ]
        if blank:
            raise ValidationError(
                f"Empty job fields: {', '.join(blank)}", details={"fields": blank}
            )

        job = await self.store.create_job(job_type, model, prompt)
        logger.info("Job enqueued", job_id=job.id, job_type=job_type, model=model)
        return job

    async def get_job(self, job_id: int) -> AIQueueJob | None:
        return await self.store.get_job(job_id)

    async def get_statuses(self, job_ids: Sequence[int]) -> list[JobStatusItem]:
        """Status and error for each known id, ordered by id."""
        jobs = await self.store.get_jobs(job_ids)
        return [JobStatusItem.model_validate(job) for job in jobs]

    def _check_preconditions(self, job_id: int, job: AIQueueJob | None) -> AIQueueJob:
        if job is None:
            raise PreconditionError(
                "Job not found",
                status_code=status.HTTP_404_NOT_FOUND,
                details={"job_id": job_id},
            )
        if job.status not in (JobStatus.PENDING.value, JobStatus.FAILED.value):
            raise PreconditionError(
                f"Job is {job.status}, cannot process",
                details={"job_id": job_id, "status": job.status},
            )
        if job.attempts >= self.max_attempts:
            raise PreconditionError(
                "Max attempts reached",
                details={"job_id": job_id, "attempts": job.attempts},
            )
        return job

    async def process_job_by_id(self, job_id: int) -> ProcessJobHandle:
        """
        Run one job now, regardless of the automatic allow-list.

        Preconditions are checked before anything is written. A failed job is
        reset to pending (error cleared) before it is handed to the executor.
        Execution continues in a background task; the returned handle carries
        that task and may be discarded. StoreError is raised to the caller.
        """
        try:
            job = self._check_preconditions(job_id, await self.store.get_job(job_id))

            if job.status == JobStatus.FAILED.value:
                if not await self.store.reset_failed(job_id, self.max_attempts):
                    raise PreconditionError(
                        "Job state changed, cannot process",
                        details={"job_id": job_id},
                    )
                job.status = JobStatus.PENDING.value
                job.error = None
        except PreconditionError as e:
            logger.info("Manual job processing rejected", job_id=job_id, reason=e.message)
            return ProcessJobHandle(
                job_id=job_id,
                accepted=False,
                reason=e.message,
                status_code=e.status_code,
            )

        task = asyncio.create_task(
            self.executor.execute(job), name=f"ai-queue-manual-{job_id}"
        )
        self._background.add(task)
        task.add_done_callback(self._on_manual_done(job_id))

        logger.info("Manual job processing accepted", job_id=job_id, job_type=job.type)
        return ProcessJobHandle(job_id=job_id, accepted=True, task=task)

    def _on_manual_done(self, job_id: int):
        def callback(task: asyncio.Task) -> None:
            self._background.discard(task)
            if task.cancelled():
                logger.warning("Manual job processing cancelled", job_id=job_id)
                return
            error = task.exception()
            if error is not None:
                logger.error(
                    "Manual job processing error",
                    job_id=job_id,
                    error=str(error),
                    exception=error.__class__.__name__,
                )

        return callback

    async def drain(self) -> None:
        """Wait for manually triggered executions still in flight."""
        if self._background:
            logger.info("Waiting for manual jobs", active_jobs=len(self._background))
            await asyncio.gather(*self._background, return_exceptions=True)
