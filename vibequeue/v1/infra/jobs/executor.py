"""
Drives a single AI queue job from claim to a terminal state.
"""

import asyncio

from vibequeue.config.logging import get_logger
from vibequeue.v1.core.exceptions import HandlerExecutionError, NoHandlerError
from vibequeue.v1.core.registries import JobHandler, JobRegistry
from vibequeue.v1.infra.jobs.models import AIQueueJob
from vibequeue.v1.infra.jobs.schemas import HandlerResult
from vibequeue.v1.infra.jobs.store import JobStore

logger = get_logger(__name__)


class JobExecutor:
    """
    Claims a job, dispatches it to its handler and records the outcome.

    Handler failures become a failed job and are never raised to the caller.
    Store failures (StoreError) are raised.
    """

    def __init__(
        self,
        store: JobStore,
        registry: JobRegistry,
        max_attempts: int,
        handler_timeout_s: float | None = None,
    ):
        self.store = store
        self.registry = registry
        self.max_attempts = max_attempts
        self.handler_timeout_s = handler_timeout_s

    async def execute(self, job: AIQueueJob) -> bool:
        """
        Run one attempt of the job.

        Returns False when the claim was lost to a concurrent caller, in which
        case nothing was written.
        """
        job_logger = logger.bind(job_id=job.id, job_type=job.type, model=job.model)

        # The claim is the first write so a crash mid-call leaves the row in
        # processing with the attempt already counted.
        if not await self.store.claim(job.id, self.max_attempts):
            job_logger.info("Job claim lost, skipping")
            return False

        handler = self.registry.lookup(job.type)
        if handler is None:
            error = NoHandlerError(job.type)
            job_logger.error("No handler registered for job type")
            await self.store.mark_failed(job.id, error.message)
            return True

        job_logger.info("Processing job started")
        try:
            result = await self._invoke(handler, job)
        except Exception as e:
            error = HandlerExecutionError(job.id, job.type, e)
            job_logger.error(
                "Processing job failed",
                error=error.message,
                exception=e.__class__.__name__,
            )
            written = await self.store.mark_failed(job.id, error.message)
        else:
            job_logger.info("Processing job completed", output_id=result.output_id)
            written = await self.store.mark_completed(job.id, result.raw_response)

        if not written:
            job_logger.warning("Job left processing state before its result was written")
        return True

    async def _invoke(self, handler: JobHandler, job: AIQueueJob) -> HandlerResult:
        call = handler.execute(job.id, job.prompt, job.model)
        if self.handler_timeout_s is None:
            result = await call
        else:
            try:
                result = await asyncio.wait_for(call, timeout=self.handler_timeout_s)
            except asyncio.TimeoutError:
                raise TimeoutError(
                    f"Handler timed out after {self.handler_timeout_s}s"
                ) from None
        # A malformed result fails the job like any other handler error
        return HandlerResult.model_validate(result)
