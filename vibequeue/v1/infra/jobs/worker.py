"""
Polling queue processor for automatically eligible AI queue jobs.
"""

import asyncio
from collections.abc import Sequence

from vibequeue.config.logging import get_logger
from vibequeue.v1.infra.jobs.executor import JobExecutor
from vibequeue.v1.infra.jobs.store import JobStore

logger = get_logger(__name__)


class QueueProcessor:
    """
    Single cooperative loop that drains eligible jobs on a fixed interval.

    Features:
    - One job at a time, oldest id first
    - Each tick drains every eligible job before sleeping again
    - Tick failures are logged and never stop the loop
    - Stop waits for the job in flight and starts no new ones
    """

    def __init__(
        self,
        store: JobStore,
        executor: JobExecutor,
        autoprocess_models: Sequence[str],
        max_attempts: int,
    ):
        self.store = store
        self.executor = executor
        self.autoprocess_models = list(autoprocess_models)
        self.max_attempts = max_attempts
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self, poll_interval_ms: int) -> None:
        """Start the polling loop on the running event loop."""
        if self.is_running:
            logger.warning("Queue processor is already running")
            return

        self._stop_event.clear()
        self._task = asyncio.create_task(
            self._run(poll_interval_ms / 1000), name="ai-queue-processor"
        )
        logger.info(
            "Queue processor started",
            poll_interval_ms=poll_interval_ms,
            autoprocess_models=self.autoprocess_models,
        )

    async def stop(self) -> None:
        """Stop polling and wait for the job in flight to finish."""
        self._stop_event.set()
        if self._task is None:
            return

        task, self._task = self._task, None
        await task
        logger.info("Queue processor stopped")

    async def _run(self, interval_s: float) -> None:
        while not self._stop_event.is_set():
            await self.tick()
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=interval_s)
            except asyncio.TimeoutError:
                pass

    async def tick(self) -> int:
        """Process eligible jobs until none remain. Returns how many were handled."""
        processed = 0
        try:
            while not self._stop_event.is_set() and await self.process_next_job():
                processed += 1
        except Exception:
            logger.exception("Error in queue processor tick", processed=processed)

        if processed:
            logger.info("Queue processor tick finished", processed=processed)
        return processed

    async def process_next_job(self) -> bool:
        """Execute the oldest eligible job. Returns False when there is none."""
        if not self.autoprocess_models:
            return False

        job = await self.store.get_next_eligible(
            self.autoprocess_models, self.max_attempts
        )
        if job is None:
            return False

        await self.executor.execute(job)
        return True
