"""
Startup recovery for jobs orphaned by a previous crash.
"""

from vibequeue.config.logging import get_logger
from vibequeue.v1.infra.jobs.store import JobStore

logger = get_logger(__name__)


async def reset_stale_jobs(store: JobStore) -> int:
    """
    Put jobs left in processing back to pending.

    Must run before the queue processor starts: at that point no executor is
    alive, so any processing row belongs to a dead process. Attempts are
    kept, so the interrupted attempt still counts toward the limit.
    """
    reset_count = await store.reset_processing()
    if reset_count > 0:
        logger.warning("Reset stale jobs to pending", reset_count=reset_count)
    return reset_count
