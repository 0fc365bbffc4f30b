"""
Tests for the polling queue processor.
"""

import asyncio

import pytest
from sqlalchemy import text

from helpers import BlockingHandler, RecordingHandler
from vibequeue.v1.infra.jobs.executor import JobExecutor
from vibequeue.v1.infra.jobs.models import JobStatus
from vibequeue.v1.infra.jobs.recovery import reset_stale_jobs
from vibequeue.v1.infra.jobs.worker import QueueProcessor

MAX_ATTEMPTS = 3


async def wait_for_status(store, job_id: int, status: str, timeout: float = 2.0):
    """Poll the store until the job reaches `status`."""

    async def _poll():
        while (await store.get_job(job_id)).status != status:
            await asyncio.sleep(0.01)

    await asyncio.wait_for(_poll(), timeout=timeout)


@pytest.mark.asyncio
async def test_tick_completes_eligible_job(processor, store, make_job):
    job = await make_job()

    assert await processor.tick() == 1

    done = await store.get_job(job.id)
    assert done.status == JobStatus.COMPLETED.value
    assert done.response == "hi"
    assert done.attempts == 1


@pytest.mark.asyncio
async def test_tick_records_handler_failure(processor, store, make_job):
    job = await make_job(type="fail")

    await processor.tick()

    failed = await store.get_job(job.id)
    assert failed.status == JobStatus.FAILED.value
    assert failed.error == "boom"
    assert failed.attempts == 1

    # Failed jobs are left for a manual trigger
    assert await processor.tick() == 0
    assert (await store.get_job(job.id)).attempts == 1


@pytest.mark.asyncio
async def test_jobs_run_one_at_a_time_in_id_order(store, registry, make_job):
    events: list[str] = []
    registry.register("record", RecordingHandler(events))
    processor = QueueProcessor(
        store,
        JobExecutor(store, registry, max_attempts=MAX_ATTEMPTS),
        autoprocess_models=["m1"],
        max_attempts=MAX_ATTEMPTS,
    )
    first = await make_job(type="record")
    second = await make_job(type="record")

    assert await processor.tick() == 2

    assert events == [
        f"start {first.id}",
        f"end {first.id}",
        f"start {second.id}",
        f"end {second.id}",
    ]


@pytest.mark.asyncio
async def test_models_outside_allow_list_are_untouched(processor, store, make_job):
    job = await make_job(model="other")

    assert await processor.tick() == 0

    untouched = await store.get_job(job.id)
    assert untouched.status == JobStatus.PENDING.value
    assert untouched.attempts == 0


@pytest.mark.asyncio
async def test_empty_allow_list_processes_nothing(store, executor, make_job):
    processor = QueueProcessor(
        store, executor, autoprocess_models=[], max_attempts=MAX_ATTEMPTS
    )
    job = await make_job()

    assert await processor.tick() == 0
    assert (await store.get_job(job.id)).status == JobStatus.PENDING.value


@pytest.mark.asyncio
async def test_exhausted_jobs_are_not_eligible(processor, store, make_job):
    job = await make_job(attempts=MAX_ATTEMPTS)

    assert await processor.tick() == 0

    unchanged = await store.get_job(job.id)
    assert unchanged.status == JobStatus.PENDING.value
    assert unchanged.attempts == MAX_ATTEMPTS


@pytest.mark.asyncio
async def test_recovered_job_runs_again_with_attempt_counted(processor, store, make_job):
    """A job orphaned in processing is retried after recovery."""
    job = await make_job(status="processing", attempts=1)

    assert await processor.tick() == 0
    assert await reset_stale_jobs(store) == 1

    recovered = await store.get_job(job.id)
    assert recovered.status == JobStatus.PENDING.value
    assert recovered.attempts == 1

    assert await processor.tick() == 1

    done = await store.get_job(job.id)
    assert done.status == JobStatus.COMPLETED.value
    assert done.attempts == 2


@pytest.mark.asyncio
async def test_tick_logs_store_errors_and_returns(processor, database, make_job):
    await make_job()
    async with database.engine.begin() as conn:
        await conn.execute(text("DROP TABLE profiles"))
        await conn.execute(text("DROP TABLE ai_queue"))

    assert await processor.tick() == 0


@pytest.mark.asyncio
async def test_started_processor_drains_queue(processor, store, make_job):
    job = await make_job()

    processor.start(poll_interval_ms=20)
    assert processor.is_running
    try:
        await wait_for_status(store, job.id, JobStatus.COMPLETED.value)

        # Jobs enqueued later are picked up on a following tick
        later = await make_job()
        await wait_for_status(store, later.id, JobStatus.COMPLETED.value)
    finally:
        await processor.stop()

    assert not processor.is_running


@pytest.mark.asyncio
async def test_start_twice_keeps_single_loop(processor):
    processor.start(poll_interval_ms=20)
    task = processor._task
    processor.start(poll_interval_ms=20)

    assert processor._task is task
    await processor.stop()


@pytest.mark.asyncio
async def test_stop_without_start(processor):
    await processor.stop()
    assert not processor.is_running


@pytest.mark.asyncio
async def test_stop_waits_for_job_in_flight(store, registry, make_job):
    handler = BlockingHandler()
    registry.register("slow", handler)
    processor = QueueProcessor(
        store,
        JobExecutor(store, registry, max_attempts=MAX_ATTEMPTS),
        autoprocess_models=["m1"],
        max_attempts=MAX_ATTEMPTS,
    )
    in_flight = await make_job(type="slow")
    queued = await make_job()

    processor.start(poll_interval_ms=20)
    await asyncio.wait_for(handler.started.wait(), timeout=2.0)

    stopping = asyncio.create_task(processor.stop())
    await asyncio.sleep(0.05)
    assert not stopping.done()

    handler.release.set()
    await asyncio.wait_for(stopping, timeout=2.0)

    assert (await store.get_job(in_flight.id)).status == JobStatus.COMPLETED.value
    # No new job is started once stop was requested
    assert (await store.get_job(queued.id)).status == JobStatus.PENDING.value
