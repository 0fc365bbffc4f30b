"""Handler doubles shared by the queue tests."""

import asyncio

from vibequeue.v1.infra.jobs.schemas import HandlerResult


class EchoHandler:
    """Handler returning a fixed response."""

    def __init__(self, raw_response: str = "hi"):
        self.raw_response = raw_response
        self.calls: list[tuple[int, str, str]] = []

    async def execute(self, job_id: int, prompt: str, model: str) -> HandlerResult:
        self.calls.append((job_id, prompt, model))
        return HandlerResult(raw_response=self.raw_response, output_id=job_id)


class FailingHandler:
    """Handler that always raises."""

    def __init__(self, error: Exception | None = None):
        self.error = error or RuntimeError("boom")
        self.calls = 0

    async def execute(self, job_id: int, prompt: str, model: str) -> HandlerResult:
        self.calls += 1
        raise self.error


class RecordingHandler:
    """Handler that records start/finish order and yields in between."""

    def __init__(self, events: list[str]):
        self.events = events

    async def execute(self, job_id: int, prompt: str, model: str) -> HandlerResult:
        self.events.append(f"start {job_id}")
        await asyncio.sleep(0.01)
        self.events.append(f"end {job_id}")
        return HandlerResult(raw_response=f"done {job_id}")


class BlockingHandler:
    """Handler that waits until released."""

    def __init__(self):
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def execute(self, job_id: int, prompt: str, model: str) -> HandlerResult:
        self.started.set()
        await self.release.wait()
        return HandlerResult(raw_response="released")


class ResultHandler:
    """Handler returning an arbitrary value in place of a HandlerResult."""

    def __init__(self, result):
        self.result = result

    async def execute(self, job_id: int, prompt: str, model: str):
        return self.result
