from collections.abc import AsyncGenerator, Callable, Generator

import pytest
from fastapi.testclient import TestClient

from helpers import EchoHandler, FailingHandler
from vibequeue.config.settings import Settings
from vibequeue.infra.database import Database
from vibequeue.main import create_app
from vibequeue.v1.core.registries import JobRegistry
from vibequeue.v1.infra.jobs.executor import JobExecutor
from vibequeue.v1.infra.jobs.models import AIQueueJob
from vibequeue.v1.infra.jobs.service import JobService
from vibequeue.v1.infra.jobs.store import JobStore
from vibequeue.v1.infra.jobs.worker import QueueProcessor

# Import models to ensure they're registered
from vibequeue.v1.profiles import models as profile_models  # noqa: F401

MAX_ATTEMPTS = 3


@pytest.fixture
def settings(tmp_path) -> Settings:
    """Settings pointing at a throwaway SQLite database."""
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'queue.db'}",
        openrouter_models_autoprocess="m1",
        ai_queue_max_attempts=MAX_ATTEMPTS,
        ai_queue_poll_interval_ms=20,
        ai_queue_autostart=False,
        openrouter_api_key="test-key",
    )


@pytest.fixture
async def database(settings) -> AsyncGenerator[Database, None]:
    """Database with all tables created."""
    database = Database(settings)
    await database.create_all()
    yield database
    await database.close()


@pytest.fixture
def store(database) -> JobStore:
    return JobStore(database)


@pytest.fixture
def registry() -> JobRegistry:
    registry = JobRegistry()
    registry.register("echo", EchoHandler())
    registry.register("fail", FailingHandler())
    return registry


@pytest.fixture
def executor(store, registry) -> JobExecutor:
    return JobExecutor(store, registry, max_attempts=MAX_ATTEMPTS)


@pytest.fixture
def processor(store, executor) -> QueueProcessor:
    return QueueProcessor(
        store, executor, autoprocess_models=["m1"], max_attempts=MAX_ATTEMPTS
    )


@pytest.fixture
async def job_service(store, executor) -> AsyncGenerator[JobService, None]:
    service = JobService(store, executor, max_attempts=MAX_ATTEMPTS)
    yield service
    await service.drain()


@pytest.fixture
def make_job(database) -> Callable:
    """Factory inserting a queue row with arbitrary state."""

    async def _make_job(**overrides) -> AIQueueJob:
        values = {
            "type": "echo",
            "model": "m1",
            "prompt": "say hi",
            "status": "pending",
            "attempts": 0,
        }
        values.update(overrides)
        async with database.SessionLocal() as session:
            job = AIQueueJob(**values)
            session.add(job)
            await session.commit()
            await session.refresh(job)
            return job

    return _make_job


@pytest.fixture
def app(settings, registry):
    """FastAPI application wired to the test database and registry."""
    return create_app(settings, registry)


@pytest.fixture
def client(app) -> Generator[TestClient, None, None]:
    """Create a test client. Entering it runs the lifespan."""
    with TestClient(app) as test_client:
        yield test_client
