from collections.abc import AsyncIterator
from contextlib import AsyncExitStack, asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from vibequeue.config.logging import get_logger, setup_logging
from vibequeue.config.settings import Settings, get_settings
from vibequeue.infra.database import Database
from vibequeue.infra.openrouter import OpenRouterClient
from vibequeue.v1.core.exceptions import (
    RequestContextMiddleware,
    VibeQueueException,
    general_exception_handler,
    http_exception_handler,
    request_validation_exception_handler,
    vibequeue_exception_handler,
)
from vibequeue.v1.core.registries import JobRegistry
from vibequeue.v1.healthz import router as health_router
from vibequeue.v1.infra.jobs.executor import JobExecutor
from vibequeue.v1.infra.jobs.recovery import reset_stale_jobs
from vibequeue.v1.infra.jobs.registry_init import register_job_handlers
from vibequeue.v1.infra.jobs.routes import router as ai_queue_router
from vibequeue.v1.infra.jobs.service import JobService
from vibequeue.v1.infra.jobs.store import JobStore
from vibequeue.v1.infra.jobs.worker import QueueProcessor

logger = get_logger(__name__)


def build_lifespan(settings: Settings, registry: JobRegistry):
    """Create the lifespan that wires the AI queue and runs recovery."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        async with AsyncExitStack() as cleanup:
            # Callbacks run in reverse order, so the processor stops first
            database = Database(settings)
            cleanup.push_async_callback(database.close)
            if settings.environment == "development":
                await database.create_all()

            openrouter = OpenRouterClient(settings)
            cleanup.push_async_callback(openrouter.close)
            register_job_handlers(registry, database, openrouter)

            # Freeze registry in non-development environments to prevent runtime modifications
            if settings.environment != "development":
                registry.freeze()

            store = JobStore(database)
            executor = JobExecutor(
                store,
                registry,
                max_attempts=settings.ai_queue_max_attempts,
                handler_timeout_s=settings.ai_queue_handler_timeout_s,
            )
            job_service = JobService(store, executor, settings.ai_queue_max_attempts)
            cleanup.push_async_callback(job_service.drain)
            processor = QueueProcessor(
                store,
                executor,
                autoprocess_models=settings.autoprocess_models,
                max_attempts=settings.ai_queue_max_attempts,
            )
            cleanup.push_async_callback(processor.stop)

            app.state.database = database
            app.state.job_registry = registry
            app.state.job_store = store
            app.state.job_service = job_service
            app.state.queue_processor = processor

            # Recovery must finish before the first tick
            await reset_stale_jobs(store)

            if not settings.ai_queue_autostart:
                logger.info("Queue processor autostart disabled")
            elif not settings.autoprocess_models:
                logger.info(
                    "No autoprocess models configured, queue processor not started"
                )
            else:
                processor.start(settings.ai_queue_poll_interval_ms)

            yield

    return lifespan


def create_app(
    settings: Settings | None = None, registry: JobRegistry | None = None
) -> FastAPI:
    """Create and configure the FastAPI application."""

    settings = settings or get_settings()
    registry = registry or JobRegistry()

    # Initialize structured logging
    setup_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        description="AI generation job queue for the vibeyvibe music catalogue",
        version=settings.version,
        debug=settings.debug,
        lifespan=build_lifespan(settings, registry),
        openapi_url="/v1/openapi.json" if settings.debug else None,
        docs_url="/v1/docs" if settings.debug else None,
        redoc_url="/v1/redoc" if settings.debug else None,
    )
    app.state.settings = settings

    # Add middleware
    app.add_middleware(RequestContextMiddleware)

    # Add CORS middleware for development
    if settings.debug:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    # Add exception handlers
    app.add_exception_handler(VibeQueueException, vibequeue_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(
        RequestValidationError, request_validation_exception_handler
    )
    app.add_exception_handler(Exception, general_exception_handler)

    # Include routers with /v1 prefix
    app.include_router(health_router, prefix="/v1", tags=["health"])
    app.include_router(ai_queue_router, prefix="/v1")

    return app


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "vibequeue.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
