"""
Job registry initialization.

Registers the AI queue handlers with the registry built at startup.
"""

import logging

from vibequeue.infra.database import Database
from vibequeue.infra.openrouter import OpenRouterClient
from vibequeue.v1.core.registries import JobRegistry
from vibequeue.v1.infra.jobs.handlers import ProfileGenerationHandler

logger = logging.getLogger(__name__)

PROFILE_GENERATION = "profile_generation"


def register_job_handlers(
    registry: JobRegistry, database: Database, openrouter: OpenRouterClient
) -> JobRegistry:
    """Register all job handlers with the job registry."""

    logger.info("Registering job handlers")

    registry.register(
        PROFILE_GENERATION, ProfileGenerationHandler(database, openrouter)
    )

    logger.info(
        "Job handlers registered", extra={"registered_handlers": registry.list()}
    )
    return registry
