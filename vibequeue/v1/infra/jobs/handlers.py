"""
AI queue job handlers.

Handlers implement the JobHandler protocol and are registered in the job
registry at application startup.
"""

import json
import logging
import re
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import select, update

from vibequeue.infra.database import Database
from vibequeue.infra.openrouter import ChatMessage, OpenRouterClient
from vibequeue.v1.infra.jobs.schemas import HandlerResult
from vibequeue.v1.profiles.models import Profile, Vibe

logger = logging.getLogger(__name__)

_FENCE_OPEN = re.compile(r"^```(?:json)?\n?")
_FENCE_CLOSE = re.compile(r"\n?```$")


def parse_profile_response(
    raw_response: str, active_vibes: list[Vibe]
) -> list[dict[str, str]]:
    """
    Map a model answer of the form {"<vibe id>": "<value>"} onto vibes.

    The answer may be wrapped in a markdown code fence. Unknown vibe ids and
    blank or non-string values are dropped.
    """
    cleaned = raw_response.strip()
    if cleaned.startswith("```"):
        cleaned = _FENCE_CLOSE.sub("", _FENCE_OPEN.sub("", cleaned))

    parsed: dict[str, Any] = json.loads(cleaned)
    if not isinstance(parsed, dict):
        raise ValueError("Profile response must be a JSON object")

    vibes_by_id = {vibe.id: vibe for vibe in active_vibes}

    entries = []
    for vibe_id_str, value in parsed.items():
        try:
            vibe_id = int(vibe_id_str)
        except ValueError:
            continue
        vibe = vibes_by_id.get(vibe_id)
        if vibe is None or not isinstance(value, str) or not value.strip():
            continue
        entries.append(
            {"name": vibe.name, "category": vibe.vibe_category, "value": value.strip()}
        )
    return entries


class ProfileGenerationHandler:
    """
    Generates a song vibe profile.

    The profile row is linked to the queue item through profiles.ai_queue_id.
    The model answer is stored raw on the queue row and, mapped onto the
    active vibes, as JSON in profiles.value.
    """

    def __init__(self, database: Database, openrouter: OpenRouterClient):
        self.database = database
        self.openrouter = openrouter

    async def execute(self, job_id: int, prompt: str, model: str) -> HandlerResult:
        async with self.database.SessionLocal() as session:
            result = await session.execute(
                select(Profile.id).where(Profile.ai_queue_id == job_id).limit(1)
            )
            profile_id = result.scalar_one_or_none()

        if profile_id is None:
            raise LookupError(f"No profile found for queue item {job_id}")

        raw_response = await self.openrouter.chat_completion(
            [ChatMessage(role="user", content=prompt)], model=model
        )

        async with self.database.SessionLocal() as session:
            vibes_result = await session.execute(
                select(Vibe).where(Vibe.archived.is_(False))
            )
            entries = parse_profile_response(raw_response, list(vibes_result.scalars()))

            await session.execute(
                update(Profile)
                .where(Profile.id == profile_id)
                .values(value=json.dumps(entries), updated_at=datetime.now(UTC))
            )
            await session.commit()

        logger.info(
            "Profile generated",
            extra={"job_id": job_id, "profile_id": profile_id, "entries": len(entries)},
        )

        return HandlerResult(raw_response=raw_response, output_id=profile_id)
