"""
Catalogue tables written by the profile generation handler.
"""

from datetime import UTC, datetime

from sqlalchemy import TIMESTAMP, Boolean, ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from vibequeue.infra.database import Base


class Vibe(Base):
    """A descriptive attribute a profile can assign a value to."""

    __tablename__ = "vibes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    vibe_category: Mapped[str] = mapped_column(Text, nullable=False)
    archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class Profile(Base):
    """Generated vibe profile of a song, filled in by the AI queue."""

    __tablename__ = "profiles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ai_queue_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("ai_queue.id"),
        nullable=True,
        comment="Queue item that generates this profile",
    )
    value: Mapped[str | None] = mapped_column(
        Text, nullable=True, comment="JSON list of {name, category, value}"
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    )
