"""
AI queue models.
"""

from datetime import UTC, datetime
from enum import Enum

from sqlalchemy import TIMESTAMP, CheckConstraint, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from vibequeue.infra.database import Base


class JobStatus(str, Enum):
    """Job status enumeration."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class AIQueueJob(Base):
    """
    One queued call to the generation service.

    Rows are inserted by producers as pending and are moved through
    processing to completed or failed by the queue. Rows are never deleted
    by the queue itself.
    """

    __tablename__ = "ai_queue"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    type: Mapped[str] = mapped_column(
        Text, nullable=False, comment="Handler type identifier"
    )
    model: Mapped[str] = mapped_column(
        Text, nullable=False, comment="Generation model identifier"
    )
    prompt: Mapped[str] = mapped_column(
        Text, nullable=False, comment="Prompt sent to the generation service"
    )

    # Job state
    status: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default=JobStatus.PENDING.value,
        comment="Job status: pending|processing|completed|failed",
    )
    attempts: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, comment="Number of claims made"
    )

    # Results
    response: Mapped[str | None] = mapped_column(
        Text, nullable=True, comment="Raw response text on success"
    )
    error: Mapped[str | None] = mapped_column(
        Text, nullable=True, comment="Error message on failure"
    )

    # Timestamps
    started_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True, comment="Start of the latest attempt"
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True, comment="End of the latest attempt"
    )
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'processing', 'completed', 'failed')",
            name="ai_queue_status_check",
        ),
        CheckConstraint("attempts >= 0", name="ai_queue_attempts_check"),
        Index("ix_ai_queue_status_model_id", "status", "model", "id"),
    )
