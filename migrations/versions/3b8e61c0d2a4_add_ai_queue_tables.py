"""add ai queue, vibes and profiles tables

Revision ID: 3b8e61c0d2a4
Revises:
Create Date: 2026-02-11 10:24:31.508213

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3b8e61c0d2a4"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        "ai_queue",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("type", sa.Text, nullable=False, comment="Handler type identifier"),
        sa.Column(
            "model", sa.Text, nullable=False, comment="Generation model identifier"
        ),
        sa.Column(
            "prompt",
            sa.Text,
            nullable=False,
            comment="Prompt sent to the generation service",
        ),
        sa.Column(
            "status",
            sa.Text,
            nullable=False,
            server_default="pending",
            comment="Job status: pending|processing|completed|failed",
        ),
        sa.Column(
            "attempts",
            sa.Integer,
            nullable=False,
            server_default="0",
            comment="Number of claims made",
        ),
        sa.Column(
            "response", sa.Text, nullable=True, comment="Raw response text on success"
        ),
        sa.Column("error", sa.Text, nullable=True, comment="Error message on failure"),
        sa.Column(
            "started_at",
            sa.TIMESTAMP(timezone=True),
            nullable=True,
            comment="Start of the latest attempt",
        ),
        sa.Column(
            "completed_at",
            sa.TIMESTAMP(timezone=True),
            nullable=True,
            comment="End of the latest attempt",
        ),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint(
            "status IN ('pending', 'processing', 'completed', 'failed')",
            name="ai_queue_status_check",
        ),
        sa.CheckConstraint("attempts >= 0", name="ai_queue_attempts_check"),
    )

    # Eligibility scan: status + model filter, oldest id first
    op.create_index(
        "ix_ai_queue_status_model_id", "ai_queue", ["status", "model", "id"]
    )

    op.create_table(
        "vibes",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("vibe_category", sa.Text, nullable=False),
        sa.Column(
            "archived", sa.Boolean, nullable=False, server_default=sa.false()
        ),
    )

    op.create_table(
        "profiles",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "ai_queue_id",
            sa.Integer,
            sa.ForeignKey("ai_queue.id"),
            nullable=True,
            comment="Queue item that generates this profile",
        ),
        sa.Column(
            "value",
            sa.Text,
            nullable=True,
            comment="JSON list of {name, category, value}",
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_profiles_ai_queue_id", "profiles", ["ai_queue_id"])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index("ix_profiles_ai_queue_id", table_name="profiles")
    op.drop_table("profiles")
    op.drop_table("vibes")
    op.drop_index("ix_ai_queue_status_model_id", table_name="ai_queue")
    op.drop_table("ai_queue")
