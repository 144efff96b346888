"""Initial schema for Chapters.

Creates the cycles, suggestions and ratings tables. Enumerations are
stored as short strings and document-shaped fields as JSONB.

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""

from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSON_DOCUMENT = sa.JSON().with_variant(JSONB(), "postgresql")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        "cycles",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("channel_id", sa.Text(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("status", sa.String(32), nullable=False, server_default="active"),
        sa.Column("current_phase", sa.String(32), nullable=False, server_default="pending"),
        sa.Column("duration_unit", sa.String(32), nullable=False, server_default="days"),
        sa.Column("phase_durations", JSON_DOCUMENT, nullable=False),
        sa.Column("phase_timings", JSON_DOCUMENT, nullable=False),
        sa.Column("selected_book_id", sa.Uuid(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_cycles_channel_status", "cycles", ["channel_id", "status"])

    op.create_table(
        "suggestions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "cycle_id",
            sa.Uuid(),
            sa.ForeignKey("cycles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("user_id", sa.Text(), nullable=False),
        sa.Column("book_name", sa.Text(), nullable=False),
        sa.Column("author", sa.Text(), nullable=False),
        sa.Column("link", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("total_points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("voters", JSON_DOCUMENT, nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_suggestions_cycle_id", "suggestions", ["cycle_id"])

    op.create_table(
        "ratings",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "cycle_id",
            sa.Uuid(),
            sa.ForeignKey("cycles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "book_id",
            sa.Uuid(),
            sa.ForeignKey("suggestions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("user_id", sa.Text(), nullable=False),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("recommend", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("cycle_id", "user_id", name="uq_ratings_cycle_user"),
    )
    op.create_index("ix_ratings_cycle_id", "ratings", ["cycle_id"])


def downgrade() -> None:
    op.drop_index("ix_ratings_cycle_id", table_name="ratings")
    op.drop_table("ratings")
    op.drop_index("ix_suggestions_cycle_id", table_name="suggestions")
    op.drop_table("suggestions")
    op.drop_index("ix_cycles_channel_status", table_name="cycles")
    op.drop_table("cycles")
