"""Cycle model for Chapters.

Defines the cycles table. One row per book club cycle; a channel may have
any number of completed cycles but at most one active one.

Phase durations and phase timings are stored as JSON documents keyed by
phase name, mirroring the shape of the domain ``PhaseDurations`` and
``PhaseTiming`` values.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import Enum, Index, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from chapters.cycles.phases import CyclePhase, CycleStatus, DurationUnit
from chapters.database.models.base import Base, JSONDocument, TimestampMixin


def _enum_column(enum_cls: type, name: str) -> Enum:
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        values_callable=lambda members: [m.value for m in members],
        length=32,
    )


class CycleRecord(TimestampMixin, Base):
    """A book club cycle row.

    Attributes:
        id: UUID primary key (from TimestampMixin).
        channel_id: Chat channel the cycle belongs to.
        name: Display name of the cycle.
        status: active, completed or cancelled.
        current_phase: Phase the cycle is currently in.
        duration_unit: Unit shared by every phase duration (days or minutes).
        phase_durations: Per-phase length in ``duration_unit``.
        phase_timings: Per-phase timing records.
        selected_book_id: Winning suggestion, once chosen.
    """

    __tablename__ = "cycles"
    __table_args__ = (Index("ix_cycles_channel_status", "channel_id", "status"),)

    channel_id: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[CycleStatus] = mapped_column(
        _enum_column(CycleStatus, "cycle_status"),
        default=CycleStatus.ACTIVE,
        nullable=False,
    )
    current_phase: Mapped[CyclePhase] = mapped_column(
        _enum_column(CyclePhase, "cycle_phase"),
        default=CyclePhase.PENDING,
        nullable=False,
    )
    duration_unit: Mapped[DurationUnit] = mapped_column(
        _enum_column(DurationUnit, "duration_unit"),
        default=DurationUnit.DAYS,
        nullable=False,
    )
    phase_durations: Mapped[dict[str, Any]] = mapped_column(
        JSONDocument,
        nullable=False,
        default=dict,
    )
    phase_timings: Mapped[dict[str, Any]] = mapped_column(
        JSONDocument,
        nullable=False,
        default=dict,
    )
    selected_book_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        nullable=True,
    )
