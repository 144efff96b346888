"""Cycle aggregate snapshots.

A ``Cycle`` is an immutable snapshot of one channel's book club cycle as it
was loaded from the repository. Operations that change a cycle go through
``CycleService`` (or the scheduler) and return a fresh snapshot; nothing
mutates a snapshot in place.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from chapters.cycles.phases import (
    CyclePhase,
    CycleStatus,
    PhaseDuration,
    PhaseDurations,
)

# Used only for display when a cycle has no usable duration at all.
DEFAULT_DEADLINE = timedelta(days=7)


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on round trips)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class PhaseTiming(BaseModel):
    """Timing bookkeeping for one occurrence of a phase.

    Attributes:
        start_date: When the phase started.
        end_date: When the phase actually ended.
        extended: Whether the deadline has been pushed back.
        extended_deadline: The pushed-back deadline, if any.
        deadline_notification_sent: Whether the pre-deadline reminder went out.
        blocked_attempts: Transition attempts refused since the deadline passed.
    """

    model_config = ConfigDict(frozen=True)

    start_date: datetime | None = None
    end_date: datetime | None = None
    extended: bool = False
    extended_deadline: datetime | None = None
    deadline_notification_sent: bool = False
    blocked_attempts: int = Field(default=0, ge=0)

    @field_validator("start_date", "end_date", "extended_deadline")
    @classmethod
    def _normalise_tz(cls, v: datetime | None) -> datetime | None:
        return ensure_utc(v)

    def to_document(self) -> dict[str, Any]:
        """Serialize for the JSON ``phase_timings`` column."""
        return self.model_dump(mode="json", exclude_defaults=True)


PhaseTimings = dict[CyclePhase, PhaseTiming]


def timings_to_document(timings: PhaseTimings) -> dict[str, Any]:
    """Serialize a timing map for persistence."""
    return {phase.value: timing.to_document() for phase, timing in timings.items()}


def timings_from_document(document: dict[str, Any] | None) -> PhaseTimings:
    """Parse a persisted timing map, ignoring unknown phase keys."""
    timings: PhaseTimings = {}
    for key, value in (document or {}).items():
        try:
            phase = CyclePhase(key)
        except ValueError:
            continue
        timings[phase] = PhaseTiming.model_validate(value or {})
    return timings


class Cycle(BaseModel):
    """Snapshot of one channel's book club cycle.

    Attributes:
        id: Cycle identifier.
        channel_id: Owning chat channel; at most one active cycle each.
        name: Display name.
        status: Active, completed or cancelled.
        current_phase: Phase the cycle is in.
        phase_durations: Configured length of each timed phase.
        phase_timings: Per-phase timing records.
        selected_book_id: Winning suggestion, once chosen.
        created_at: Creation timestamp.
    """

    model_config = ConfigDict(frozen=True)

    id: uuid.UUID
    channel_id: str
    name: str
    status: CycleStatus = CycleStatus.ACTIVE
    current_phase: CyclePhase = CyclePhase.PENDING
    phase_durations: PhaseDurations = Field(default_factory=PhaseDurations)
    phase_timings: PhaseTimings = Field(default_factory=dict)
    selected_book_id: uuid.UUID | None = None
    created_at: datetime | None = None

    @field_validator("created_at")
    @classmethod
    def _normalise_tz(cls, v: datetime | None) -> datetime | None:
        return ensure_utc(v)

    @property
    def is_active(self) -> bool:
        return self.status is CycleStatus.ACTIVE

    def timing(self, phase: CyclePhase | None = None) -> PhaseTiming:
        """Timing record for ``phase`` (default: current phase), empty if absent."""
        return self.phase_timings.get(phase or self.current_phase, PhaseTiming())

    def phase_duration(self, phase: CyclePhase | None = None) -> PhaseDuration | None:
        return self.phase_durations.for_phase(phase or self.current_phase)

    def expected_phase_end(self) -> datetime | None:
        """Deadline the scheduler uses for the current phase.

        Returns:
            The extended deadline if the phase was extended, otherwise
            ``start_date + duration``; None if either is missing.
        """
        timing = self.timing()
        if timing.extended_deadline is not None:
            return timing.extended_deadline
        duration = self.phase_duration()
        if timing.start_date is None or duration is None:
            return None
        return timing.start_date + duration.to_timedelta()

    def current_phase_deadline(self, now: datetime | None = None) -> datetime:
        """Deadline of the current phase, for display.

        Falls back step by step so it never fails on partially migrated
        data: persisted end date, then the scheduler's expected end, then
        ``anchor + duration``, then ``anchor + 7 days``. The anchor is ``now``
        when given, else ``created_at``, so repeated calls on a stored
        snapshot agree. Only an unsaved snapshot without ``now`` reads the
        clock.
        """
        timing = self.timing()
        if timing.end_date is not None:
            return timing.end_date
        expected = self.expected_phase_end()
        if expected is not None:
            return expected
        anchor = now or self.created_at or utcnow()
        duration = self.phase_duration()
        if duration is not None:
            return anchor + duration.to_timedelta()
        return anchor + DEFAULT_DEADLINE

    def with_timing(self, phase: CyclePhase, **changes: Any) -> PhaseTimings:
        """Return a copy of the timing map with ``changes`` merged into ``phase``."""
        timings = dict(self.phase_timings)
        timings[phase] = self.timing(phase).model_copy(update=changes)
        return timings
