"""Cycle phases, statuses and typed phase durations.

A cycle moves through a fixed order of phases::

    pending -> suggestion -> voting -> reading -> discussion

Pending has no timer. Reaching the end of discussion completes the cycle
instead of starting another phase.

Durations carry their unit explicitly. A cycle stores one unit for all of
its phases, so a test-mode cycle (minutes) can never be read with
production semantics (days).
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import timedelta

from pydantic import BaseModel, ConfigDict, Field


class CyclePhase(str, enum.Enum):
    """Phases of a book club cycle."""

    PENDING = "pending"
    SUGGESTION = "suggestion"
    VOTING = "voting"
    READING = "reading"
    DISCUSSION = "discussion"

    @property
    def label(self) -> str:
        """Human-readable phase name, e.g. ``Voting``."""
        return self.value.capitalize()

    @property
    def is_timed(self) -> bool:
        """Whether the phase has a configured length."""
        return self is not CyclePhase.PENDING

    def next_phase(self) -> CyclePhase | None:
        """Return the phase that follows this one.

        Returns:
            The next phase, or None for discussion (the cycle completes).
        """
        match self:
            case CyclePhase.PENDING:
                return CyclePhase.SUGGESTION
            case CyclePhase.SUGGESTION:
                return CyclePhase.VOTING
            case CyclePhase.VOTING:
                return CyclePhase.READING
            case CyclePhase.READING:
                return CyclePhase.DISCUSSION
            case CyclePhase.DISCUSSION:
                return None


TIMED_PHASES: tuple[CyclePhase, ...] = (
    CyclePhase.SUGGESTION,
    CyclePhase.VOTING,
    CyclePhase.READING,
    CyclePhase.DISCUSSION,
)


class CycleStatus(str, enum.Enum):
    """Lifecycle status of a cycle. Only active cycles are polled."""

    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class DurationUnit(str, enum.Enum):
    """Unit in which a cycle's phase lengths are expressed."""

    DAYS = "days"
    MINUTES = "minutes"

    def to_timedelta(self, amount: int | float) -> timedelta:
        match self:
            case DurationUnit.DAYS:
                return timedelta(days=amount)
            case DurationUnit.MINUTES:
                return timedelta(minutes=amount)


@dataclass(frozen=True)
class PhaseDuration:
    """A length of time in an explicit unit.

    Attributes:
        amount: Number of units (positive).
        unit: Unit of ``amount``.
    """

    amount: int
    unit: DurationUnit

    def __post_init__(self) -> None:
        if self.amount <= 0:
            raise ValueError(f"Phase duration must be positive, got {self.amount}")

    def to_timedelta(self) -> timedelta:
        return self.unit.to_timedelta(self.amount)

    def __str__(self) -> str:
        unit = self.unit.value
        if self.amount == 1:
            unit = unit[:-1]
        return f"{self.amount} {unit}"


# Reading gets a week's notice; every other timed phase gets one unit.
READING_REMINDER_UNITS = 7
DEFAULT_REMINDER_UNITS = 1


def reminder_window(phase: CyclePhase, unit: DurationUnit) -> timedelta | None:
    """Return how long before the deadline a reminder should be sent.

    Args:
        phase: Phase whose deadline is approaching.
        unit: Duration unit of the owning cycle.

    Returns:
        The window length, or None for pending (no deadline).
    """
    match phase:
        case CyclePhase.PENDING:
            return None
        case CyclePhase.READING:
            return unit.to_timedelta(READING_REMINDER_UNITS)
        case CyclePhase.SUGGESTION | CyclePhase.VOTING | CyclePhase.DISCUSSION:
            return unit.to_timedelta(DEFAULT_REMINDER_UNITS)


class PhaseDurations(BaseModel):
    """Configured length of every timed phase of one cycle.

    Attributes:
        unit: Unit shared by every phase of the cycle.
        suggestion: Units of the suggestion phase.
        voting: Units of the voting phase.
        reading: Units of the reading phase.
        discussion: Units of the discussion phase.
    """

    model_config = ConfigDict(frozen=True)

    unit: DurationUnit = DurationUnit.DAYS
    suggestion: int = Field(default=7, gt=0)
    voting: int = Field(default=7, gt=0)
    reading: int = Field(default=30, gt=0)
    discussion: int = Field(default=7, gt=0)

    def for_phase(self, phase: CyclePhase) -> PhaseDuration | None:
        """Return the typed duration of ``phase`` (None for pending)."""
        match phase:
            case CyclePhase.PENDING:
                return None
            case CyclePhase.SUGGESTION:
                return PhaseDuration(self.suggestion, self.unit)
            case CyclePhase.VOTING:
                return PhaseDuration(self.voting, self.unit)
            case CyclePhase.READING:
                return PhaseDuration(self.reading, self.unit)
            case CyclePhase.DISCUSSION:
                return PhaseDuration(self.discussion, self.unit)

    def amounts(self) -> dict[str, int]:
        """Plain per-phase amounts, as persisted."""
        return {
            CyclePhase.SUGGESTION.value: self.suggestion,
            CyclePhase.VOTING.value: self.voting,
            CyclePhase.READING.value: self.reading,
            CyclePhase.DISCUSSION.value: self.discussion,
        }
