"""Cycle domain model for Chapters.

This package holds the immutable snapshots the rest of the system passes
around (cycles, suggestions, ratings), the phase and duration types, and
the partial-update markers used when persisting cycle changes.
"""

from __future__ import annotations

from chapters.cycles.entity import (
    DEFAULT_DEADLINE,
    Cycle,
    PhaseTiming,
    PhaseTimings,
    ensure_utc,
    utcnow,
)
from chapters.cycles.phases import (
    TIMED_PHASES,
    CyclePhase,
    CycleStatus,
    DurationUnit,
    PhaseDuration,
    PhaseDurations,
    reminder_window,
)
from chapters.cycles.suggestion import CycleStats, Rating, RatingStats, Suggestion
from chapters.cycles.updates import NO_CHANGE, UNSET, CycleUpdate, SetTo

__all__ = [
    # Entity
    "Cycle",
    "DEFAULT_DEADLINE",
    "PhaseTiming",
    "PhaseTimings",
    "ensure_utc",
    "utcnow",
    # Phases
    "CyclePhase",
    "CycleStatus",
    "DurationUnit",
    "PhaseDuration",
    "PhaseDurations",
    "TIMED_PHASES",
    "reminder_window",
    # Suggestions
    "CycleStats",
    "Rating",
    "RatingStats",
    "Suggestion",
    # Updates
    "CycleUpdate",
    "NO_CHANGE",
    "SetTo",
    "UNSET",
]
