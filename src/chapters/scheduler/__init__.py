"""Phase transition scheduling for Chapters."""

from __future__ import annotations

from chapters.cycles.transitions import BlockReason, TransitionDecision
from chapters.scheduler.phase_transition import (
    PhaseTransitionScheduler,
    PollReport,
    should_notify_blocked,
)

__all__ = [
    "BlockReason",
    "PhaseTransitionScheduler",
    "PollReport",
    "TransitionDecision",
    "should_notify_blocked",
]
