"""Ranked-choice voting for Chapters.

Ballots award weighted points to suggestions; the tally resolver picks the
winning suggestion from the accumulated totals.
"""

from __future__ import annotations

from chapters.voting.ballot import (
    FIRST_CHOICE_POINTS,
    SECOND_CHOICE_POINTS,
    THIRD_CHOICE_POINTS,
    Ballot,
)
from chapters.voting.tally import TallyResult, WinMethod, resolve_winner

__all__ = [
    "Ballot",
    "FIRST_CHOICE_POINTS",
    "SECOND_CHOICE_POINTS",
    "THIRD_CHOICE_POINTS",
    "TallyResult",
    "WinMethod",
    "resolve_winner",
]
