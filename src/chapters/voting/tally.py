"""Ranked-choice vote tally resolution.

Each ballot awards weighted points (first choice 3, second 2, third 1) to the
suggestions it ranks. The winner is picked from the accumulated totals:

1. No suggestions, or nobody scored any points: no winner.
2. A unique highest ``total_points`` wins.
3. Among suggestions tied on points, a unique highest count of distinct
   voters wins (broader support beats concentrated support).
4. Otherwise one of the remaining tied suggestions is drawn at random.

The random source is injectable so the last step can be made deterministic
in tests, and the result reports which rule decided it.
"""

from __future__ import annotations

import enum
import random
from collections.abc import Sequence

import structlog
from pydantic import BaseModel, ConfigDict

from chapters.cycles.suggestion import Suggestion

logger = structlog.get_logger(__name__)


class WinMethod(str, enum.Enum):
    """Which rule decided the winner."""

    POINTS = "points"
    VOTER_COUNT = "voter_count"
    RANDOM = "random"


class TallyResult(BaseModel):
    """Outcome of a tally that produced a winner.

    Attributes:
        winner: The winning suggestion.
        method: Rule that decided the result.
        tied: Suggestions still tied when the deciding rule was applied.
    """

    model_config = ConfigDict(frozen=True)

    winner: Suggestion
    method: WinMethod
    tied: tuple[Suggestion, ...] = ()


def resolve_winner(
    suggestions: Sequence[Suggestion],
    rng: random.Random | None = None,
) -> TallyResult | None:
    """Pick the winning suggestion from ranked-choice point totals.

    Args:
        suggestions: Every suggestion of the cycle.
        rng: Random source for the final tie-break (default: module random).

    Returns:
        The tally result, or None when there is no winner.
    """
    if not suggestions:
        return None

    top_points = max(s.total_points for s in suggestions)
    if top_points <= 0:
        return None

    leaders = [s for s in suggestions if s.total_points == top_points]
    if len(leaders) == 1:
        return TallyResult(winner=leaders[0], method=WinMethod.POINTS)

    top_voters = max(s.unique_voter_count for s in leaders)
    broadest = [s for s in leaders if s.unique_voter_count == top_voters]
    if len(broadest) == 1:
        logger.info(
            "tie_broken_by_voter_count",
            suggestion_id=str(broadest[0].id),
            points=top_points,
            voters=top_voters,
            tied_count=len(leaders),
        )
        return TallyResult(
            winner=broadest[0],
            method=WinMethod.VOTER_COUNT,
            tied=tuple(leaders),
        )

    chooser = rng if rng is not None else random
    winner = chooser.choice(broadest)
    logger.warning(
        "tie_broken_randomly",
        suggestion_id=str(winner.id),
        points=top_points,
        voters=top_voters,
        candidates=[str(s.id) for s in broadest],
    )
    return TallyResult(winner=winner, method=WinMethod.RANDOM, tied=tuple(broadest))
