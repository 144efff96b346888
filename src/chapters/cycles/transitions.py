"""Phase transition validation.

Deciding whether a cycle may move to another phase is a pure function of
the cycle snapshot and its suggestions. A refused transition is a normal
outcome, reported as a ``TransitionDecision`` with a ``BlockReason``
rather than raised, so the scheduler can announce it and retry on the next
poll while command handlers turn it into an error for the member.

Rules:

- Leaving the suggestion phase needs at least ``MIN_SUGGESTIONS`` books.
- Entering reading or discussion needs a selected book. Coming from voting,
  the winner is picked from the tally when none is selected yet.
- Every other move is allowed.
"""

from __future__ import annotations

import enum
import random
from collections.abc import Sequence
from dataclasses import dataclass

from chapters.cycles.entity import Cycle
from chapters.cycles.phases import CyclePhase
from chapters.cycles.suggestion import Suggestion
from chapters.voting.tally import TallyResult, resolve_winner

MIN_SUGGESTIONS = 3


class BlockReason(str, enum.Enum):
    """Why a transition was refused."""

    INSUFFICIENT_SUGGESTIONS = "insufficient_suggestions"
    NO_VOTES = "no_votes"
    NO_BOOK_SELECTED = "no_book_selected"
    BOOK_NOT_FOUND = "book_not_found"

    def describe(self) -> str:
        """Explanation suitable for showing to members."""
        match self:
            case BlockReason.INSUFFICIENT_SUGGESTIONS:
                return (
                    f"At least {MIN_SUGGESTIONS} book suggestions are needed "
                    "for ranked-choice voting to work."
                )
            case BlockReason.NO_VOTES:
                return "No votes have been cast, so a book could not be selected."
            case BlockReason.NO_BOOK_SELECTED:
                return "No book has been selected for this cycle."
            case BlockReason.BOOK_NOT_FOUND:
                return "The selected book could not be found."


@dataclass(frozen=True)
class TransitionDecision:
    """Outcome of validating a move out of the current phase.

    Attributes:
        target: Destination phase, or None when discussion ends the cycle.
        reason: Why the move is refused; None when it is allowed.
        selected_book: The book the cycle will carry after the move.
        tally: Tally result when the book was picked automatically.
    """

    target: CyclePhase | None
    reason: BlockReason | None = None
    selected_book: Suggestion | None = None
    tally: TallyResult | None = None

    @property
    def allowed(self) -> bool:
        return self.reason is None

    @property
    def auto_selected(self) -> bool:
        return self.tally is not None


def decide_transition(
    cycle: Cycle,
    target: CyclePhase | None,
    suggestions: Sequence[Suggestion],
    rng: random.Random | None = None,
) -> TransitionDecision:
    """Validate moving ``cycle`` from its current phase to ``target``.

    Args:
        cycle: Snapshot of the cycle.
        target: Destination phase; None means completing the cycle.
        suggestions: Every suggestion of the cycle.
        rng: Random source for the tally's last-resort tie-break.

    Returns:
        The decision, allowed or blocked.
    """
    if target is None:
        return TransitionDecision(target=None)

    leaving_suggestion = (
        cycle.current_phase is CyclePhase.SUGGESTION and target is not CyclePhase.SUGGESTION
    )
    if leaving_suggestion and len(suggestions) < MIN_SUGGESTIONS:
        return TransitionDecision(target=target, reason=BlockReason.INSUFFICIENT_SUGGESTIONS)

    if target not in (CyclePhase.READING, CyclePhase.DISCUSSION):
        return TransitionDecision(target=target)

    if cycle.selected_book_id is not None:
        book = next((s for s in suggestions if s.id == cycle.selected_book_id), None)
        if book is None:
            return TransitionDecision(target=target, reason=BlockReason.BOOK_NOT_FOUND)
        return TransitionDecision(target=target, selected_book=book)

    if cycle.current_phase is not CyclePhase.VOTING:
        return TransitionDecision(target=target, reason=BlockReason.NO_BOOK_SELECTED)

    tally = resolve_winner(suggestions, rng=rng)
    if tally is None:
        return TransitionDecision(target=target, reason=BlockReason.NO_VOTES)
    return TransitionDecision(target=target, selected_book=tally.winner, tally=tally)
