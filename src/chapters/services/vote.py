"""Ranked-choice ballots during the voting phase."""

from __future__ import annotations

from chapters.cycles.entity import Cycle
from chapters.cycles.phases import CyclePhase
from chapters.errors import CycleStateError, SuggestionNotFoundError, VoteError
from chapters.logging import get_logger
from chapters.repository import CycleRepository
from chapters.voting.ballot import Ballot

logger = get_logger(__name__)


class VoteService:
    """Applies members' ballots to a cycle's suggestions."""

    def __init__(self, repository: CycleRepository) -> None:
        self.repository = repository

    async def has_user_voted(self, cycle: Cycle, user_id: str) -> bool:
        """Whether ``user_id`` appears among any suggestion's voters."""
        return user_id in await self.repository.list_voters(cycle.id)

    async def submit_vote(self, cycle: Cycle, user_id: str, ballot: Ballot) -> None:
        """Record one member's ranked ballot.

        Each choice adds its weight to the suggestion's points and registers
        the member as one of its voters.

        Args:
            cycle: Active cycle in its voting phase.
            user_id: Member casting the ballot.
            ballot: First, second and third choice.

        Raises:
            CycleStateError: If the cycle is not accepting votes.
            VoteError: If the member has already voted in this cycle.
            SuggestionNotFoundError: If a choice is not one of the cycle's
                suggestions.
        """
        if not cycle.is_active or cycle.current_phase is not CyclePhase.VOTING:
            raise CycleStateError("Votes can only be cast during the voting phase.")

        suggestions = await self.repository.list_suggestions_for_cycle(cycle.id)
        if any(user_id in s.voters for s in suggestions):
            raise VoteError("You have already voted in this cycle.")

        known = {s.id for s in suggestions}
        for suggestion_id, _points in ballot.weighted_choices():
            if suggestion_id not in known:
                raise SuggestionNotFoundError(
                    str(suggestion_id), "One of the selected books is not part of this cycle."
                )

        updated = await self.repository.add_ranked_choice_points(
            cycle.id, user_id, ballot.weighted_choices()
        )
        logger.info(
            "vote_submitted",
            cycle_id=str(cycle.id),
            user_id=user_id,
            suggestions_updated=updated,
        )
