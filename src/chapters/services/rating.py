"""Ratings of the selected book during the discussion phase."""

from __future__ import annotations

from chapters.cycles.entity import Cycle
from chapters.cycles.phases import CyclePhase
from chapters.cycles.suggestion import Rating, RatingStats
from chapters.errors import CycleStateError, RatingError
from chapters.logging import get_logger
from chapters.repository import CycleRepository

logger = get_logger(__name__)

MIN_RATING = 1
MAX_RATING = 5


class RatingService:
    """Collects members' ratings and summarises them."""

    def __init__(self, repository: CycleRepository) -> None:
        self.repository = repository

    async def submit_rating(
        self,
        cycle: Cycle,
        user_id: str,
        rating: int,
        recommend: bool,
    ) -> Rating:
        """Store a member's rating of the cycle's selected book.

        Raises:
            CycleStateError: If the cycle is not in discussion or has no book.
            RatingError: If the score is out of range or the member already rated.
        """
        if not cycle.is_active or cycle.current_phase is not CyclePhase.DISCUSSION:
            raise CycleStateError("Books can only be rated during the discussion phase.")
        if cycle.selected_book_id is None:
            raise CycleStateError("No book has been selected for this cycle.")
        if not MIN_RATING <= rating <= MAX_RATING:
            raise RatingError(f"Ratings must be between {MIN_RATING} and {MAX_RATING}.")

        existing = await self.repository.get_rating_for_user(cycle.id, user_id)
        if existing is not None:
            raise RatingError("You have already rated this book.")

        stored = await self.repository.create_rating(
            cycle_id=cycle.id,
            book_id=cycle.selected_book_id,
            user_id=user_id,
            rating=rating,
            recommend=recommend,
        )
        logger.info("rating_submitted", cycle_id=str(cycle.id), user_id=user_id, rating=rating)
        return stored

    async def get_rating_stats(self, cycle: Cycle) -> RatingStats:
        """Average score, share of members recommending, and count."""
        ratings = await self.repository.list_ratings(cycle.id)
        if not ratings:
            return RatingStats()

        total = len(ratings)
        average = sum(r.rating for r in ratings) / total
        recommended = sum(1 for r in ratings if r.recommend)
        return RatingStats(
            average_rating=round(average, 1),
            recommendation_percentage=round(recommended / total * 100),
            total_ratings=total,
        )
