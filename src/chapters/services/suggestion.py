"""Book suggestions during the suggestion phase."""

from __future__ import annotations

from chapters.cycles.entity import Cycle
from chapters.cycles.phases import CyclePhase
from chapters.cycles.suggestion import Suggestion
from chapters.errors import CycleStateError, SuggestionError
from chapters.logging import get_logger
from chapters.repository import CycleRepository

logger = get_logger(__name__)


class SuggestionService:
    """Records and lists book suggestions for a cycle."""

    def __init__(self, repository: CycleRepository) -> None:
        self.repository = repository

    async def suggest_book(
        self,
        cycle: Cycle,
        user_id: str,
        book_name: str,
        author: str,
        link: str | None = None,
        notes: str | None = None,
    ) -> Suggestion:
        """Add a book to the cycle's candidates.

        Args:
            cycle: Active cycle in its suggestion phase.
            user_id: Member making the suggestion.
            book_name: Title of the book.
            author: Author of the book.
            link: Optional link to the book.
            notes: Optional notes.

        Returns:
            The stored suggestion.

        Raises:
            CycleStateError: If the cycle is not accepting suggestions.
            SuggestionError: If the title or author is empty.
        """
        if not cycle.is_active or cycle.current_phase is not CyclePhase.SUGGESTION:
            raise CycleStateError("Book suggestions can only be made during the suggestion phase.")

        book_name = book_name.strip()
        author = author.strip()
        if not book_name or not author:
            raise SuggestionError("Both a book title and an author are required.")

        suggestion = await self.repository.create_suggestion(
            cycle_id=cycle.id,
            user_id=user_id,
            book_name=book_name,
            author=author,
            link=(link or "").strip() or None,
            notes=(notes or "").strip() or None,
        )
        logger.info(
            "book_suggested",
            cycle_id=str(cycle.id),
            suggestion_id=str(suggestion.id),
            user_id=user_id,
        )
        return suggestion

    async def list_suggestions(self, cycle: Cycle) -> list[Suggestion]:
        return await self.repository.list_suggestions_for_cycle(cycle.id)
