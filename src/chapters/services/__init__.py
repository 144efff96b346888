"""Command-side operations on cycles, suggestions, votes and ratings."""

from __future__ import annotations

from chapters.services.cycle import CycleService, default_cycle_name
from chapters.services.rating import RatingService
from chapters.services.suggestion import SuggestionService
from chapters.services.vote import VoteService

__all__ = [
    "CycleService",
    "RatingService",
    "SuggestionService",
    "VoteService",
    "default_cycle_name",
]
