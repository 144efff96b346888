"""Database query functions for Chapters.

This module provides async query functions for all database entities:
- Cycle CRUD operations
- Suggestion creation and ranked-choice vote bookkeeping
- Rating storage and retrieval
"""

from chapters.database.queries.cycle import (
    count_active_cycles,
    create_cycle,
    delete_cycle,
    get_active_cycle_for_channel,
    get_cycle,
    list_cycles,
    update_cycle,
)
from chapters.database.queries.rating import (
    create_rating,
    get_rating_for_user,
    list_ratings,
)
from chapters.database.queries.suggestion import (
    add_ranked_choice_points,
    count_suggestions,
    create_suggestion,
    get_suggestion,
    list_suggestions,
    list_voters,
    reset_votes_for_cycle,
)

__all__ = [
    # Cycle queries
    "create_cycle",
    "get_cycle",
    "get_active_cycle_for_channel",
    "list_cycles",
    "count_active_cycles",
    "update_cycle",
    "delete_cycle",
    # Suggestion queries
    "create_suggestion",
    "get_suggestion",
    "list_suggestions",
    "count_suggestions",
    "add_ranked_choice_points",
    "list_voters",
    "reset_votes_for_cycle",
    # Rating queries
    "create_rating",
    "get_rating_for_user",
    "list_ratings",
]
