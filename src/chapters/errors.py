"""Exception hierarchy for Chapters.

Command operations (creating cycles, suggesting books, voting, rating,
manual phase changes) raise these exceptions with a message that can be
shown to the member who issued the command. The scheduler never raises them
for a blocked transition; it reports a ``TransitionDecision`` instead.
"""

from __future__ import annotations


class ChaptersError(Exception):
    """Base class for all Chapters errors."""


class CycleNotFoundError(ChaptersError):
    """Raised when a cycle cannot be located."""

    def __init__(self, cycle_id: str | None = None, channel_id: str | None = None):
        self.cycle_id = cycle_id
        self.channel_id = channel_id
        if cycle_id:
            msg = f"Cycle {cycle_id} not found"
        elif channel_id:
            msg = f"No active book club cycle in channel {channel_id}"
        else:
            msg = "Cycle not found"
        super().__init__(msg)


class ActiveCycleExistsError(ChaptersError):
    """Raised when a channel already has an active cycle."""

    def __init__(self, channel_id: str):
        self.channel_id = channel_id
        super().__init__(
            "An active cycle already exists for this channel. Complete the "
            "current cycle before starting a new one."
        )


class CycleStateError(ChaptersError):
    """Raised when an operation is not allowed in the cycle's current state."""


class SuggestionNotFoundError(ChaptersError):
    """Raised when a suggestion (or a selected book) cannot be located."""

    def __init__(self, suggestion_id: str, message: str | None = None):
        self.suggestion_id = suggestion_id
        super().__init__(message or f"Suggestion {suggestion_id} not found")


class SuggestionError(ChaptersError):
    """Raised for an invalid book suggestion."""


class VoteError(ChaptersError):
    """Raised for an invalid or duplicate ballot."""


class RatingError(ChaptersError):
    """Raised for an invalid or duplicate rating."""


class PersistenceError(ChaptersError):
    """Raised when a write did not modify the expected record."""


class NotificationError(ChaptersError):
    """Raised when an outbound chat platform call fails.

    Attributes:
        method: Web API method that failed.
        detail: Error code or transport error message.
    """

    def __init__(self, method: str, detail: str):
        self.method = method
        self.detail = detail
        super().__init__(f"Slack API call {method} failed: {detail}")
