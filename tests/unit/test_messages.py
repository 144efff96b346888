"""Unit tests for scheduler channel messages."""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from chapters.cycles.entity import Cycle, PhaseTiming
from chapters.cycles.phases import CyclePhase, DurationUnit, PhaseDurations
from chapters.cycles.suggestion import CycleStats, RatingStats, Suggestion
from chapters.cycles.transitions import BlockReason
from chapters.scheduler import messages

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)
CYCLE_ID = uuid.uuid4()


def make_cycle(phase: CyclePhase, unit: DurationUnit = DurationUnit.DAYS) -> Cycle:
    return Cycle(
        id=CYCLE_ID,
        channel_id="C001",
        name="March 2026",
        current_phase=phase,
        phase_durations=PhaseDurations(unit=unit),
        phase_timings={phase: PhaseTiming(start_date=NOW)} if phase.is_timed else {},
    )


def make_book(name: str, points: int = 0, **kwargs: object) -> Suggestion:
    return Suggestion(
        id=uuid.uuid4(),
        cycle_id=CYCLE_ID,
        user_id="U1",
        book_name=name,
        author="Susanna Clarke",
        total_points=points,
        **kwargs,
    )


class TestFormatting:
    def test_deadline_in_days(self) -> None:
        assert messages.format_deadline(NOW, DurationUnit.DAYS) == "Monday, March 2, 2026"

    def test_deadline_in_minutes_shows_time(self) -> None:
        assert (
            messages.format_deadline(NOW, DurationUnit.MINUTES)
            == "Monday, March 2, 2026 at 12:00 UTC"
        )

    def test_remaining_rounds_up(self) -> None:
        assert messages.format_remaining(timedelta(hours=23), DurationUnit.DAYS) == "1 day"
        assert messages.format_remaining(timedelta(seconds=90), DurationUnit.MINUTES) == "2 minutes"


class TestPhaseAnnouncement:
    """Test per-phase announcements."""

    def test_voting_lists_ballot(self) -> None:
        text = messages.phase_announcement(
            make_cycle(CyclePhase.VOTING), suggestions=[make_book("Piranesi")], now=NOW
        )

        assert text.startswith(messages.PHASE_CHANGE_HEADER)
        assert "The book club has moved to the *Voting Phase*." in text
        assert "- *Piranesi* by Susanna Clarke" in text
        assert text.endswith("This phase will end in 7 days (on *Monday, March 9, 2026*).")

    def test_reading_with_book(self) -> None:
        book = make_book("Piranesi", link="https://example.org/piranesi", notes="Short")

        text = messages.phase_announcement(
            make_cycle(CyclePhase.READING), selected_book=book, now=NOW
        )

        assert ":trophy: *Selected Book*" in text
        assert "> :link: <https://example.org/piranesi|View Book Details>" in text
        assert "> :memo: Short" in text
        assert "30 days" in text

    def test_reading_without_book_warns(self) -> None:
        text = messages.phase_announcement(make_cycle(CyclePhase.READING), now=NOW)
        assert ":warning: No book was selected" in text

    def test_discussion_congratulates(self) -> None:
        text = messages.phase_announcement(
            make_cycle(CyclePhase.DISCUSSION), selected_book=make_book("Piranesi"), now=NOW
        )
        assert ":tada: Congratulations on finishing *Piranesi* by Susanna Clarke!" in text

    def test_minutes_cycle_shows_time_of_day(self) -> None:
        text = messages.phase_announcement(
            make_cycle(CyclePhase.SUGGESTION, DurationUnit.MINUTES), now=NOW
        )
        assert "This phase will end in 7 minutes (on *Monday, March 2, 2026 at 12:07 UTC*)." in text

    def test_pending_is_never_announced(self) -> None:
        with pytest.raises(ValueError):
            messages.phase_announcement(make_cycle(CyclePhase.PENDING))


class TestOtherMessages:
    def test_reminder(self) -> None:
        deadline = NOW + timedelta(days=7)
        text = messages.reminder_message(
            make_cycle(CyclePhase.VOTING), deadline, deadline - timedelta(hours=20)
        )

        assert text.startswith(":hourglass_flowing_sand: *Voting Phase Ending Soon*")
        assert "about 1 day" in text
        assert "/chapters-vote" in text

    def test_extension(self) -> None:
        text = messages.extension_message(
            make_cycle(CyclePhase.SUGGESTION), 1, NOW + timedelta(days=14)
        )

        assert text.startswith(":books: *Book Suggestion Phase Extended*")
        assert "Currently there is only 1 suggestion." in text
        assert "*Monday, March 16, 2026*" in text

    def test_blocked(self) -> None:
        text = messages.blocked_message(
            make_cycle(CyclePhase.VOTING), CyclePhase.READING, BlockReason.NO_VOTES
        )

        assert text.startswith(":no_entry: *Could not start the Reading Phase*")
        assert BlockReason.NO_VOTES.describe() in text
        assert "stays in the Voting Phase" in text

    def test_completion_summary(self) -> None:
        books = [make_book(name, points) for name, points in (("A", 9), ("B", 12), ("C", 3), ("D", 1))]

        text = messages.completion_message(
            make_cycle(CyclePhase.DISCUSSION),
            books[1],
            books,
            CycleStats(total_suggestions=4, total_voters=5),
            RatingStats(average_rating=4.3, recommendation_percentage=80, total_ratings=5),
        )

        assert 'The book club cycle "*March 2026*" has been completed and archived.' in text
        assert ":first_place_medal: *B* (12 pts)" in text
        assert ":third_place_medal: *C* (3 pts)" in text
        assert "... and 1 other book" in text
        assert "Average: 4.3/5" in text
        assert "- 4 book suggestions" in text
        assert "- 5 members voted" in text

    def test_completion_without_ratings(self) -> None:
        text = messages.completion_message(
            make_cycle(CyclePhase.DISCUSSION), None, [], CycleStats(), RatingStats()
        )

        assert "Book Ratings" not in text
        assert "Selected Book" not in text
        assert "- 0 book suggestions" in text

    def test_rollback_notice(self) -> None:
        assert "all votes have been reset" in messages.rollback_notice()
