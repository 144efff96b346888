"""Channel announcements sent by the phase transition scheduler.

Every message is plain Slack mrkdwn text. Phase announcements vary by the
phase being entered; the remaining builders cover reminders, forced
extensions, blocked transitions and cycle completion.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timedelta

from chapters.cycles.entity import Cycle
from chapters.cycles.phases import CyclePhase, DurationUnit
from chapters.cycles.suggestion import CycleStats, RatingStats, Suggestion
from chapters.cycles.transitions import MIN_SUGGESTIONS, BlockReason

PHASE_CHANGE_HEADER = ":rotating_light: *Automatic Book Club Phase Change*"
MEDALS = (":first_place_medal:", ":second_place_medal:", ":third_place_medal:")


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def format_deadline(deadline: datetime, unit: DurationUnit) -> str:
    """Render a deadline; minute-based cycles also show the time of day."""
    day = f"{deadline:%A, %B} {deadline.day}, {deadline.year}"
    if unit is DurationUnit.MINUTES:
        return f"{day} at {deadline:%H:%M} UTC"
    return day


def format_remaining(remaining: timedelta, unit: DurationUnit) -> str:
    """Render time left in the cycle's own unit, rounded up."""
    seconds = max(remaining.total_seconds(), 0)
    per_unit = unit.to_timedelta(1).total_seconds()
    count = max(int(-(-seconds // per_unit)), 1)
    return _plural(count, unit.value[:-1])


def _book_lines(book: Suggestion) -> list[str]:
    lines = [f"> :book: *{book.book_name}*", f"> :writing_hand: by *{book.author}*"]
    if book.link:
        lines.append(f"> :link: <{book.link}|View Book Details>")
    if book.notes:
        lines.append(f"> :memo: {book.notes}")
    return lines


def phase_announcement(
    cycle: Cycle,
    suggestions: Sequence[Suggestion] = (),
    selected_book: Suggestion | None = None,
    now: datetime | None = None,
) -> str:
    """Announce that ``cycle`` has entered its current phase.

    Args:
        cycle: Cycle snapshot after the transition.
        suggestions: The cycle's suggestions, listed when voting opens.
        selected_book: The book being read or discussed.
        now: Reference time for the deadline fallback.

    Returns:
        The announcement text.
    """
    phase = cycle.current_phase
    lines = [PHASE_CHANGE_HEADER, "", f"The book club has moved to the *{phase.label} Phase*."]

    match phase:
        case CyclePhase.PENDING:
            raise ValueError("The pending phase is never announced")
        case CyclePhase.SUGGESTION:
            lines += [
                "",
                "Share the books you would like the club to read next with "
                "`/chapters-suggest [title] by [author]`.",
            ]
        case CyclePhase.VOTING:
            lines += ["", ":books: *Books on the ballot*"]
            lines += [f"- *{s.book_name}* by {s.author}" for s in suggestions]
            lines += [
                "",
                "Rank your first, second and third choice with `/chapters-vote`.",
            ]
        case CyclePhase.READING:
            lines += [""]
            if selected_book is not None:
                lines += [":trophy: *Selected Book*", *_book_lines(selected_book)]
                lines += ["", "Happy reading!"]
            else:
                lines += [
                    ":warning: No book was selected for this cycle. "
                    "Use `/chapters-admin` to choose one.",
                ]
        case CyclePhase.DISCUSSION:
            lines += [""]
            if selected_book is not None:
                lines += [
                    f":tada: Congratulations on finishing *{selected_book.book_name}* "
                    f"by {selected_book.author}!",
                ]
            else:
                lines += [":tada: Congratulations on finishing this cycle's book!"]
            lines += [
                "Share your thoughts, favourite parts and questions about the book, "
                "and rate it with `/chapters-rate`.",
            ]

    duration = cycle.phase_duration()
    if duration is not None:
        deadline = cycle.current_phase_deadline(now)
        lines += [
            "",
            f"This phase will end in {duration} "
            f"(on *{format_deadline(deadline, duration.unit)}*).",
        ]
    return "\n".join(lines)


def rollback_notice() -> str:
    """Addendum sent when a cycle is moved back to the suggestion phase."""
    return (
        "Any previously selected book has been cleared and all votes have been "
        "reset, but existing suggestions remain."
    )


def reminder_message(cycle: Cycle, deadline: datetime, now: datetime) -> str:
    """Warn the channel that the current phase is about to end."""
    phase = cycle.current_phase
    unit = cycle.phase_durations.unit
    remaining = format_remaining(deadline - now, unit)
    lines = [
        f":hourglass_flowing_sand: *{phase.label} Phase Ending Soon*",
        "",
        f"The {phase.value} phase ends in about {remaining} "
        f"(on *{format_deadline(deadline, unit)}*).",
    ]
    match phase:
        case CyclePhase.SUGGESTION:
            lines.append("Get your last book suggestions in with `/chapters-suggest`.")
        case CyclePhase.VOTING:
            lines.append("If you have not voted yet, use `/chapters-vote` now.")
        case CyclePhase.READING:
            lines.append("Time to finish the book before the discussion starts.")
        case CyclePhase.DISCUSSION:
            lines.append("Share your last thoughts and rate the book with `/chapters-rate`.")
        case CyclePhase.PENDING:
            pass
    return "\n".join(lines)


def extension_message(cycle: Cycle, suggestion_count: int, new_deadline: datetime) -> str:
    """Explain that the suggestion phase was extended for lack of books."""
    unit = cycle.phase_durations.unit
    return "\n".join(
        [
            ":books: *Book Suggestion Phase Extended*",
            "",
            f"We need at least {MIN_SUGGESTIONS} book suggestions for ranked-choice "
            f"voting to work properly. Currently there "
            f"{'is' if suggestion_count == 1 else 'are'} only "
            f"{_plural(suggestion_count, 'suggestion')}.",
            f"The suggestion phase has been extended until "
            f"*{format_deadline(new_deadline, unit)}*.",
            "",
            "Use `/chapters-suggest [title] by [author]` to suggest more books.",
        ]
    )


def blocked_message(cycle: Cycle, target: CyclePhase, reason: BlockReason) -> str:
    """Explain why the cycle could not move to ``target``."""
    lines = [
        f":no_entry: *Could not start the {target.label} Phase*",
        "",
        reason.describe(),
    ]
    match reason:
        case BlockReason.NO_VOTES:
            lines.append("Voting stays open until at least one ballot is cast with `/chapters-vote`.")
        case BlockReason.NO_BOOK_SELECTED | BlockReason.BOOK_NOT_FOUND:
            lines.append("An admin can choose the book with `/chapters-admin`.")
        case BlockReason.INSUFFICIENT_SUGGESTIONS:
            lines.append("Use `/chapters-suggest [title] by [author]` to suggest more books.")
    lines += ["", f"The cycle stays in the {cycle.current_phase.label} Phase for now."]
    return "\n".join(lines)


def completion_message(
    cycle: Cycle,
    selected_book: Suggestion | None,
    suggestions: Sequence[Suggestion],
    stats: CycleStats,
    ratings: RatingStats,
) -> str:
    """Summarise a finished cycle.

    Args:
        cycle: The completed cycle.
        selected_book: The book the cycle read, if any.
        suggestions: Every suggestion of the cycle.
        stats: Suggestion and voter counts.
        ratings: Aggregate ratings of the selected book.

    Returns:
        The completion announcement.
    """
    lines = [
        ":tada: *Book Club Cycle Completed!*",
        "",
        f'The book club cycle "*{cycle.name}*" has been completed and archived.',
    ]

    if selected_book is not None:
        lines += ["", ":trophy: *Selected Book*", *_book_lines(selected_book)]

    if suggestions:
        ranked = sorted(suggestions, key=lambda s: s.total_points, reverse=True)
        lines += ["", ":ballot_box_with_ballot: *Voting Summary*"]
        for medal, suggestion in zip(MEDALS, ranked):
            lines.append(f"{medal} *{suggestion.book_name}* ({suggestion.total_points} pts)")
        if len(ranked) > len(MEDALS):
            lines.append(f"... and {_plural(len(ranked) - len(MEDALS), 'other book')}")

    if ratings.total_ratings:
        lines += [
            "",
            ":star: *Book Ratings*",
            f"Average: {ratings.average_rating}/5",
            f"{ratings.recommendation_percentage}% would recommend",
            f"*{_plural(ratings.total_ratings, 'member')} rated this book*",
        ]

    lines += [
        "",
        ":books: *Cycle Summary*",
        f"- {_plural(stats.total_suggestions, 'book suggestion')}",
        f"- {_plural(stats.total_voters, 'member')} voted",
        "",
        ":sparkles: *Thank you to everyone who participated!* :sparkles:",
        "To start a new book club cycle, use the `/chapters-start-cycle` command.",
    ]
    return "\n".join(lines)
