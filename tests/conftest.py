"""Shared test doubles for Chapters tests.

Provides an in-memory repository, a recording notifier and a controllable
clock so the services and the scheduler can be exercised without a
database or a Slack workspace.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from datetime import datetime, timedelta, timezone

import pytest

from chapters.config import ChaptersConfig, PhaseConfig, SchedulerConfig
from chapters.cycles.entity import Cycle, PhaseTiming
from chapters.cycles.phases import CyclePhase, CycleStatus, PhaseDurations
from chapters.cycles.suggestion import Rating, Suggestion
from chapters.cycles.updates import CycleUpdate
from chapters.errors import NotificationError

START = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakeNotifier:
    """Records posted messages and serves a configurable member directory."""

    def __init__(self) -> None:
        self.messages: list[tuple[str, str]] = []
        self.members: dict[str, list[str]] = {}
        self.bots: set[str] = set()
        self.fail_posts = False
        self.fail_directory = False
        self.directory_lookups: list[str] = []

    async def post_message(self, channel_id: str, text: str) -> None:
        if self.fail_posts:
            raise NotificationError("chat.postMessage", "channel_not_found")
        self.messages.append((channel_id, text))

    async def list_group_members(self, channel_id: str) -> list[str]:
        self.directory_lookups.append(channel_id)
        if self.fail_directory:
            raise NotificationError("conversations.members", "ratelimited")
        return list(self.members.get(channel_id, []))

    async def is_bot_user(self, user_id: str) -> bool:
        return user_id in self.bots

    def texts(self, channel_id: str | None = None) -> list[str]:
        return [text for channel, text in self.messages if channel_id in (None, channel)]


class InMemoryCycleRepository:
    """Dictionary-backed implementation of the repository contract."""

    def __init__(self, clock: FakeClock) -> None:
        self.clock = clock
        self.cycles: dict[uuid.UUID, Cycle] = {}
        self.suggestions: dict[uuid.UUID, Suggestion] = {}
        self.ratings: dict[uuid.UUID, Rating] = {}
        self.updates: list[tuple[uuid.UUID, CycleUpdate]] = []
        self.fail_updates_for: set[uuid.UUID] = set()

    def add_cycle(
        self,
        channel_id: str = "C001",
        phase: CyclePhase = CyclePhase.SUGGESTION,
        started: datetime | None = None,
        durations: PhaseDurations | None = None,
        selected_book_id: uuid.UUID | None = None,
        **timing: object,
    ) -> Cycle:
        """Store a cycle directly in ``phase``, started at ``started``."""
        timings = {}
        if phase.is_timed and (started is not None or timing):
            timings[phase] = PhaseTiming(start_date=started, **timing)
        cycle = Cycle(
            id=uuid.uuid4(),
            channel_id=channel_id,
            name="March 2026",
            current_phase=phase,
            phase_durations=durations or PhaseDurations(),
            phase_timings=timings,
            selected_book_id=selected_book_id,
            created_at=self.clock(),
        )
        self.cycles[cycle.id] = cycle
        return cycle

    def add_suggestion(
        self,
        cycle: Cycle,
        book_name: str,
        total_points: int = 0,
        voters: Sequence[str] = (),
        author: str = "Anon",
    ) -> Suggestion:
        suggestion = Suggestion(
            id=uuid.uuid4(),
            cycle_id=cycle.id,
            user_id="U000",
            book_name=book_name,
            author=author,
            total_points=total_points,
            voters=tuple(voters),
            created_at=self.clock(),
        )
        self.suggestions[suggestion.id] = suggestion
        return suggestion

    async def list_active_cycles(self) -> list[Cycle]:
        return [c for c in self.cycles.values() if c.status is CycleStatus.ACTIVE]

    async def get_cycle_by_id(self, cycle_id: uuid.UUID) -> Cycle | None:
        return self.cycles.get(cycle_id)

    async def get_active_cycle_for_channel(self, channel_id: str) -> Cycle | None:
        for cycle in self.cycles.values():
            if cycle.channel_id == channel_id and cycle.status is CycleStatus.ACTIVE:
                return cycle
        return None

    async def create_cycle(
        self,
        channel_id: str,
        name: str,
        phase_durations: PhaseDurations,
    ) -> Cycle:
        cycle = Cycle(
            id=uuid.uuid4(),
            channel_id=channel_id,
            name=name,
            phase_durations=phase_durations,
            created_at=self.clock(),
        )
        self.cycles[cycle.id] = cycle
        return cycle

    async def update_cycle(self, cycle_id: uuid.UUID, update: CycleUpdate) -> int:
        changes = update.changed_fields()
        if not changes:
            raise ValueError("Cycle update must change at least one field")
        if cycle_id in self.fail_updates_for:
            raise RuntimeError("database unavailable")
        cycle = self.cycles.get(cycle_id)
        if cycle is None:
            return 0
        self.updates.append((cycle_id, update))
        self.cycles[cycle_id] = cycle.model_copy(update=changes)
        return 1

    async def delete_cycle(self, cycle_id: uuid.UUID) -> bool:
        if self.cycles.pop(cycle_id, None) is None:
            return False
        for key in [k for k, s in self.suggestions.items() if s.cycle_id == cycle_id]:
            del self.suggestions[key]
        for key in [k for k, r in self.ratings.items() if r.cycle_id == cycle_id]:
            del self.ratings[key]
        return True

    async def list_suggestions_for_cycle(self, cycle_id: uuid.UUID) -> list[Suggestion]:
        return [s for s in self.suggestions.values() if s.cycle_id == cycle_id]

    async def get_suggestion_by_id(self, suggestion_id: uuid.UUID) -> Suggestion | None:
        return self.suggestions.get(suggestion_id)

    async def count_suggestions(self, cycle_id: uuid.UUID) -> int:
        return len(await self.list_suggestions_for_cycle(cycle_id))

    async def list_voters(self, cycle_id: uuid.UUID) -> set[str]:
        voters: set[str] = set()
        for suggestion in await self.list_suggestions_for_cycle(cycle_id):
            voters.update(suggestion.voters)
        return voters

    async def create_suggestion(
        self,
        cycle_id: uuid.UUID,
        user_id: str,
        book_name: str,
        author: str,
        link: str | None = None,
        notes: str | None = None,
    ) -> Suggestion:
        suggestion = Suggestion(
            id=uuid.uuid4(),
            cycle_id=cycle_id,
            user_id=user_id,
            book_name=book_name,
            author=author,
            link=link,
            notes=notes,
            created_at=self.clock(),
        )
        self.suggestions[suggestion.id] = suggestion
        return suggestion

    async def add_ranked_choice_points(
        self,
        cycle_id: uuid.UUID,
        user_id: str,
        weighted_choices: Sequence[tuple[uuid.UUID, int]],
    ) -> int:
        updated = 0
        for suggestion_id, points in weighted_choices:
            suggestion = self.suggestions.get(suggestion_id)
            if suggestion is None or suggestion.cycle_id != cycle_id:
                continue
            voters = suggestion.voters
            if user_id not in voters:
                voters = (*voters, user_id)
            self.suggestions[suggestion_id] = suggestion.model_copy(
                update={"total_points": suggestion.total_points + points, "voters": voters}
            )
            updated += 1
        return updated

    async def reset_suggestion_votes(self, cycle_id: uuid.UUID) -> int:
        reset = 0
        for key, suggestion in list(self.suggestions.items()):
            if suggestion.cycle_id == cycle_id:
                self.suggestions[key] = suggestion.model_copy(
                    update={"total_points": 0, "voters": ()}
                )
                reset += 1
        return reset

    async def create_rating(
        self,
        cycle_id: uuid.UUID,
        book_id: uuid.UUID,
        user_id: str,
        rating: int,
        recommend: bool,
    ) -> Rating:
        stored = Rating(
            id=uuid.uuid4(),
            cycle_id=cycle_id,
            book_id=book_id,
            user_id=user_id,
            rating=rating,
            recommend=recommend,
            created_at=self.clock(),
        )
        self.ratings[stored.id] = stored
        return stored

    async def get_rating_for_user(self, cycle_id: uuid.UUID, user_id: str) -> Rating | None:
        for rating in self.ratings.values():
            if rating.cycle_id == cycle_id and rating.user_id == user_id:
                return rating
        return None

    async def list_ratings(self, cycle_id: uuid.UUID) -> list[Rating]:
        return [r for r in self.ratings.values() if r.cycle_id == cycle_id]


@pytest.fixture
def clock() -> FakeClock:
    """Clock frozen at a fixed Monday noon UTC."""
    return FakeClock()


@pytest.fixture
def repository(clock: FakeClock) -> InMemoryCycleRepository:
    """Empty in-memory repository sharing the test clock."""
    return InMemoryCycleRepository(clock)


@pytest.fixture
def notifier() -> FakeNotifier:
    """Notifier that records every posted message."""
    return FakeNotifier()


@pytest.fixture
def chapters_config() -> ChaptersConfig:
    """Default configuration with sequential per-cycle processing."""
    return ChaptersConfig(
        phases=PhaseConfig(),
        scheduler=SchedulerConfig(max_concurrent_cycles=1),
    )
