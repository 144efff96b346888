"""Automatic phase transition scheduler.

The scheduler polls every active cycle and moves it along
pending -> suggestion -> voting -> reading -> discussion -> completed as
deadlines pass. One poll is the same routine whether it is driven by the
in-process timer (``start``/``stop``) or by an external trigger
(``trigger_check``, e.g. a cron webhook).

Per cycle, one poll will at most:

- stamp a missing start date for the current phase (and wait for the next
  poll before evaluating elapsed time),
- close voting early once every human member of the channel has voted,
- send one reminder when the deadline enters the phase's reminder window,
- and, past the deadline, either transition, complete the cycle, extend
  the suggestion phase, or report a blocked transition.

Cycles are processed concurrently and independently. A failure while
processing one cycle is logged and counted; the rest of the poll goes on
and the next poll retries from the unchanged persisted state. Polls assume
a single scheduler instance: nothing locks a cycle against a second
scheduler polling it at the same time.
"""

from __future__ import annotations

import asyncio
import enum
import random
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel

from chapters.config import ChaptersConfig
from chapters.cycles.entity import Cycle, utcnow
from chapters.cycles.phases import CyclePhase, reminder_window
from chapters.cycles.transitions import BlockReason, TransitionDecision
from chapters.cycles.updates import CycleUpdate, SetTo
from chapters.errors import NotificationError
from chapters.integrations.slack import Notifier
from chapters.logging import bind_cycle_context, correlation_scope, get_logger
from chapters.repository import CycleRepository
from chapters.scheduler import messages
from chapters.services.cycle import CycleService
from chapters.services.rating import RatingService

logger = get_logger(__name__)

NotifierFactory = Callable[[], Notifier | None]


def should_notify_blocked(attempt: int) -> bool:
    """Whether the ``attempt``-th refused transition is announced.

    Announced on attempts 1, 3 and 7, then on every 7th attempt.
    """
    return attempt in (1, 3) or (attempt > 0 and attempt % 7 == 0)


class Outcome(str, enum.Enum):
    """What one poll did with one cycle."""

    SKIPPED = "skipped"
    WAITING = "waiting"
    TRANSITIONED = "transitioned"
    COMPLETED = "completed"
    EXTENDED = "extended"
    BLOCKED = "blocked"
    FAILED = "failed"


@dataclass(frozen=True)
class CycleResult:
    outcome: Outcome
    reminder_sent: bool = False


class PollReport(BaseModel):
    """Counts of what one poll did.

    Attributes:
        checked: Active cycles loaded.
        skipped: Cycles left alone (pending, or start date just stamped).
        transitioned: Cycles moved to their next phase.
        completed: Cycles completed at the end of discussion.
        extended: Suggestion phases extended for lack of suggestions.
        blocked: Transitions refused by a validation rule.
        reminders_sent: Deadline reminders sent.
        failed: Cycles whose processing raised.
    """

    checked: int = 0
    skipped: int = 0
    transitioned: int = 0
    completed: int = 0
    extended: int = 0
    blocked: int = 0
    reminders_sent: int = 0
    failed: int = 0

    def record(self, result: CycleResult) -> None:
        match result.outcome:
            case Outcome.SKIPPED:
                self.skipped += 1
            case Outcome.TRANSITIONED:
                self.transitioned += 1
            case Outcome.COMPLETED:
                self.completed += 1
            case Outcome.EXTENDED:
                self.extended += 1
            case Outcome.BLOCKED:
                self.blocked += 1
            case Outcome.FAILED:
                self.failed += 1
            case Outcome.WAITING:
                pass
        if result.reminder_sent:
            self.reminders_sent += 1


class PhaseTransitionScheduler:
    """Advances active cycles through their phases.

    Attributes:
        repository: Persistence boundary.
        config: Application configuration (phase mode and scheduler timing).
        cycles: Cycle operations shared with the command layer.
        last_report: Counts from the most recent completed poll.
        last_poll_at: When the most recent poll completed.
    """

    def __init__(
        self,
        repository: CycleRepository,
        config: ChaptersConfig,
        notifier: Notifier | None = None,
        notifier_factory: NotifierFactory | None = None,
        clock: Callable[[], datetime] | None = None,
        rng: random.Random | None = None,
    ) -> None:
        """Initialize the scheduler.

        Args:
            repository: Persistence boundary.
            config: Application configuration.
            notifier: Chat client, if already available.
            notifier_factory: Builds the chat client on first use when
                ``notifier`` is not given.
            clock: Source of the current time.
            rng: Random source for tally tie-breaks.
        """
        self.repository = repository
        self.config = config
        self._notifier = notifier
        self._notifier_factory = notifier_factory
        self._clock = clock or utcnow
        self.cycles = CycleService(repository, config.phases, clock=self._clock, rng=rng)
        self._ratings = RatingService(repository)
        self._running = False
        self._loop_task: asyncio.Task | None = None
        self.last_report: PollReport | None = None
        self.last_poll_at: datetime | None = None

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def interval_seconds(self) -> float:
        """Seconds between polls of the in-process timer."""
        return self.config.scheduler.interval_seconds(self.config.phases.test_mode)

    def _get_notifier(self) -> Notifier:
        """Return the chat client, building it from the factory on first use.

        Raises:
            NotificationError: If no client is available.
        """
        if self._notifier is None and self._notifier_factory is not None:
            self._notifier = self._notifier_factory()
            if self._notifier is not None:
                logger.info("notifier_initialised")
        if self._notifier is None:
            raise NotificationError("chat.postMessage", "no chat client configured")
        return self._notifier

    async def _post(self, cycle: Cycle, text: str) -> None:
        await self._get_notifier().post_message(cycle.channel_id, text)

    # ------------------------------------------------------------------
    # Timer
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start the recurring poll loop.

        The first poll runs immediately. Calling start on a running
        scheduler has no effect.
        """
        if self._running:
            logger.warning("phase_scheduler_already_running")
            return

        self._running = True
        self._loop_task = asyncio.create_task(self._polling_loop())
        logger.info(
            "phase_scheduler_started",
            interval_seconds=self.interval_seconds,
            test_mode=self.config.phases.test_mode,
        )

    async def stop(self) -> None:
        """Stop the recurring poll loop and wait for it to finish."""
        if not self._running:
            logger.warning("phase_scheduler_not_running")
            return

        self._running = False

        if self._loop_task is not None:
            self._loop_task.cancel()
            try:
                await self._loop_task
            except asyncio.CancelledError:
                pass
            self._loop_task = None

        logger.info("phase_scheduler_stopped")

    async def _polling_loop(self) -> None:
        while self._running:
            try:
                await self.check_phase_transitions()
            except Exception as e:
                logger.error("phase_check_loop_error", error=str(e), exc_info=True)
            await asyncio.sleep(self.interval_seconds)

    async def trigger_check(self) -> PollReport:
        """Run exactly one poll, for externally scheduled invocations."""
        logger.info("phase_check_triggered")
        return await self.check_phase_transitions()

    # ------------------------------------------------------------------
    # Poll
    # ------------------------------------------------------------------

    async def check_phase_transitions(self) -> PollReport:
        """Evaluate every active cycle once.

        Returns:
            Counts of what the poll did.
        """
        with correlation_scope():
            cycles = await self.repository.list_active_cycles()
            report = PollReport(checked=len(cycles))
            semaphore = asyncio.Semaphore(self.config.scheduler.max_concurrent_cycles)

            async def run(cycle: Cycle) -> CycleResult:
                async with semaphore:
                    return await self._process_cycle_safely(cycle)

            results = await asyncio.gather(*(run(cycle) for cycle in cycles))
            for result in results:
                report.record(result)

            logger.info("phase_check_completed", **report.model_dump())
            self.last_report = report
            self.last_poll_at = self._clock()
            return report

    async def _process_cycle_safely(self, cycle: Cycle) -> CycleResult:
        bind_cycle_context(str(cycle.id), cycle.channel_id)
        try:
            return await self._process_cycle(cycle)
        except Exception as e:
            logger.error(
                "cycle_poll_failed",
                phase=cycle.current_phase.value,
                error=str(e),
                exc_info=True,
            )
            return CycleResult(Outcome.FAILED)

    async def _process_cycle(self, cycle: Cycle) -> CycleResult:
        if cycle.current_phase is CyclePhase.PENDING:
            return CycleResult(Outcome.SKIPPED)

        if cycle.timing().start_date is None:
            await self.cycles.set_current_phase_start_date(cycle)
            logger.info("phase_start_date_initialised", phase=cycle.current_phase.value)
            return CycleResult(Outcome.SKIPPED)

        if cycle.current_phase is CyclePhase.VOTING and await self._everyone_voted(cycle):
            decision = await self.cycles.decide_transition(cycle, CyclePhase.READING)
            if decision.allowed:
                logger.info("voting_closed_early")
                await self._transition(cycle, decision)
                return CycleResult(Outcome.TRANSITIONED)
            logger.warning("early_transition_refused", reason=decision.reason)

        expected_end = cycle.expected_phase_end()
        if expected_end is None:
            logger.warning("phase_end_unknown", phase=cycle.current_phase.value)
            return CycleResult(Outcome.SKIPPED)

        now = self._clock()
        if now < expected_end:
            reminded = await self._maybe_send_reminder(cycle, expected_end, now)
            return CycleResult(Outcome.WAITING, reminder_sent=reminded)

        return await self._handle_deadline(cycle)

    async def _everyone_voted(self, cycle: Cycle) -> bool:
        """Whether every human member of the channel has cast a ballot.

        Directory failures count as "not everyone has voted". The directory
        is not consulted until at least one ballot has been cast.
        """
        voters = await self.repository.list_voters(cycle.id)
        if not voters:
            return False

        try:
            notifier = self._get_notifier()
            members = await notifier.list_group_members(cycle.channel_id)
            humans = [m for m in members if not await notifier.is_bot_user(m)]
        except Exception as e:
            logger.warning("member_lookup_failed", error=str(e))
            return False

        if not humans:
            return False
        return all(member in voters for member in humans)

    async def _maybe_send_reminder(
        self,
        cycle: Cycle,
        deadline: datetime,
        now: datetime,
    ) -> bool:
        timing = cycle.timing()
        if timing.deadline_notification_sent:
            return False
        window = reminder_window(cycle.current_phase, cycle.phase_durations.unit)
        remaining = deadline - now
        if window is None or not (remaining.total_seconds() > 0 and remaining <= window):
            return False

        await self._post(cycle, messages.reminder_message(cycle, deadline, now))
        timings = cycle.with_timing(cycle.current_phase, deadline_notification_sent=True)
        await self.cycles.update(cycle, CycleUpdate(phase_timings=SetTo(timings)))
        logger.info("deadline_reminder_sent", phase=cycle.current_phase.value)
        return True

    async def _handle_deadline(self, cycle: Cycle) -> CycleResult:
        next_phase = cycle.current_phase.next_phase()
        if next_phase is None:
            await self._complete(cycle)
            return CycleResult(Outcome.COMPLETED)

        decision = await self.cycles.decide_transition(cycle, next_phase)
        if decision.allowed:
            await self._transition(cycle, decision)
            return CycleResult(Outcome.TRANSITIONED)

        if (
            decision.reason is BlockReason.INSUFFICIENT_SUGGESTIONS
            and cycle.current_phase is CyclePhase.SUGGESTION
        ):
            await self._extend(cycle)
            return CycleResult(Outcome.EXTENDED)

        await self._record_blocked(cycle, decision)
        return CycleResult(Outcome.BLOCKED)

    async def _transition(self, cycle: Cycle, decision: TransitionDecision) -> None:
        moved = await self.cycles.execute_transition(cycle, decision)
        suggestions = []
        if moved.current_phase is CyclePhase.VOTING:
            suggestions = await self.repository.list_suggestions_for_cycle(moved.id)
        text = messages.phase_announcement(
            moved,
            suggestions=suggestions,
            selected_book=decision.selected_book,
            now=self._clock(),
        )
        await self._post(moved, text)

    async def _complete(self, cycle: Cycle) -> None:
        completed = await self.cycles.complete_cycle(cycle)
        suggestions = await self.repository.list_suggestions_for_cycle(cycle.id)
        selected = next((s for s in suggestions if s.id == completed.selected_book_id), None)
        stats = await self.cycles.get_stats(completed)
        ratings = await self._ratings.get_rating_stats(completed)
        await self._post(
            completed,
            messages.completion_message(completed, selected, suggestions, stats, ratings),
        )

    async def _extend(self, cycle: Cycle) -> None:
        """Push the suggestion deadline back by one phase length.

        The new deadline counts from the previous one; if that is still in
        the past it counts from now instead.
        """
        duration = cycle.phase_duration()
        prior_end = cycle.expected_phase_end()
        if duration is None or prior_end is None:
            raise ValueError(f"Cannot extend phase {cycle.current_phase.value} without a deadline")

        now = self._clock()
        new_deadline = prior_end + duration.to_timedelta()
        if new_deadline <= now:
            new_deadline = now + duration.to_timedelta()

        timings = cycle.with_timing(
            cycle.current_phase,
            extended=True,
            extended_deadline=new_deadline,
            deadline_notification_sent=False,
            blocked_attempts=0,
        )
        extended = await self.cycles.update(cycle, CycleUpdate(phase_timings=SetTo(timings)))
        suggestions = await self.repository.list_suggestions_for_cycle(cycle.id)
        await self._post(
            extended,
            messages.extension_message(extended, len(suggestions), new_deadline),
        )
        logger.info(
            "phase_extended",
            phase=cycle.current_phase.value,
            previous_deadline=prior_end.isoformat(),
            new_deadline=new_deadline.isoformat(),
            suggestion_count=len(suggestions),
        )

    async def _record_blocked(self, cycle: Cycle, decision: TransitionDecision) -> None:
        attempt = cycle.timing().blocked_attempts + 1
        timings = cycle.with_timing(cycle.current_phase, blocked_attempts=attempt)
        blocked = await self.cycles.update(cycle, CycleUpdate(phase_timings=SetTo(timings)))

        reason = decision.reason
        logger.warning(
            "phase_transition_blocked",
            phase=cycle.current_phase.value,
            target=decision.target.value if decision.target else None,
            reason=reason.value if reason else None,
            attempt=attempt,
        )
        if reason is not None and decision.target is not None and should_notify_blocked(attempt):
            await self._post(blocked, messages.blocked_message(blocked, decision.target, reason))
