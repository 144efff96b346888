"""Cycle lifecycle operations.

``CycleService`` owns every change to a cycle record: creation and initial
configuration, phase timing stamps, phase changes (manual or scheduled),
completion and reset. Each operation persists through the repository and
returns a freshly loaded snapshot.
"""

from __future__ import annotations

import random
import uuid
from collections.abc import Callable
from datetime import datetime

from chapters.config import PhaseConfig
from chapters.cycles.entity import Cycle, PhaseTiming, utcnow
from chapters.cycles.phases import CyclePhase, CycleStatus, PhaseDurations
from chapters.cycles.suggestion import CycleStats
from chapters.cycles.transitions import TransitionDecision, decide_transition
from chapters.cycles.updates import NO_CHANGE, UNSET, CycleUpdate, SetTo
from chapters.errors import (
    ActiveCycleExistsError,
    CycleNotFoundError,
    CycleStateError,
    PersistenceError,
    SuggestionNotFoundError,
)
from chapters.logging import get_logger
from chapters.repository import CycleRepository

logger = get_logger(__name__)

Clock = Callable[[], datetime]

ROLLBACK_SOURCES = frozenset({CyclePhase.VOTING, CyclePhase.READING, CyclePhase.DISCUSSION})


def default_cycle_name(now: datetime) -> str:
    """Name a new cycle after the month it starts in, e.g. ``March 2026``."""
    return now.strftime("%B %Y")


class CycleService:
    """Operations on a channel's book club cycle.

    Args:
        repository: Persistence boundary.
        phase_config: Default phase lengths for new cycles.
        clock: Source of the current time.
        rng: Random source for tally tie-breaks.
    """

    def __init__(
        self,
        repository: CycleRepository,
        phase_config: PhaseConfig | None = None,
        clock: Clock | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.repository = repository
        self.phase_config = phase_config or PhaseConfig()
        self._clock = clock or utcnow
        self._rng = rng

    def now(self) -> datetime:
        return self._clock()

    async def get_cycle(self, cycle_id: uuid.UUID) -> Cycle:
        """Load a cycle by id.

        Raises:
            CycleNotFoundError: If no such cycle exists.
        """
        cycle = await self.repository.get_cycle_by_id(cycle_id)
        if cycle is None:
            raise CycleNotFoundError(cycle_id=str(cycle_id))
        return cycle

    async def get_active_cycle(self, channel_id: str) -> Cycle:
        """Load the active cycle of a channel.

        Raises:
            CycleNotFoundError: If the channel has no active cycle.
        """
        cycle = await self.repository.get_active_cycle_for_channel(channel_id)
        if cycle is None:
            raise CycleNotFoundError(channel_id=channel_id)
        return cycle

    async def create_cycle(self, channel_id: str, name: str | None = None) -> Cycle:
        """Start a new cycle in the pending phase with default durations.

        Args:
            channel_id: Channel the cycle belongs to.
            name: Display name; defaults to the current month and year.

        Returns:
            The created cycle.

        Raises:
            ActiveCycleExistsError: If the channel already has an active cycle.
        """
        existing = await self.repository.get_active_cycle_for_channel(channel_id)
        if existing is not None:
            raise ActiveCycleExistsError(channel_id)

        cycle = await self.repository.create_cycle(
            channel_id=channel_id,
            name=name or default_cycle_name(self.now()),
            phase_durations=self.phase_config.default_durations(),
        )
        logger.info("cycle_started", cycle_id=str(cycle.id), channel_id=channel_id)
        return cycle

    async def configure_cycle(
        self,
        cycle: Cycle,
        name: str | None = None,
        durations: PhaseDurations | None = None,
    ) -> Cycle:
        """Apply the initial configuration and open the suggestion phase.

        Args:
            cycle: A pending cycle.
            name: New display name, if changing it.
            durations: Phase durations, if overriding the defaults.

        Returns:
            The cycle, now in the suggestion phase with its start date stamped.

        Raises:
            CycleStateError: If the cycle is not pending.
        """
        if cycle.current_phase is not CyclePhase.PENDING:
            raise CycleStateError("This cycle has already been configured.")

        now = self.now()
        timings = dict(cycle.phase_timings)
        timings[CyclePhase.SUGGESTION] = PhaseTiming(start_date=now)
        configured = await self.update(
            cycle,
            CycleUpdate(
                name=SetTo(name) if name else NO_CHANGE,
                phase_durations=SetTo(durations) if durations is not None else NO_CHANGE,
                current_phase=SetTo(CyclePhase.SUGGESTION),
                phase_timings=SetTo(timings),
            ),
        )
        logger.info(
            "cycle_configured",
            cycle_id=str(cycle.id),
            durations=configured.phase_durations.amounts(),
            unit=configured.phase_durations.unit.value,
        )
        return configured

    async def update(self, cycle: Cycle, update: CycleUpdate) -> Cycle:
        """Persist the supplied fields and return the reloaded cycle.

        Raises:
            ValueError: If ``update`` carries no changes.
            PersistenceError: If no record was modified.
            CycleNotFoundError: If the cycle vanished after the write.
        """
        if update.is_empty:
            raise ValueError("Cycle update must change at least one field")
        modified = await self.repository.update_cycle(cycle.id, update)
        if modified == 0:
            raise PersistenceError(f"Update of cycle {cycle.id} modified no records")
        return await self.get_cycle(cycle.id)

    async def set_current_phase_start_date(self, cycle: Cycle) -> Cycle:
        """Stamp now as the start of the current phase, keeping its flags."""
        timings = cycle.with_timing(cycle.current_phase, start_date=self.now())
        return await self.update(cycle, CycleUpdate(phase_timings=SetTo(timings)))

    async def set_current_phase_end_date(self, cycle: Cycle) -> Cycle:
        """Stamp now as the end of the current phase, keeping its flags."""
        timings = cycle.with_timing(cycle.current_phase, end_date=self.now())
        return await self.update(cycle, CycleUpdate(phase_timings=SetTo(timings)))

    async def get_stats(self, cycle: Cycle) -> CycleStats:
        """Count the cycle's suggestions and distinct voters."""
        total_suggestions = await self.repository.count_suggestions(cycle.id)
        voters = await self.repository.list_voters(cycle.id)
        return CycleStats(total_suggestions=total_suggestions, total_voters=len(voters))

    async def decide_transition(
        self,
        cycle: Cycle,
        target: CyclePhase | None,
    ) -> TransitionDecision:
        """Validate moving ``cycle`` to ``target`` against its current suggestions."""
        suggestions = await self.repository.list_suggestions_for_cycle(cycle.id)
        return decide_transition(cycle, target, suggestions, rng=self._rng)

    async def execute_transition(
        self,
        cycle: Cycle,
        decision: TransitionDecision,
        clear_selection: bool = False,
    ) -> Cycle:
        """Move ``cycle`` to the phase an allowed decision names.

        The steps run strictly in order: stamp the end of the outgoing phase,
        persist the new phase (with the selected book), then stamp the start
        of the incoming phase.

        Args:
            cycle: Snapshot of the cycle before the move.
            decision: An allowed decision with a target phase.
            clear_selection: Unset the selected book instead of keeping it.

        Returns:
            The cycle in its new phase.
        """
        if not decision.allowed or decision.target is None:
            raise CycleStateError("Cannot execute a blocked or terminal transition")

        source = cycle.current_phase
        target = decision.target

        if source.is_timed:
            cycle = await self.set_current_phase_end_date(cycle)

        if clear_selection:
            selected = UNSET
        elif decision.auto_selected and decision.selected_book is not None:
            selected = SetTo(decision.selected_book.id)
        else:
            selected = NO_CHANGE
        cycle = await self.update(
            cycle,
            CycleUpdate(current_phase=SetTo(target), selected_book_id=selected),
        )

        timings = dict(cycle.phase_timings)
        timings[target] = PhaseTiming(start_date=self.now())
        cycle = await self.update(cycle, CycleUpdate(phase_timings=SetTo(timings)))

        logger.info(
            "phase_transitioned",
            cycle_id=str(cycle.id),
            channel_id=cycle.channel_id,
            from_phase=source.value,
            to_phase=target.value,
            selected_book_id=str(cycle.selected_book_id) if cycle.selected_book_id else None,
            auto_selected=decision.auto_selected,
        )
        return cycle

    async def change_phase(
        self,
        cycle: Cycle,
        target: CyclePhase,
        selected_book_id: uuid.UUID | None = None,
    ) -> Cycle:
        """Manually move a cycle to any timed phase.

        Moving back to suggestion from a later phase clears the selected book
        and zeroes every suggestion's votes; the suggestions themselves stay.

        Args:
            cycle: Active cycle to move.
            target: Destination phase.
            selected_book_id: Book to select as part of the move.

        Returns:
            The cycle in its new phase.

        Raises:
            CycleStateError: If the move is not possible.
            SuggestionNotFoundError: If ``selected_book_id`` is not one of
                the cycle's suggestions.
        """
        if not cycle.is_active:
            raise CycleStateError("Only active cycles can change phase.")
        if not target.is_timed:
            raise CycleStateError("A cycle cannot be moved back to the pending phase.")
        if target is cycle.current_phase:
            raise CycleStateError(f"The cycle is already in the {target.label} phase.")

        if selected_book_id is not None:
            book = await self.repository.get_suggestion_by_id(selected_book_id)
            if book is None or book.cycle_id != cycle.id:
                raise SuggestionNotFoundError(
                    str(selected_book_id), "Selected book not found in this cycle."
                )
            cycle = await self.update(cycle, CycleUpdate(selected_book_id=SetTo(book.id)))

        rollback = target is CyclePhase.SUGGESTION and cycle.current_phase in ROLLBACK_SOURCES

        decision = await self.decide_transition(cycle, target)
        if decision.reason is not None:
            raise CycleStateError(decision.reason.describe())

        moved = await self.execute_transition(cycle, decision, clear_selection=rollback)

        if rollback:
            reset = await self.repository.reset_suggestion_votes(cycle.id)
            logger.info(
                "cycle_rolled_back_to_suggestion",
                cycle_id=str(cycle.id),
                suggestions_reset=reset,
            )

        return moved

    async def complete_cycle(self, cycle: Cycle) -> Cycle:
        """Finish a cycle that is in its discussion phase.

        Raises:
            CycleStateError: If the cycle is not active or not in discussion.
        """
        if not cycle.is_active or cycle.current_phase is not CyclePhase.DISCUSSION:
            raise CycleStateError("A cycle can only be completed from the discussion phase.")

        timings = cycle.with_timing(CyclePhase.DISCUSSION, end_date=self.now())
        completed = await self.update(
            cycle,
            CycleUpdate(status=SetTo(CycleStatus.COMPLETED), phase_timings=SetTo(timings)),
        )
        logger.info("cycle_completed", cycle_id=str(cycle.id), channel_id=cycle.channel_id)
        return completed

    async def reset_cycle(self, cycle: Cycle) -> bool:
        """Delete a cycle together with its suggestions and ratings."""
        deleted = await self.repository.delete_cycle(cycle.id)
        logger.info("cycle_reset", cycle_id=str(cycle.id), deleted=deleted)
        return deleted
