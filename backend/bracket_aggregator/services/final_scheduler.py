"""
Final match scheduling.

Three states, decided on every composition pass:

  NO_CHAMPIONS     a group champion is missing (or both groups produced the
                   same team): placeholder final, remote service untouched.
  NEEDS_RECORD     both champions known, no final id stored: create the
                   final upstream. On success store the id, invalidate the
                   cache and re-enter once as RECORD_KNOWN. On failure emit a
                   "needs scheduling" placeholder; the next pass retries.
                   Creation is serialized across passes and only stored
                   if no slot changed since the pass read the bracket.
  RECORD_KNOWN     fetch the stored final. On failure show both champions
                   in a placeholder and keep the stored id.
"""
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Dict, Optional, Union

from bracket_aggregator.models.match_record import STATUS_SCHEDULED
from bracket_aggregator.models.views import MatchView, TeamDetail, TeamSlotView
from bracket_aggregator.services.assignment_store import BracketAssignmentStore
from bracket_aggregator.services.bracket_view_builder import match_view, placeholder_team
from bracket_aggregator.services.errors import BracketError
from bracket_aggregator.services.fetching import Deadline

logger = logging.getLogger(__name__)

FINAL_GROUP_ID = "final"
FINAL_VENUE = "National Arena"
FINAL_LEAD_TIME = timedelta(days=2)


class FinalState(str, Enum):
    NO_CHAMPIONS = "no_champions"
    NEEDS_RECORD = "needs_record"
    RECORD_KNOWN = "record_known"


@dataclass(frozen=True)
class FinalScheduled:
    """Transition token: a final was just created upstream under this id."""

    match_id: int


def final_state(
    champion_a: Optional[TeamSlotView],
    champion_b: Optional[TeamSlotView],
    final_match_id: Optional[int],
) -> FinalState:
    if champion_a is None or champion_b is None or champion_a.id == champion_b.id:
        return FinalState.NO_CHAMPIONS
    if final_match_id is None:
        return FinalState.NEEDS_RECORD
    return FinalState.RECORD_KNOWN


def _as_finalist(champion: Optional[TeamSlotView], fallback_label: str) -> TeamSlotView:
    # Group scores do not carry over into the final
    if champion is None:
        return placeholder_team(fallback_label)
    return champion.model_copy(update={"score": None})


def placeholder_final_view(
    champion_a: Optional[TeamSlotView],
    champion_b: Optional[TeamSlotView],
    status_label: str,
    schedule_label: str,
) -> MatchView:
    return MatchView(
        id="final-slot",
        label="Final",
        round="final",
        status=STATUS_SCHEDULED,
        status_label=status_label,
        schedule_label=schedule_label,
        venue=FINAL_VENUE,
        team_a=_as_finalist(champion_a, "Group A winner"),
        team_b=_as_finalist(champion_b, "Group B winner"),
        group_id=FINAL_GROUP_ID,
        slot_index=0,
        is_placeholder=True,
    )


class FinalMatchScheduler:
    def __init__(
        self,
        client,
        store: BracketAssignmentStore,
        on_scheduled: Optional[Callable[[], None]] = None,
    ):
        self.client = client
        self.store = store
        self.on_scheduled = on_scheduled
        self._provision_lock = threading.Lock()

    def resolve(
        self,
        champion_a: Optional[TeamSlotView],
        champion_b: Optional[TeamSlotView],
        final_match_id: Optional[int],
        teams: Dict[str, TeamDetail],
        reference_date: datetime,
        generation: Optional[int] = None,
        deadline: Optional[Deadline] = None,
    ) -> MatchView:
        """
        Produce the final's view, creating the final upstream at most once.

        `generation` is the assignment generation the champions were composed
        from; a final created for an older generation is not stored.
        """
        if generation is None:
            generation = self.store.generation
        deadline = deadline or Deadline(None)

        step = self._step(champion_a, champion_b, final_match_id, teams, reference_date, generation, deadline)
        if isinstance(step, FinalScheduled):
            step = self._step(champion_a, champion_b, step.match_id, teams, reference_date, generation, deadline)
        if isinstance(step, FinalScheduled):
            # Unreachable with an id in hand; never loop on a flaky remote
            return placeholder_final_view(champion_a, champion_b, "Schedule final", "Select a match")
        return step

    def _step(
        self,
        champion_a: Optional[TeamSlotView],
        champion_b: Optional[TeamSlotView],
        final_match_id: Optional[int],
        teams: Dict[str, TeamDetail],
        reference_date: datetime,
        generation: int,
        deadline: Deadline,
    ) -> Union[MatchView, FinalScheduled]:
        state = final_state(champion_a, champion_b, final_match_id)

        if state is FinalState.NO_CHAMPIONS:
            return placeholder_final_view(champion_a, champion_b, "Awaiting winners", "Pending")

        if state is FinalState.NEEDS_RECORD:
            return self._provision(champion_a, champion_b, reference_date, generation, deadline)

        if deadline.expired:
            logger.warning(f"Deadline passed before fetching final match {final_match_id}")
            return placeholder_final_view(champion_a, champion_b, "Schedule final", "Select a match")
        try:
            record = self.client.fetch_by_id(final_match_id, timeout=deadline.remaining())
        except BracketError as e:
            logger.warning(f"Final match {final_match_id} fetch failed; keeping assignment: {e}")
            return placeholder_final_view(champion_a, champion_b, "Schedule final", "Select a match")

        view = match_view(record, teams, FINAL_GROUP_ID, 0)
        return view.model_copy(update={"round": "final", "label": record.label or "Final"})

    def _provision(
        self,
        champion_a: TeamSlotView,
        champion_b: TeamSlotView,
        reference_date: datetime,
        generation: int,
        deadline: Deadline,
    ) -> Union[MatchView, FinalScheduled]:
        """
        Create the final upstream and store its id.

        Serialized across composition passes: a pass that waited here picks up
        the id stored by the one before it instead of creating a second final.
        """
        needs_scheduling = placeholder_final_view(champion_a, champion_b, "Schedule final", "Select a match")
        with self._provision_lock:
            current = self.store.snapshot()
            if current.generation != generation:
                logger.info(f"Bracket changed since generation {generation}; not scheduling a final")
                return needs_scheduling
            if current.final_match_id is not None:
                return FinalScheduled(current.final_match_id)
            if deadline.expired:
                logger.warning("Deadline passed before the final could be scheduled")
                return needs_scheduling

            new_id = self._schedule(champion_a, champion_b, reference_date + FINAL_LEAD_TIME, deadline)
            if new_id is None:
                return needs_scheduling
            if not self.store.set_final(new_id, expected_generation=generation):
                logger.warning(
                    f"Bracket changed while scheduling final {new_id}; the record is left unassigned upstream"
                )
                return needs_scheduling

        if self.on_scheduled:
            self.on_scheduled()
        logger.info(f"Scheduled final {new_id}: {champion_a.display_name} vs {champion_b.display_name}")
        return FinalScheduled(new_id)

    def _schedule(
        self,
        champion_a: TeamSlotView,
        champion_b: TeamSlotView,
        scheduled_at: datetime,
        deadline: Deadline,
    ) -> Optional[int]:
        try:
            home_id, away_id = int(champion_a.id), int(champion_b.id)
        except (TypeError, ValueError):
            logger.warning(f"Cannot schedule final for non-numeric team ids {champion_a.id!r}, {champion_b.id!r}")
            return None
        return self.client.create(home_id, away_id, scheduled_at, timeout=deadline.remaining())
