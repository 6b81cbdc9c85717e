"""
Slot assignment validation.

Runs before every non-null slot write and rejects:
  - a match id that is not a positive integer
  - a match id already sitting in any slot or in the final
  - a match whose two teams are the same
  - a match sharing a team with any other assigned match (final included)

Remote failures while checking are not a rejection: they propagate as
RemoteUnavailable, because the conflict state is unknown.
"""
import logging
from typing import Optional

from bracket_aggregator.models.match_record import MatchRecord
from bracket_aggregator.services.assignment_store import BracketAssignmentStore
from bracket_aggregator.services.errors import AssignmentValidationError, BracketError, MatchNotFound
from bracket_aggregator.services.fetching import fetch_records

logger = logging.getLogger(__name__)


def is_valid_match_id(match_id) -> bool:
    return isinstance(match_id, int) and not isinstance(match_id, bool) and match_id > 0


class SlotAssignmentValidator:
    def __init__(self, store: BracketAssignmentStore, client, deadline_seconds: Optional[float] = None):
        self.store = store
        self.client = client
        self.deadline_seconds = deadline_seconds

    def validate(self, group_id: str, slot_index: int, match_id: int) -> MatchRecord:
        """Return the candidate record if it may go into (group_id, slot_index)."""
        self.store.check_slot(group_id, slot_index)
        if not is_valid_match_id(match_id):
            raise AssignmentValidationError(f"Invalid match id: {match_id!r}")

        snapshot = self.store.snapshot()
        if snapshot.is_used(match_id):
            raise AssignmentValidationError(f"Match {match_id} is already assigned in this tournament")

        try:
            candidate = self.client.fetch_by_id(match_id)
        except MatchNotFound as e:
            raise AssignmentValidationError(str(e)) from e

        home_id, away_id = candidate.team_ids
        if home_id == away_id:
            raise AssignmentValidationError(f"Match {match_id} has the same team on both sides")

        others = fetch_records(self.client, snapshot.other_match_ids(group_id, slot_index), self.deadline_seconds)
        for other_id, outcome in others.items():
            if isinstance(outcome, MatchNotFound):
                # Gone upstream, so it cannot hold a team
                logger.warning(f"Assigned match {other_id} no longer exists upstream; skipping overlap check")
                continue
            if isinstance(outcome, BracketError):
                raise outcome
            if set(outcome.team_ids) & {home_id, away_id}:
                raise AssignmentValidationError(
                    f"One of the teams of match {match_id} already has another match assigned in the bracket"
                )
        return candidate
