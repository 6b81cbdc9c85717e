"""
Tournament aggregation orchestrator.

Read path:  cache -> (miss) fetch teams + assigned records -> enrich ->
            group views -> champions -> final -> progress -> cache.
Write paths: slot assignment (validated, cascades to the final) and match
            status reports (forwarded best-effort). Both clear the cache
            and return a freshly composed detail.

Single-writer: one aggregator instance owns the assignment store. Reads are
not serialized with each other, but a composition is only cached when no
slot changed while it ran, and final creation is serialized inside the
scheduler.
"""
import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from bracket_aggregator.config import (
    GROUPS,
    SLOTS_PER_GROUP,
    TOURNAMENT_CODE,
    TOURNAMENT_ID,
    TOURNAMENT_NAME,
    TOURNAMENT_SEASON,
    get_settings,
)
from bracket_aggregator.models.match_record import STATUS_FINISHED, Score, normalize_status
from bracket_aggregator.models.views import (
    MatchView,
    TeamDetail,
    TeamSlotView,
    TournamentDetail,
    TournamentSummary,
)
from bracket_aggregator.services.assignment_store import BracketAssignmentStore
from bracket_aggregator.services.bracket_view_builder import BracketViewBuilder
from bracket_aggregator.services.fetching import Deadline, fetch_records
from bracket_aggregator.services.final_scheduler import FinalMatchScheduler
from bracket_aggregator.services.match_client import MatchRecordClient
from bracket_aggregator.services.slot_validator import SlotAssignmentValidator
from bracket_aggregator.services.state_cache import CacheEntry, TournamentStateCache
from bracket_aggregator.services.team_client import TeamCatalogClient
from bracket_aggregator.services.team_enricher import enrich, palette_for

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_utc(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value)


def winner_of(final: MatchView) -> Optional[TeamSlotView]:
    if final.is_placeholder or final.status != STATUS_FINISHED or not final.winner_id:
        return None
    return final.team_a if final.winner_id == final.team_a.id else final.team_b


class TournamentAggregationService:
    def __init__(
        self,
        match_client,
        team_client,
        store: Optional[BracketAssignmentStore] = None,
        cache: Optional[TournamentStateCache] = None,
        groups: Sequence[Tuple[str, str]] = GROUPS,
        deadline_seconds: Optional[float] = None,
        now: Callable[[], datetime] = _utcnow,
    ):
        self.match_client = match_client
        self.team_client = team_client
        self.groups = list(groups)
        self.store = store or BracketAssignmentStore([g for g, _ in self.groups], SLOTS_PER_GROUP)
        self.cache = cache or TournamentStateCache()
        self.deadline_seconds = deadline_seconds
        self._now = now

        self.validator = SlotAssignmentValidator(self.store, match_client, deadline_seconds)
        self.view_builder = BracketViewBuilder()
        self.final_scheduler = FinalMatchScheduler(match_client, self.store, on_scheduled=self.cache.clear)

    # ── Read path ────────────────────────────────────────────────────────

    def get_state(self, force: bool = False, deadline_seconds: Optional[float] = None) -> CacheEntry:
        """
        Cached composed state. `deadline_seconds` bounds the remote calls of a
        rebuild; without it the configured composition deadline applies.
        """
        entry = self.cache.get(force)
        if entry is not None:
            return entry

        seconds = deadline_seconds if deadline_seconds is not None else self.deadline_seconds
        generation = self.store.generation
        summary, detail = self._compose(Deadline(seconds))
        if self.store.generation != generation:
            # A slot changed mid-composition; its own rebuild owns the cache
            logger.info("Bracket changed during composition; result not cached")
            return CacheEntry(summary=summary, detail=detail, created_at=time.monotonic())
        return self.cache.put(summary, detail)

    def _team_map(self, deadline: Deadline) -> Dict[str, TeamDetail]:
        teams: Dict[str, TeamDetail] = {}
        if deadline.expired:
            logger.warning("Deadline passed before the team catalog was fetched")
            return teams
        for index, team in enumerate(self.team_client.fetch_teams(timeout=deadline.remaining())):
            detail = enrich(team, index)
            teams[detail.id] = detail
        return teams

    def _compose(self, deadline: Deadline) -> Tuple[TournamentSummary, TournamentDetail]:
        now = self._now()
        snapshot = self.store.snapshot()
        teams = self._team_map(deadline)

        slot_ids = [s.match_id for s in snapshot.assigned_slots()]
        records = fetch_records(self.match_client, slot_ids, deadline.remaining())

        groups = []
        champions: List[Optional[TeamSlotView]] = []
        realized: List[MatchView] = []
        for position, (group_id, name) in enumerate(self.groups):
            build = self.view_builder.build_group(
                group_id,
                name,
                palette_for(position).secondary,
                snapshot.groups[group_id],
                records,
                teams,
            )
            groups.append(build.view)
            champions.append(build.view.champion)
            realized.extend(build.realized)

        reference_date = max(
            [now] + [d for d in (_parse_utc(m.scheduled_at_utc) for m in realized) if d is not None]
        )
        champion_a = champions[0] if champions else None
        champion_b = champions[1] if len(champions) > 1 else None
        final = self.final_scheduler.resolve(
            champion_a,
            champion_b,
            snapshot.final_match_id,
            teams,
            reference_date,
            generation=snapshot.generation,
            deadline=deadline,
        )
        if not final.is_placeholder:
            realized.append(final)

        matches_played = sum(1 for m in realized if m.status == STATUS_FINISHED)
        total_matches = len(realized)
        progress = matches_played / total_matches if total_matches else 0.0
        schedule_label = f"{now:%b %Y} - {now + timedelta(days=14):%b %Y}"

        detail = TournamentDetail(
            id=TOURNAMENT_ID,
            code=TOURNAMENT_CODE,
            name=TOURNAMENT_NAME,
            hero_title=f"{TOURNAMENT_NAME} {TOURNAMENT_SEASON}",
            season=TOURNAMENT_SEASON,
            location="Official Venues",
            venue="National Arena",
            description="Tournament assembled from matches scheduled in the match service.",
            schedule_label=schedule_label,
            updated_label=f"Updated {now:%b %d, %Y %H:%M} UTC",
            progress=progress,
            matches_played=matches_played,
            total_matches=total_matches,
            summary="Pick two matches per group and let the group winners meet in the final.",
            groups=groups,
            final=final,
            winner=winner_of(final),
            teams=list(teams.values()),
            teams_index=dict(teams),
        )
        summary = TournamentSummary(
            id=detail.id,
            code=detail.code,
            name=detail.name,
            season=detail.season,
            hero_title=detail.hero_title,
            location=detail.location,
            schedule_label=detail.schedule_label,
            progress=detail.progress,
            matches_played=detail.matches_played,
            total_matches=detail.total_matches,
        )
        return summary, detail

    # ── Write paths ──────────────────────────────────────────────────────

    def assign_slot(self, group_id: str, slot_index: int, match_id: Optional[int]) -> TournamentDetail:
        """
        Assign (or clear, with None) one group slot.

        Raises AssignmentValidationError when rejected and RemoteUnavailable
        when the conflict state cannot be checked; the store is untouched in
        both cases. Any accepted write also clears the final.
        """
        self.store.check_slot(group_id, slot_index)
        if match_id is not None:
            self.validator.validate(group_id, slot_index, match_id)
        self.store.write_slot(group_id, slot_index, match_id)
        logger.info(f"Slot {group_id}[{slot_index}] set to {match_id}; final reset")

        self.cache.clear()
        return self.get_state(force=True).detail

    def report_match_update(
        self,
        match_id: int,
        status: Optional[str],
        score_a: Optional[Score] = None,
        score_b: Optional[Score] = None,
    ) -> TournamentDetail:
        if normalize_status(status) == STATUS_FINISHED:
            if not self.match_client.mark_finished(match_id, score_a, score_b):
                logger.warning(f"Finish of match {match_id} did not reach the match service; refreshing anyway")
        self.cache.clear()
        return self.get_state(force=True).detail


_aggregation_service: Optional[TournamentAggregationService] = None


def get_aggregation_service() -> TournamentAggregationService:
    """Get or create the process-wide aggregation service."""
    global _aggregation_service
    if _aggregation_service is None:
        settings = get_settings()
        _aggregation_service = TournamentAggregationService(
            match_client=MatchRecordClient(
                settings.matches_service_base_url,
                timeout=settings.remote_timeout_seconds,
                quarter_duration_seconds=settings.final_quarter_duration_seconds,
            ),
            team_client=TeamCatalogClient(
                settings.teams_service_base_url,
                timeout=settings.remote_timeout_seconds,
            ),
            cache=TournamentStateCache(ttl_seconds=settings.cache_ttl_seconds),
            deadline_seconds=settings.composition_deadline_seconds,
        )
    return _aggregation_service
