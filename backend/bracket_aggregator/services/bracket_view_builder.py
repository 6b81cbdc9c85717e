"""
Per-group view composition.

Builds each group's match views from the assignment snapshot and the
records fetched for it, then resolves the group's qualifiers and champion.
A slot whose record could not be fetched becomes a placeholder; one
broken match never fails the whole bracket.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from bracket_aggregator.models.match_record import (
    STATUS_FINISHED,
    STATUS_LIVE,
    STATUS_SCHEDULED,
    MatchRecord,
    Score,
)
from bracket_aggregator.models.views import GroupView, MatchView, TeamDetail, TeamSlotView
from bracket_aggregator.services.fetching import FetchOutcome
from bracket_aggregator.services.team_enricher import resolve_team

logger = logging.getLogger(__name__)

STATUS_LABELS = {
    STATUS_SCHEDULED: "Scheduled",
    STATUS_LIVE: "Live",
    STATUS_FINISHED: "Finished",
}

DEFAULT_VENUE = "Main Stadium"
NO_DATE_LABEL = "No date"


def format_schedule_label(when: Optional[datetime]) -> str:
    if when is None:
        return NO_DATE_LABEL
    return when.astimezone(timezone.utc).strftime("%b %d, %Y %H:%M UTC")


def placeholder_team(label: str) -> TeamSlotView:
    return TeamSlotView(display_name=label, is_placeholder=True)


def team_slot(detail: TeamDetail, score: Optional[Score] = None) -> TeamSlotView:
    return TeamSlotView(
        id=detail.id,
        display_name=detail.name,
        short_name=detail.short_name,
        seed=detail.seed,
        record=detail.record,
        score=score,
        is_placeholder=False,
        detail=detail,
        palette=detail.palette,
    )


def placeholder_match_view(group_id: str, slot_index: int) -> MatchView:
    return MatchView(
        id=f"{group_id}-slot-{slot_index}",
        label=f"Slot {slot_index + 1}",
        round="group",
        status=STATUS_SCHEDULED,
        status_label="Unassigned",
        schedule_label="Select a match",
        venue="TBD",
        team_a=placeholder_team("Team A"),
        team_b=placeholder_team("Team B"),
        group_id=group_id,
        slot_index=slot_index,
        is_placeholder=True,
    )


def decide_winner(team_a: TeamSlotView, team_b: TeamSlotView) -> Optional[TeamSlotView]:
    """Higher score wins; ties and missing scores decide nothing."""
    if team_a.score is None or team_b.score is None:
        return None
    if team_a.score > team_b.score:
        return team_a
    if team_b.score > team_a.score:
        return team_b
    return None


def match_view(record: MatchRecord, teams: Dict[str, TeamDetail], group_id: str, slot_index: int) -> MatchView:
    """
    Bind a fetched record to team details from the shared per-composition
    team map. Scores are only exposed once the match is finished.
    """
    status = record.status
    finished = status == STATUS_FINISHED
    home = resolve_team(teams, record, home=True)
    away = resolve_team(teams, record, home=False)

    team_a = team_slot(home, record.home_score if finished else None)
    team_b = team_slot(away, record.away_score if finished else None)
    winner = decide_winner(team_a, team_b) if finished else None

    return MatchView(
        id=str(record.id),
        label=record.label or f"Match {record.id}",
        round=record.round or "group",
        status=status,
        status_label=STATUS_LABELS.get(status, STATUS_LABELS[STATUS_SCHEDULED]),
        schedule_label=format_schedule_label(record.date_time),
        scheduled_at_utc=record.date_time.astimezone(timezone.utc).isoformat() if record.date_time else None,
        venue=record.venue or DEFAULT_VENUE,
        broadcast=record.broadcast,
        team_a=team_a,
        team_b=team_b,
        winner_id=winner.id if winner else None,
        group_id=group_id,
        slot_index=slot_index,
        is_placeholder=False,
    )


@dataclass
class GroupResult:
    winners: List[TeamSlotView] = field(default_factory=list)
    champion: Optional[TeamSlotView] = None


def resolve_group_results(matches: Sequence[MatchView]) -> GroupResult:
    """
    Distinct winners in match order; the champion is the last of them.

    Placeholder, unfinished and tied matches are skipped entirely.
    """
    result = GroupResult()
    seen = set()
    for match in matches:
        if match.is_placeholder or match.status != STATUS_FINISHED:
            continue
        winner = decide_winner(match.team_a, match.team_b)
        if winner and winner.id not in seen:
            seen.add(winner.id)
            result.winners.append(winner)
    if result.winners:
        result.champion = result.winners[-1]
    return result


@dataclass
class GroupBuild:
    view: GroupView
    realized: List[MatchView]


class BracketViewBuilder:
    def build_group(
        self,
        group_id: str,
        name: str,
        color: str,
        slot_ids: Sequence[Optional[int]],
        records: Dict[int, FetchOutcome],
        teams: Dict[str, TeamDetail],
    ) -> GroupBuild:
        """`records` holds the fetch outcome for every assigned id in `slot_ids`."""
        views: List[MatchView] = []
        realized: List[MatchView] = []
        for slot_index, match_id in enumerate(slot_ids):
            if match_id is None:
                views.append(placeholder_match_view(group_id, slot_index))
                continue

            outcome = records.get(match_id)
            if not isinstance(outcome, MatchRecord):
                logger.warning(f"Slot {group_id}[{slot_index}] degraded to placeholder; match {match_id}: {outcome}")
                views.append(placeholder_match_view(group_id, slot_index))
                continue

            view = match_view(outcome, teams, group_id, slot_index)
            views.append(view)
            realized.append(view)

        result = resolve_group_results(views)
        return GroupBuild(
            view=GroupView(
                id=group_id,
                name=name,
                color=color,
                matches=views,
                qualifiers=result.winners,
                champion=result.champion,
            ),
            realized=realized,
        )
