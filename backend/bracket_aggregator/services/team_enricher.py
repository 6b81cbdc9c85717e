"""
Team detail enrichment.

Turns a catalog entry (or a team known only from a match record) into a
display-ready TeamDetail. Deterministic: the same (team, index) always
yields the same palette, seed and generated fields.
"""
from typing import Dict, Optional

from bracket_aggregator.models.match_record import CatalogTeam, MatchRecord
from bracket_aggregator.models.views import Palette, TeamDetail, TeamStat

PALETTE_TABLE = (
    Palette(primary="#2563eb", secondary="#60a5fa"),
    Palette(primary="#f97316", secondary="#fed7aa"),
    Palette(primary="#10b981", secondary="#6ee7b7"),
    Palette(primary="#7c3aed", secondary="#c4b5fd"),
    Palette(primary="#14b8a6", secondary="#5eead4"),
    Palette(primary="#0ea5e9", secondary="#93c5fd"),
    Palette(primary="#f87171", secondary="#fecaca"),
    Palette(primary="#a855f7", secondary="#d8b4fe"),
)


def palette_for(index: int) -> Palette:
    return PALETTE_TABLE[index % len(PALETTE_TABLE)]


def short_code(team: CatalogTeam) -> str:
    """First three letters of acronym or name; falls back to TM<id>."""
    source = team.acronym or team.name or f"TM{team.id}"
    return source[:3].upper()


def enrich(team: CatalogTeam, index: int) -> TeamDetail:
    name = team.name or f"Team {team.id}"
    return TeamDetail(
        id=str(team.id),
        name=name,
        short_name=short_code(team),
        city=team.city,
        coach=team.coach,
        seed=index + 1,
        palette=palette_for(index),
        narrative=(
            f"{name} represents {team.city or 'the league'}, "
            f"coached by {team.coach or 'its current staff'}."
        ),
        players=[f"{name} Player {n}" for n in (1, 2, 3)],
        stats=[
            TeamStat(label="PPG", value=f"{70 + index * 2:.1f}"),
            TeamStat(label="RPG", value=f"{34 + index:.1f}"),
            TeamStat(label="APG", value=f"{18 + index:.1f}"),
        ],
    )


def team_from_record(record: MatchRecord, home: bool) -> CatalogTeam:
    """Synthesize a catalog entry from the names embedded in a match record."""
    team_id = record.home_team_id if home else record.away_team_id
    name: Optional[str] = record.home_team_name if home else record.away_team_name
    return CatalogTeam(id=team_id, name=name or f"Team {team_id}")


def resolve_team(teams: Dict[str, TeamDetail], record: MatchRecord, home: bool) -> TeamDetail:
    """
    Look a record's team up in the per-composition team map, enriching and
    registering a fallback when the catalog did not know it.

    The fallback index continues from the current map size so palettes stay
    distinct within one composition pass.
    """
    team_id = str(record.home_team_id if home else record.away_team_id)
    detail = teams.get(team_id)
    if detail is None:
        detail = enrich(team_from_record(record, home), len(teams))
        teams[detail.id] = detail
    return detail
