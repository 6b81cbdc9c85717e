"""
Composed tournament view.

Everything here is derived: rebuilt from scratch on every composition pass
and never stored on its own. Serialized as-is by the read and write
endpoints.
"""
from typing import Dict, List, Optional

from pydantic import BaseModel

from bracket_aggregator.models.match_record import Score


class Palette(BaseModel):
    primary: str
    secondary: str


class TeamStat(BaseModel):
    label: str
    value: str


class TeamDetail(BaseModel):
    id: str
    name: str
    short_name: str
    city: Optional[str] = None
    coach: Optional[str] = None
    seed: int
    record: str = "0-0"
    streak: str = "N/A"
    palette: Palette
    narrative: str
    players: List[str]
    stats: List[TeamStat]


class TeamSlotView(BaseModel):
    """One side of a match view: a bound team, or a labeled placeholder."""

    id: Optional[str] = None
    display_name: str
    short_name: Optional[str] = None
    seed: Optional[int] = None
    record: Optional[str] = None
    score: Optional[Score] = None
    is_placeholder: bool
    origin_label: Optional[str] = None
    detail: Optional[TeamDetail] = None
    palette: Optional[Palette] = None


class MatchView(BaseModel):
    id: str
    label: str
    round: str
    status: str
    status_label: str
    schedule_label: str
    scheduled_at_utc: Optional[str] = None
    venue: str
    broadcast: Optional[str] = None
    team_a: TeamSlotView
    team_b: TeamSlotView
    winner_id: Optional[str] = None
    group_id: str
    slot_index: int
    is_placeholder: bool


class GroupView(BaseModel):
    id: str
    name: str
    color: str
    matches: List[MatchView]
    qualifiers: List[TeamSlotView]
    champion: Optional[TeamSlotView] = None


class TournamentSummary(BaseModel):
    id: str
    code: str
    name: str
    season: str
    hero_title: str
    location: str
    schedule_label: str
    progress: float
    matches_played: int
    total_matches: int


class TournamentDetail(BaseModel):
    id: str
    code: str
    name: str
    hero_title: str
    season: str
    location: str
    venue: str
    description: str
    schedule_label: str
    updated_label: str
    progress: float
    matches_played: int
    total_matches: int
    summary: str
    groups: List[GroupView]
    final: MatchView
    winner: Optional[TeamSlotView] = None
    teams: List[TeamDetail]
    teams_index: Dict[str, TeamDetail]
