"""
Payload models for the two remote services.

These are read-only mirrors of what the match-record service and the team
catalog return. Field names are snake_case in Python and camelCase on the
wire; unknown fields are ignored so upstream additions never break parsing.
"""
from datetime import datetime, timezone
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

STATUS_SCHEDULED = "scheduled"
STATUS_LIVE = "live"
STATUS_FINISHED = "finished"

KNOWN_STATUSES = (STATUS_SCHEDULED, STATUS_LIVE, STATUS_FINISHED)

# Scores pass through as reported; fractional values are not truncated
Score = Union[int, float]


def normalize_status(raw: Any) -> str:
    """Case-insensitive status; anything unknown (or missing) is `scheduled`."""
    value = str(raw or "").strip().lower()
    if value in KNOWN_STATUSES:
        return value
    return STATUS_SCHEDULED


def _numeric_or_none(value: Any) -> Optional[Score]:
    # bool is an int subclass; a JSON true/false is not a score
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


class MatchRecord(BaseModel):
    """GET /api/matches/{id}"""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int
    home_team_id: int = Field(alias="homeTeamId")
    away_team_id: int = Field(alias="awayTeamId")
    home_team_name: Optional[str] = Field(default=None, alias="homeTeamName")
    away_team_name: Optional[str] = Field(default=None, alias="awayTeamName")
    status: str = STATUS_SCHEDULED
    home_score: Optional[Score] = Field(default=None, alias="homeScore")
    away_score: Optional[Score] = Field(default=None, alias="awayScore")
    date_time: Optional[datetime] = Field(default=None, alias="dateTime")
    label: Optional[str] = None
    round: Optional[str] = None
    venue: Optional[str] = None
    broadcast: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status_field(cls, v):
        return normalize_status(v)

    @field_validator("home_score", "away_score", mode="before")
    @classmethod
    def coerce_score(cls, v):
        return _numeric_or_none(v)

    @field_validator("date_time", mode="after")
    @classmethod
    def assume_utc(cls, v):
        """Naive timestamps from the match service are UTC."""
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @property
    def team_ids(self) -> tuple:
        return (str(self.home_team_id), str(self.away_team_id))


class CatalogTeam(BaseModel):
    """One entry of GET /api/teams"""

    model_config = ConfigDict(extra="ignore")

    id: Any
    name: Optional[str] = None
    acronym: Optional[str] = None
    city: Optional[str] = None
    coach: Optional[str] = None
