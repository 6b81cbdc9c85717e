from datetime import datetime, timezone
from typing import Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from bracket_aggregator.models.match_record import CatalogTeam, MatchRecord
from bracket_aggregator.services.aggregation_service import (
    TournamentAggregationService,
    get_aggregation_service,
)
from bracket_aggregator.services.errors import MatchNotFound, RemoteUnavailable
from bracket_aggregator.services.state_cache import TournamentStateCache

FIXED_NOW = datetime(2026, 3, 1, 18, 0, tzinfo=timezone.utc)

TEAM_NAMES = {1: "Lions", 2: "Tigers", 3: "Bears", 4: "Wolves", 5: "Hawks", 6: "Sharks"}


def make_record(
    match_id: int,
    home: int,
    away: int,
    status: str = "scheduled",
    home_score: Optional[float] = None,
    away_score: Optional[float] = None,
    date_time: Optional[str] = None,
    **extra,
) -> MatchRecord:
    payload = {
        "id": match_id,
        "homeTeamId": home,
        "awayTeamId": away,
        "homeTeamName": TEAM_NAMES.get(home),
        "awayTeamName": TEAM_NAMES.get(away),
        "status": status,
        "homeScore": home_score,
        "awayScore": away_score,
        "dateTime": date_time,
    }
    payload.update(extra)
    return MatchRecord.model_validate(payload)


class FakeMatchRecordClient:
    """In-memory stand-in for the match-record service."""

    def __init__(self, records: Optional[List[MatchRecord]] = None):
        self.records: Dict[int, MatchRecord] = {r.id: r for r in records or []}
        self.unavailable: set = set()
        self.fetch_calls: List[int] = []
        self.create_calls: List[tuple] = []
        self.finish_calls: List[tuple] = []
        self.create_fails = False
        self.finish_fails = False
        self.next_id = 900

    def add(self, record: MatchRecord) -> MatchRecord:
        self.records[record.id] = record
        return record

    def fetch_by_id(self, match_id, timeout=None) -> MatchRecord:
        self.fetch_calls.append(match_id)
        if match_id in self.unavailable:
            raise RemoteUnavailable(f"match {match_id} unavailable")
        if match_id not in self.records:
            raise MatchNotFound(match_id)
        return self.records[match_id]

    def create(self, home_team_id, away_team_id, scheduled_at, timeout=None):
        self.create_calls.append((home_team_id, away_team_id, scheduled_at))
        if self.create_fails:
            return None
        self.next_id += 1
        self.add(make_record(self.next_id, home_team_id, away_team_id, label="Grand Final"))
        return self.next_id

    def mark_finished(self, match_id, home_score=None, away_score=None, timeout=None) -> bool:
        self.finish_calls.append((match_id, home_score, away_score))
        if self.finish_fails or match_id not in self.records:
            return False
        record = self.records[match_id]
        self.records[match_id] = record.model_copy(
            update={"status": "finished", "home_score": home_score, "away_score": away_score}
        )
        return True


class FakeTeamCatalogClient:
    def __init__(self, teams: Optional[List[CatalogTeam]] = None):
        self.teams = teams if teams is not None else [
            CatalogTeam(id=team_id, name=name) for team_id, name in TEAM_NAMES.items()
        ]
        self.calls = 0

    def fetch_teams(self, timeout=None) -> List[CatalogTeam]:
        self.calls += 1
        return list(self.teams)


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def match_client() -> FakeMatchRecordClient:
    return FakeMatchRecordClient()


@pytest.fixture
def team_client() -> FakeTeamCatalogClient:
    return FakeTeamCatalogClient()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def service(match_client, team_client, clock) -> TournamentAggregationService:
    """Fresh store and cache per test; wall clock pinned to FIXED_NOW."""
    return TournamentAggregationService(
        match_client=match_client,
        team_client=team_client,
        cache=TournamentStateCache(ttl_seconds=45, clock=clock),
        deadline_seconds=2,
        now=lambda: FIXED_NOW,
    )


@pytest.fixture(name="client")
def client_fixture(service: TournamentAggregationService):
    """Test client whose routes resolve to the per-test service"""
    from bracket_aggregator.main import app

    app.dependency_overrides[get_aggregation_service] = lambda: service

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
