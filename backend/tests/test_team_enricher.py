from bracket_aggregator.models.match_record import CatalogTeam
from bracket_aggregator.services.team_enricher import (
    PALETTE_TABLE,
    enrich,
    resolve_team,
    short_code,
)
from tests.conftest import make_record


def test_enrich_is_deterministic_by_index():
    team = CatalogTeam(id=7, name="Lions", city="Lagos", coach="Ada")
    assert enrich(team, 3) == enrich(team, 3)

    detail = enrich(team, 3)
    assert detail.id == "7"
    assert detail.seed == 4
    assert detail.palette == PALETTE_TABLE[3]
    assert detail.stats[0].value == "76.0"
    assert "Lagos" in detail.narrative


def test_palette_wraps_around_table():
    team = CatalogTeam(id=1, name="Lions")
    assert enrich(team, len(PALETTE_TABLE) + 2).palette == PALETTE_TABLE[2]


def test_short_code_prefers_acronym():
    assert short_code(CatalogTeam(id=1, name="Lions", acronym="lnx")) == "LNX"
    assert short_code(CatalogTeam(id=1, name="Tigers")) == "TIG"
    assert short_code(CatalogTeam(id=42)) == "TM4"


def test_missing_name_falls_back_to_id():
    assert enrich(CatalogTeam(id=42), 0).name == "Team 42"


def test_resolve_team_reuses_catalog_detail():
    teams = {"1": enrich(CatalogTeam(id=1, name="Lions"), 0)}
    detail = resolve_team(teams, make_record(10, 1, 2), home=True)
    assert detail is teams["1"]


def test_unknown_teams_continue_index_from_map_size():
    teams = {"1": enrich(CatalogTeam(id=1, name="Lions"), 0)}
    record = make_record(10, 8, 9, homeTeamName="Eagles", awayTeamName="Owls")

    home = resolve_team(teams, record, home=True)
    away = resolve_team(teams, record, home=False)

    assert (home.name, home.seed) == ("Eagles", 2)
    assert (away.name, away.seed) == ("Owls", 3)
    assert home.palette != away.palette
    assert set(teams) == {"1", "8", "9"}
