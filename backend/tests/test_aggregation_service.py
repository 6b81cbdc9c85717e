"""
Orchestrator behavior: read-through caching, write invalidation, partial
failure tolerance and final provisioning across whole composition passes.
"""
import threading
import time
from datetime import timedelta

import pytest

from bracket_aggregator.services.errors import AssignmentValidationError, RemoteUnavailable
from tests.conftest import FIXED_NOW, make_record


@pytest.fixture
def bracket(match_client):
    """Lions 80-70 Tigers, Bears 60-65 Wolves, Hawks 55-50 Sharks (all finished)."""
    match_client.add(make_record(10, 1, 2, "finished", 80, 70))
    match_client.add(make_record(11, 3, 4, "finished", 60, 65))
    match_client.add(make_record(12, 5, 6, "finished", 55, 50))
    match_client.add(make_record(13, 2, 3))
    return match_client


def test_empty_bracket(service, match_client):
    detail = service.get_state().detail

    assert detail.id == "cup-current"
    assert [g.id for g in detail.groups] == ["group-a", "group-b"]
    assert all(m.is_placeholder for g in detail.groups for m in g.matches)
    assert detail.final.is_placeholder
    assert detail.progress == 0
    assert detail.total_matches == 0
    assert detail.winner is None
    assert len(detail.teams) == 6
    assert match_client.fetch_calls == []


def test_group_colors_follow_group_position(service):
    detail = service.get_state().detail
    assert detail.groups[0].color == "#60a5fa"
    assert detail.groups[1].color == "#fed7aa"


def test_assign_slot_stores_id_and_clears_final(service, bracket):
    service.store.set_final(500)

    service.assign_slot("group-a", 0, 10)

    snap = service.store.snapshot()
    assert snap.groups["group-a"] == (10, None)
    assert snap.final_match_id is None


def test_clearing_slot_clears_final(service, bracket):
    service.assign_slot("group-a", 0, 10)
    service.store.set_final(500)

    service.assign_slot("group-a", 0, None)

    snap = service.store.snapshot()
    assert snap.groups["group-a"] == (None, None)
    assert snap.final_match_id is None


def test_same_match_twice_rejected(service, bracket):
    service.assign_slot("group-a", 0, 10)
    with pytest.raises(AssignmentValidationError):
        service.assign_slot("group-b", 0, 10)


def test_team_overlap_rejected_and_store_unchanged(service, bracket):
    service.assign_slot("group-a", 0, 10)  # Lions vs Tigers
    before = service.store.snapshot()

    with pytest.raises(AssignmentValidationError):
        service.assign_slot("group-b", 0, 13)  # Tigers vs Bears

    assert service.store.snapshot() == before


def test_remote_outage_during_validation_fails_the_write(service, bracket):
    service.assign_slot("group-a", 0, 10)
    bracket.unavailable.add(10)

    with pytest.raises(RemoteUnavailable):
        service.assign_slot("group-b", 0, 12)
    assert service.store.snapshot().groups["group-b"] == (None, None)


def test_cached_reads_are_identical_and_fetch_once(service, bracket, team_client):
    service.store.write_slot("group-a", 0, 10)

    first = service.get_state()
    fetches = len(bracket.fetch_calls)
    second = service.get_state()

    assert second.detail.model_dump_json() == first.detail.model_dump_json()
    assert len(bracket.fetch_calls) == fetches
    assert team_client.calls == 1


def test_cache_expires_after_ttl(service, bracket, team_client, clock):
    service.get_state()
    clock.advance(45)
    service.get_state()
    assert team_client.calls == 2


def test_force_refresh_bypasses_cache(service, team_client):
    service.get_state()
    service.get_state(force=True)
    assert team_client.calls == 2


def test_assignment_visible_within_ttl(service, bracket):
    service.get_state()
    service.assign_slot("group-a", 0, 10)

    detail = service.get_state().detail
    assert detail.groups[0].matches[0].id == "10"


def test_match_update_visible_within_ttl(service, bracket):
    bracket.add(make_record(20, 1, 4))
    service.assign_slot("group-a", 0, 20)
    assert service.get_state().detail.groups[0].matches[0].status == "scheduled"

    service.report_match_update(20, "finished", 3, 1)

    view = service.get_state().detail.groups[0].matches[0]
    assert view.status == "finished"
    assert view.winner_id == "1"
    assert bracket.finish_calls == [(20, 3, 1)]


def test_match_update_refreshes_even_when_forward_fails(service, bracket, team_client):
    bracket.finish_fails = True
    service.get_state()

    detail = service.report_match_update(10, "finished", 1, 0)

    assert team_client.calls == 2
    assert detail.id == "cup-current"


def test_non_finished_status_is_not_forwarded(service, bracket):
    service.report_match_update(10, "live")
    assert bracket.finish_calls == []


def test_finished_status_is_case_insensitive(service, bracket):
    service.report_match_update(10, "Finished", 2, 1)
    assert bracket.finish_calls == [(10, 2, 1)]


def test_group_a_scenario(service, bracket):
    """Two decided matches in group A, group B empty."""
    service.assign_slot("group-a", 0, 10)
    detail = service.assign_slot("group-a", 1, 11)

    group_a, group_b = detail.groups
    assert [q.display_name for q in group_a.qualifiers] == ["Lions", "Wolves"]
    assert group_a.champion.display_name == "Wolves"
    assert group_b.champion is None
    assert detail.final.is_placeholder
    assert detail.final.status_label == "Awaiting winners"
    assert detail.final.team_b.display_name == "Group B winner"
    assert bracket.create_calls == []


def test_both_champions_schedule_final_once(service, bracket):
    service.assign_slot("group-a", 0, 10)
    detail = service.assign_slot("group-b", 0, 12)

    assert len(bracket.create_calls) == 1
    home, away, when = bracket.create_calls[0]
    assert (home, away) == (1, 5)
    assert when == FIXED_NOW + timedelta(days=2)

    assert not detail.final.is_placeholder
    assert detail.final.round == "final"
    assert service.store.snapshot().final_match_id == bracket.next_id

    # A later pass reuses the stored final
    service.get_state(force=True)
    assert len(bracket.create_calls) == 1


def test_final_scheduled_after_latest_match_date(service, bracket):
    bracket.add(make_record(30, 1, 2, "finished", 80, 70, date_time="2026-04-10T20:00:00Z"))
    service.assign_slot("group-a", 0, 30)
    service.assign_slot("group-b", 0, 12)

    _, _, when = bracket.create_calls[0]
    assert when.isoformat() == "2026-04-12T20:00:00+00:00"


def test_failed_final_creation_retried_on_next_pass(service, bracket):
    bracket.create_fails = True
    service.assign_slot("group-a", 0, 10)
    detail = service.assign_slot("group-b", 0, 12)

    assert detail.final.is_placeholder
    assert detail.final.status_label == "Schedule final"
    assert service.store.snapshot().final_match_id is None
    assert len(bracket.create_calls) == 1

    bracket.create_fails = False
    detail = service.get_state(force=True).detail
    assert len(bracket.create_calls) == 2
    assert not detail.final.is_placeholder


def test_progress_and_winner(service, bracket):
    service.assign_slot("group-a", 0, 10)
    detail = service.assign_slot("group-b", 0, 12)
    final_id = service.store.snapshot().final_match_id

    # two finished group matches + the scheduled final
    assert (detail.matches_played, detail.total_matches) == (2, 3)
    assert detail.progress == pytest.approx(2 / 3)
    assert detail.winner is None

    detail = service.report_match_update(final_id, "finished", 100, 90)

    assert detail.progress == 1
    assert detail.final.status == "finished"
    assert detail.winner.display_name == "Lions"
    assert detail.winner.score == 100


def test_unreachable_slot_degrades_to_placeholder(service, bracket):
    service.assign_slot("group-a", 0, 10)
    service.assign_slot("group-a", 1, 11)
    bracket.unavailable.add(11)

    detail = service.get_state(force=True).detail

    group_a = detail.groups[0]
    assert [m.is_placeholder for m in group_a.matches] == [False, True]
    assert group_a.champion.display_name == "Lions"
    assert detail.total_matches == 1
    assert service.store.snapshot().groups["group-a"] == (10, 11)


def test_team_catalog_outage_synthesizes_teams(service, bracket, team_client):
    team_client.teams = []
    detail = service.assign_slot("group-a", 0, 10)

    home = detail.groups[0].matches[0].team_a
    assert home.display_name == "Lions"
    assert home.seed == 1
    assert set(detail.teams_index) == {"1", "2"}


def test_summary_mirrors_detail(service, bracket):
    service.assign_slot("group-a", 0, 10)
    entry = service.get_state()

    assert entry.summary.id == entry.detail.id
    assert entry.summary.progress == entry.detail.progress
    assert entry.summary.total_matches == 1


def _block_create(client):
    """Hold every `create` until released; `entered` fires on the first call."""
    entered, release = threading.Event(), threading.Event()
    original_create = client.create

    def blocking_create(*args, **kwargs):
        entered.set()
        release.wait(5)
        return original_create(*args, **kwargs)

    client.create = blocking_create
    return entered, release


def test_slot_change_during_final_creation_drops_the_final(service, bracket):
    service.store.write_slot("group-a", 0, 10)
    service.store.write_slot("group-b", 0, 12)
    entered, release = _block_create(bracket)

    results = []
    reader = threading.Thread(target=lambda: results.append(service.get_state(force=True)))
    reader.start()
    assert entered.wait(5)
    service.store.write_slot("group-b", 0, None)
    release.set()
    reader.join(5)

    assert len(bracket.create_calls) == 1
    snap = service.store.snapshot()
    assert snap.groups["group-b"] == (None, None)
    assert snap.final_match_id is None
    assert results[0].detail.final.is_placeholder
    # composed from the old bracket, so never cached
    assert service.cache.get() is None

    # the cleared match and its teams are not held by a stale final
    service.assign_slot("group-b", 0, 12)
    assert service.store.snapshot().groups["group-b"] == (12, None)


def test_overlapping_reads_create_one_final(service, bracket):
    service.store.write_slot("group-a", 0, 10)
    service.store.write_slot("group-b", 0, 12)
    entered, release = _block_create(bracket)

    results = []
    readers = [
        threading.Thread(target=lambda: results.append(service.get_state(force=True).detail))
        for _ in range(2)
    ]
    for reader in readers:
        reader.start()
    assert entered.wait(5)
    # let the second pass reach the scheduler while the first is still creating
    time.sleep(0.2)
    release.set()
    for reader in readers:
        reader.join(5)

    assert len(bracket.create_calls) == 1
    final_id = service.store.snapshot().final_match_id
    assert final_id == bracket.next_id
    assert [d.final.id for d in results] == [str(final_id), str(final_id)]


def test_caller_deadline_bounds_slot_fetches(service, bracket):
    service.store.write_slot("group-a", 0, 10)
    service.store.write_slot("group-a", 1, 13)
    release = threading.Event()
    original_fetch = bracket.fetch_by_id

    def slow_fetch(match_id, timeout=None):
        if match_id == 13:
            release.wait(5)
        return original_fetch(match_id, timeout)

    bracket.fetch_by_id = slow_fetch
    try:
        detail = service.get_state(force=True, deadline_seconds=0.2).detail
    finally:
        release.set()

    group_a = detail.groups[0]
    assert [m.is_placeholder for m in group_a.matches] == [False, True]
    assert service.store.snapshot().groups["group-a"] == (10, 13)


def test_spent_caller_deadline_makes_no_remote_calls(service, bracket, team_client):
    service.store.write_slot("group-a", 0, 10)
    service.store.write_slot("group-b", 0, 12)

    detail = service.get_state(force=True, deadline_seconds=0).detail

    assert team_client.calls == 0
    assert bracket.fetch_calls == []
    assert bracket.create_calls == []
    assert all(m.is_placeholder for g in detail.groups for m in g.matches)
    assert detail.final.is_placeholder
    assert service.store.snapshot().groups["group-a"] == (10, None)
