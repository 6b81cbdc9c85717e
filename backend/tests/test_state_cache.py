import pytest

from bracket_aggregator.services.state_cache import TournamentStateCache
from tests.conftest import FakeClock


@pytest.fixture
def entry_parts(service):
    entry = service.get_state()
    return entry.summary, entry.detail


def test_miss_when_empty():
    assert TournamentStateCache(clock=FakeClock()).get() is None


def test_hit_within_ttl(entry_parts):
    clock = FakeClock()
    cache = TournamentStateCache(ttl_seconds=45, clock=clock)
    stored = cache.put(*entry_parts)

    clock.advance(44.9)
    assert cache.get() is stored


def test_expires_at_ttl(entry_parts):
    clock = FakeClock()
    cache = TournamentStateCache(ttl_seconds=45, clock=clock)
    cache.put(*entry_parts)

    clock.advance(45)
    assert cache.get() is None


def test_force_bypasses_entry(entry_parts):
    cache = TournamentStateCache(clock=FakeClock())
    cache.put(*entry_parts)
    assert cache.get(force=True) is None


def test_clear_drops_fresh_entry(entry_parts):
    cache = TournamentStateCache(clock=FakeClock())
    cache.put(*entry_parts)
    cache.clear()
    assert cache.get() is None
