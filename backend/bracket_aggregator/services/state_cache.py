"""
Time-bounded memo of the composed tournament state.

Staleness is checked lazily on read; there is no eviction thread. Every
mutation clears the entry regardless of its age.
"""
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from bracket_aggregator.models.views import TournamentDetail, TournamentSummary


@dataclass(frozen=True)
class CacheEntry:
    summary: TournamentSummary
    detail: TournamentDetail
    created_at: float


class TournamentStateCache:
    def __init__(self, ttl_seconds: float = 45.0, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._entry: Optional[CacheEntry] = None

    def get(self, force: bool = False) -> Optional[CacheEntry]:
        if force:
            return None
        with self._lock:
            entry = self._entry
        if entry is None or self._clock() - entry.created_at >= self.ttl_seconds:
            return None
        return entry

    def put(self, summary: TournamentSummary, detail: TournamentDetail) -> CacheEntry:
        entry = CacheEntry(summary=summary, detail=detail, created_at=self._clock())
        with self._lock:
            self._entry = entry
        return entry

    def clear(self) -> None:
        with self._lock:
            self._entry = None
