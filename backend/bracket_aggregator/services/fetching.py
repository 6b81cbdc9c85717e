"""
Concurrent, deadline-bounded record fetches.

Used by the read path (per-slot fetches) and by assignment validation
("other" assigned records). Each id maps to either the fetched record or
the BracketError that stands in for it; a fetch still running when the
deadline passes maps to RemoteUnavailable.
"""
import logging
import time
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Callable, Dict, Iterable, Optional, Union

from bracket_aggregator.models.match_record import MatchRecord
from bracket_aggregator.services.errors import BracketError, RemoteUnavailable

logger = logging.getLogger(__name__)

MAX_WORKERS = 8

FetchOutcome = Union[MatchRecord, BracketError]


class Deadline:
    """Caller-supplied time budget for one composition pass (None: unbounded)."""

    def __init__(self, seconds: Optional[float], clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._expires_at = None if seconds is None else clock() + seconds

    def remaining(self) -> Optional[float]:
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - self._clock())

    @property
    def expired(self) -> bool:
        return self._expires_at is not None and self._clock() >= self._expires_at


def fetch_records(
    client,
    match_ids: Iterable[int],
    deadline_seconds: Optional[float] = None,
) -> Dict[int, FetchOutcome]:
    ids = list(dict.fromkeys(match_ids))
    if not ids:
        return {}
    if deadline_seconds is not None and deadline_seconds <= 0:
        logger.warning(f"Deadline already spent; skipping fetch of {len(ids)} match(es)")
        return {match_id: RemoteUnavailable(f"No time left to fetch match {match_id}") for match_id in ids}

    executor = ThreadPoolExecutor(max_workers=min(MAX_WORKERS, len(ids)))
    try:
        futures = {executor.submit(client.fetch_by_id, match_id): match_id for match_id in ids}
        done, not_done = wait(futures, timeout=deadline_seconds)
    finally:
        # Never block on a hung request past the deadline
        executor.shutdown(wait=False, cancel_futures=True)

    outcomes: Dict[int, FetchOutcome] = {}
    for future, match_id in futures.items():
        if future in not_done:
            future.cancel()
            logger.warning(f"Fetch of match {match_id} exceeded the {deadline_seconds}s deadline")
            outcomes[match_id] = RemoteUnavailable(f"Fetch of match {match_id} timed out")
            continue
        try:
            outcomes[match_id] = future.result()
        except BracketError as e:
            outcomes[match_id] = e
    return outcomes
