"""
Match-record service client.

Thin wrapper around the remote match service REST API:
  GET   /matches/{id}          -> MatchRecord
  POST  /matches               -> {id}
  PATCH /matches/{id}/finish   -> ignored

Only `fetch_by_id` raises. `create` and `mark_finished` are best-effort and
report failure through their return value.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

import requests
from pydantic import ValidationError

from bracket_aggregator.models.match_record import MatchRecord, Score
from bracket_aggregator.services.errors import MatchNotFound, RemoteUnavailable

logger = logging.getLogger(__name__)


class MatchRecordClient:
    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        quarter_duration_seconds: int = 600,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.quarter_duration_seconds = quarter_duration_seconds
        self.session = session or requests.Session()

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def fetch_by_id(self, match_id: int, timeout: Optional[float] = None) -> MatchRecord:
        """
        Fetch one match record.

        Raises:
          - MatchNotFound on 404
          - RemoteUnavailable on any other failure
        """
        url = self._url(f"/matches/{match_id}")
        try:
            resp = self.session.get(url, timeout=timeout or self.timeout)
        except requests.RequestException as e:
            raise RemoteUnavailable(f"GET {url} failed: {e}") from e

        if resp.status_code == 404:
            raise MatchNotFound(match_id)
        if not resp.ok:
            raise RemoteUnavailable(f"GET {url} returned {resp.status_code}: {resp.text[:200]}")

        try:
            return MatchRecord.model_validate(resp.json())
        except (ValueError, ValidationError) as e:
            raise RemoteUnavailable(f"GET {url} returned an invalid match record: {e}") from e

    def create(
        self,
        home_team_id: int,
        away_team_id: int,
        scheduled_at: datetime,
        timeout: Optional[float] = None,
    ) -> Optional[int]:
        """Schedule a new match. Returns the new id, or None on any failure."""
        when = scheduled_at.astimezone(timezone.utc) if scheduled_at.tzinfo else scheduled_at
        payload = {
            "homeTeamId": home_team_id,
            "awayTeamId": away_team_id,
            "date": when.strftime("%Y-%m-%d"),
            "time": when.strftime("%H:%M"),
            "quarterDurationSeconds": self.quarter_duration_seconds,
        }
        url = self._url("/matches")
        try:
            resp = self.session.post(url, json=payload, timeout=timeout or self.timeout)
        except requests.RequestException as e:
            logger.warning(f"Unable to schedule match {home_team_id} vs {away_team_id}: {e}")
            return None

        if not resp.ok:
            logger.warning(f"Match service responded {resp.status_code} to schedule request: {resp.text[:200]}")
            return None

        try:
            body = resp.json()
        except ValueError:
            logger.warning("Match service returned a non-JSON body for a schedule request")
            return None

        new_id = body.get("id") if isinstance(body, dict) else None
        if new_id is None:
            logger.warning("Match service schedule response carried no id")
            return None
        try:
            return int(new_id)
        except (TypeError, ValueError):
            logger.warning(f"Match service returned a non-numeric id: {new_id!r}")
            return None

    def mark_finished(
        self,
        match_id: int,
        home_score: Optional[Score] = None,
        away_score: Optional[Score] = None,
        timeout: Optional[float] = None,
    ) -> bool:
        """Fire-and-forget finish. Returns True when the request went through."""
        payload = {}
        if home_score is not None:
            payload["homeScore"] = home_score
        if away_score is not None:
            payload["awayScore"] = away_score

        url = self._url(f"/matches/{match_id}/finish")
        try:
            resp = self.session.patch(url, json=payload, timeout=timeout or self.timeout)
        except requests.RequestException as e:
            logger.warning(f"Finish match {match_id} failed: {e}")
            return False

        if not resp.ok:
            logger.warning(f"Finish match {match_id} returned {resp.status_code}")
            return False
        return True
