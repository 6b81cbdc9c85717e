"""Team catalog client. Used only to enrich display data, so it never raises."""
import logging
from typing import Any, List, Optional

import requests
from pydantic import ValidationError

from bracket_aggregator.models.match_record import CatalogTeam

logger = logging.getLogger(__name__)


def _unwrap_team_list(payload: Any) -> List[Any]:
    """The catalog answers with a bare list or a `content`/`data` page wrapper."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in ("content", "data"):
            if isinstance(payload.get(key), list):
                return payload[key]
    return []


class TeamCatalogClient:
    def __init__(self, base_url: str, timeout: float = 5.0, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch_teams(self, timeout: Optional[float] = None) -> List[CatalogTeam]:
        """GET /teams?page=0&size=200. Any failure yields an empty roster."""
        url = f"{self.base_url}/teams"
        try:
            resp = self.session.get(url, params={"page": 0, "size": 200}, timeout=timeout or self.timeout)
            resp.raise_for_status()
            payload = resp.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"Team catalog unavailable at {url}: {e}")
            return []

        teams = []
        for raw in _unwrap_team_list(payload):
            try:
                teams.append(CatalogTeam.model_validate(raw))
            except ValidationError:
                logger.warning(f"Skipping malformed team catalog entry: {raw!r}")
        return teams
