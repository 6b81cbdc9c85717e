import os
from dataclasses import dataclass
from functools import lru_cache
from typing import List

from dotenv import load_dotenv

load_dotenv()

TOURNAMENT_ID = "cup-current"
TOURNAMENT_CODE = "CUP-2025"
TOURNAMENT_NAME = "Invitational Cup"
TOURNAMENT_SEASON = "2025"

# Ordered: group position drives the group color and the final's side (A/B)
GROUPS = (
    ("group-a", "Group A"),
    ("group-b", "Group B"),
)
SLOTS_PER_GROUP = 2


@dataclass(frozen=True)
class Settings:
    matches_service_base_url: str
    teams_service_base_url: str
    remote_timeout_seconds: float
    composition_deadline_seconds: float
    cache_ttl_seconds: float
    final_quarter_duration_seconds: int
    cors_origins: List[str]
    log_level: str


def _float_env(name: str, default: str) -> float:
    return float(os.getenv(name, default))


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Read settings from the environment (and .env) once per process"""
    extra = os.getenv("CORS_ORIGINS", "")
    return Settings(
        matches_service_base_url=os.getenv("MATCHES_SERVICE_BASE_URL", "http://matches-service:8081/api"),
        teams_service_base_url=os.getenv("TEAMS_SERVICE_BASE_URL", "http://teams-service:8082/api"),
        remote_timeout_seconds=_float_env("REMOTE_TIMEOUT_SECONDS", "5"),
        composition_deadline_seconds=_float_env("COMPOSITION_DEADLINE_SECONDS", "10"),
        cache_ttl_seconds=_float_env("TOURNAMENT_CACHE_TTL_SECONDS", "45"),
        final_quarter_duration_seconds=int(os.getenv("FINAL_QUARTER_DURATION_SECONDS", "600")),
        cors_origins=[o.strip() for o in extra.split(",") if o.strip()],
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
