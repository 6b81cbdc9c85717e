from bracket_aggregator.models.match_record import (
    STATUS_FINISHED,
    STATUS_LIVE,
    STATUS_SCHEDULED,
    CatalogTeam,
    MatchRecord,
    normalize_status,
)
from bracket_aggregator.models.views import (
    GroupView,
    MatchView,
    Palette,
    TeamDetail,
    TeamSlotView,
    TeamStat,
    TournamentDetail,
    TournamentSummary,
)

__all__ = [
    "STATUS_SCHEDULED",
    "STATUS_LIVE",
    "STATUS_FINISHED",
    "normalize_status",
    "MatchRecord",
    "CatalogTeam",
    "Palette",
    "TeamStat",
    "TeamDetail",
    "TeamSlotView",
    "MatchView",
    "GroupView",
    "TournamentSummary",
    "TournamentDetail",
]
