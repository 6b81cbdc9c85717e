"""
Tournament bracket endpoints.

Reads serve the cached composed view (`?refresh=true` forces a rebuild,
`?deadline=<seconds>` bounds the remote calls of a rebuild).
Writes mutate the bracket assignment or forward a match status change, then
answer with a freshly composed detail.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field

from bracket_aggregator.config import TOURNAMENT_ID
from bracket_aggregator.models.match_record import Score
from bracket_aggregator.models.views import TournamentDetail, TournamentSummary
from bracket_aggregator.services.aggregation_service import (
    TournamentAggregationService,
    get_aggregation_service,
)
from bracket_aggregator.services.errors import AssignmentValidationError, RemoteUnavailable
from bracket_aggregator.services.slot_validator import is_valid_match_id

logger = logging.getLogger(__name__)

router = APIRouter()


class SlotAssignment(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    match_id: Optional[int] = Field(default=None, alias="matchId")


class MatchStatusUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: Optional[str] = None
    score_a: Optional[Score] = Field(default=None, alias="scoreA")
    score_b: Optional[Score] = Field(default=None, alias="scoreB")


def _require_tournament(tournament_id: str) -> None:
    if tournament_id != TOURNAMENT_ID:
        raise HTTPException(status_code=404, detail="Tournament not found")


@router.get("/tournaments", response_model=List[TournamentSummary])
def list_tournaments(
    refresh: bool = Query(False),
    deadline: Optional[float] = Query(None, gt=0),
    service: TournamentAggregationService = Depends(get_aggregation_service),
):
    """Always exactly one entry: the configured tournament"""
    try:
        return [service.get_state(force=refresh, deadline_seconds=deadline).summary]
    except Exception as e:
        logger.error(f"Tournament list failed: {e}")
        raise HTTPException(status_code=502, detail="Could not load tournaments") from e


@router.get("/tournaments/{tournament_id}", response_model=TournamentDetail)
def get_tournament(
    tournament_id: str,
    refresh: bool = Query(False),
    deadline: Optional[float] = Query(None, gt=0),
    service: TournamentAggregationService = Depends(get_aggregation_service),
):
    _require_tournament(tournament_id)
    try:
        return service.get_state(force=refresh, deadline_seconds=deadline).detail
    except Exception as e:
        logger.error(f"Tournament detail failed: {e}")
        raise HTTPException(status_code=502, detail="Could not load the requested tournament") from e


@router.put(
    "/tournaments/{tournament_id}/groups/{group_id}/slots/{slot_index}",
    response_model=TournamentDetail,
)
def assign_slot(
    tournament_id: str,
    group_id: str,
    slot_index: int,
    payload: SlotAssignment,
    service: TournamentAggregationService = Depends(get_aggregation_service),
):
    """Bind a match to a group slot, or clear it with `{"matchId": null}`."""
    _require_tournament(tournament_id)
    try:
        return service.assign_slot(group_id, slot_index, payload.match_id)
    except AssignmentValidationError as e:
        logger.info(f"Rejected assignment {group_id}[{slot_index}] = {payload.match_id}: {e}")
        raise HTTPException(status_code=400, detail=str(e)) from e
    except RemoteUnavailable as e:
        logger.error(f"Assignment {group_id}[{slot_index}] = {payload.match_id} could not be validated: {e}")
        raise HTTPException(
            status_code=502, detail="Match service unavailable; the assignment could not be validated"
        ) from e


@router.patch("/tournaments/{tournament_id}/matches/{match_id}", response_model=TournamentDetail)
def report_match_update(
    tournament_id: str,
    match_id: int,
    payload: MatchStatusUpdate,
    service: TournamentAggregationService = Depends(get_aggregation_service),
):
    """Forward a finish to the match service (best-effort) and refresh the bracket."""
    _require_tournament(tournament_id)
    if not is_valid_match_id(match_id):
        raise HTTPException(status_code=400, detail="Invalid match id")
    try:
        return service.report_match_update(match_id, payload.status, payload.score_a, payload.score_b)
    except Exception as e:
        logger.error(f"Match {match_id} update failed: {e}")
        raise HTTPException(status_code=502, detail="Could not update the match") from e
