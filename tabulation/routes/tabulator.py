"""
tabulation/routes/tabulator.py
Contest rankings, award rankings and per-judge award breakdowns
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from tabulation.database import get_store, store_context
from tabulation.exceptions import NotFoundError
from tabulation.rbac.dependencies import get_staff, get_viewer
from tabulation.schemas.tabulation import (
    AwardBreakdownResponse,
    AwardRankingResponse,
    AwardSummaryResponse,
    ContestRankingResponse,
)
from tabulation.services.row_store import RowStore
from tabulation.services.session_service import Principal
from tabulation.services.tabulation_service import (
    get_award_breakdown,
    get_award_ranking,
    get_contest_ranking,
    list_contest_awards,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tabulator", tags=["Tabulator"])


async def _check_scope(store: RowStore, principal: Principal, table: str, row_id: int, resource: str):
    """The record must exist and belong to the principal's event."""
    row = await store.require_row(table, row_id, resource)
    if principal.event is not None and row.event_id != principal.event.id:
        raise NotFoundError(resource, row_id)
    return row


@router.get("/contests/{contest_id}/rankings", response_model=ContestRankingResponse)
async def contest_rankings(
    contest_id: int,
    division_id: Optional[int] = Query(None, description="Rank one division only"),
    principal: Principal = Depends(get_viewer),
    store: RowStore = Depends(get_store),
):
    """
    Contest ranking on submitted totals.
    Chairmen, tabulators and admins see the sum over judges; judges see their own.
    """
    principal.ensure_event_active()
    await _check_scope(store, principal, "contest", contest_id, "Contest")
    ranking = await get_contest_ranking(
        store, contest_id, principal.viewer, division_id, store_context.settings.tie_break
    )
    return ContestRankingResponse.model_validate(ranking)


@router.get("/contests/{contest_id}/awards", response_model=List[AwardSummaryResponse])
async def contest_awards(
    contest_id: int,
    principal: Principal = Depends(get_viewer),
    store: RowStore = Depends(get_store),
):
    """Active awards placed in the contest."""
    principal.ensure_event_active()
    await _check_scope(store, principal, "contest", contest_id, "Contest")
    return [AwardSummaryResponse.model_validate(award) for award in await list_contest_awards(store, contest_id)]


@router.get("/awards/{award_id}/ranking", response_model=AwardRankingResponse)
async def award_ranking(
    award_id: int,
    division_id: Optional[int] = Query(None),
    principal: Principal = Depends(get_viewer),
    store: RowStore = Depends(get_store),
):
    """Award ranking, or an explicit no-ranking state for special/unconfigured awards."""
    principal.ensure_event_active()
    await _check_scope(store, principal, "award", award_id, "Award")
    ranking = await get_award_ranking(
        store, award_id, principal.viewer, division_id, store_context.settings.tie_break
    )
    return AwardRankingResponse.model_validate(ranking)


@router.get("/awards/{award_id}/breakdown/{judge_id}", response_model=AwardBreakdownResponse)
async def award_breakdown(
    award_id: int,
    judge_id: int,
    division_id: Optional[int] = Query(None),
    principal: Principal = Depends(get_staff),
    store: RowStore = Depends(get_store),
):
    """One judge's category (or criterion) subtotals and award total per participant."""
    principal.ensure_event_active()
    await _check_scope(store, principal, "award", award_id, "Award")
    breakdown = await get_award_breakdown(store, award_id, judge_id, division_id)
    return AwardBreakdownResponse.model_validate(breakdown)
