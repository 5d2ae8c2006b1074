"""
tabulation/routes/judge.py
Judge score entry, submit-all and permission lookups
"""
import logging
from typing import List

from fastapi import APIRouter, Depends

from tabulation.database import get_store
from tabulation.exceptions import NotFoundError, ScoreValidationError
from tabulation.rbac.dependencies import get_judge
from tabulation.rbac.scoring_permissions import PermissionResolver
from tabulation.schemas.scoring import (
    CriterionPermission,
    JudgeContestResponse,
    JudgePermissionsResponse,
    ScoreRowResponse,
    ScoreWriteRequest,
    ScoreWriteResponse,
    SubmissionResponse,
    SubmitAllRequest,
)
from tabulation.services.row_store import RowStore
from tabulation.services.scoring_service import save_score
from tabulation.services.session_service import Principal
from tabulation.services.submission_service import submit_all
from tabulation.services.tabulation_service import judge_contest_overview

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/judge", tags=["Judge"])


async def _assigned_contest(store: RowStore, principal: Principal, contest_id: int):
    contest = await store.get_row("contest", contest_id)
    assigned = await PermissionResolver(store).is_assigned(principal.id, contest_id)
    if contest is None or not assigned or contest.event_id != principal.record.event_id:
        raise NotFoundError("Contest", contest_id)
    return contest


@router.get("/contests", response_model=List[JudgeContestResponse])
async def list_contests(
    principal: Principal = Depends(get_judge),
    store: RowStore = Depends(get_store),
):
    """Assigned contests with this judge's scoring progress."""
    principal.ensure_event_active()
    overview = await judge_contest_overview(store, principal.record)
    return [
        JudgeContestResponse(
            id=item.contest.id,
            name=item.contest.name,
            contest_code=item.contest.contest_code,
            scoring_type=item.contest.scoring_type,
            completed=item.progress.completed,
            total=item.progress.total,
            percent=item.progress.percent,
            submitted=item.submitted,
        )
        for item in overview
    ]


@router.put("/contests/{contest_id}/scores", response_model=ScoreWriteResponse)
async def put_score(
    contest_id: int,
    payload: ScoreWriteRequest,
    principal: Principal = Depends(get_judge),
    store: RowStore = Depends(get_store),
):
    """Save one score. Locked cells are reported, not raised."""
    principal.ensure_event_active()
    await _assigned_contest(store, principal, contest_id)
    participant = await store.require_row("participant", payload.participant_id, "Participant")
    if participant.contest_id != contest_id:
        raise ScoreValidationError("Participant is not in this contest.")

    result = await save_score(
        store, principal.record, payload.participant_id, payload.criteria_id, payload.value
    )
    return ScoreWriteResponse(
        status=result.status.value,
        message=result.message,
        reason=result.reason,
        score=ScoreRowResponse.model_validate(result.row) if result.row is not None else None,
    )


@router.post("/contests/{contest_id}/submit", response_model=SubmissionResponse)
async def post_submit_all(
    contest_id: int,
    payload: SubmitAllRequest,
    principal: Principal = Depends(get_judge),
    store: RowStore = Depends(get_store),
):
    """Validate, flush pending edits, write totals and lock the contest."""
    principal.ensure_event_active()
    await _assigned_contest(store, principal, contest_id)
    pending = {(edit.participant_id, edit.criteria_id): edit.value for edit in payload.pending}
    result = await submit_all(store, principal.record, contest_id, payload.division_id, pending)
    return SubmissionResponse(
        contest_id=result.contest_id,
        division_id=result.division_id,
        totals=result.totals,
        flushed=result.flushed,
        marker_created=result.marker_created,
    )


@router.get("/contests/{contest_id}/permissions", response_model=JudgePermissionsResponse)
async def get_permissions(
    contest_id: int,
    principal: Principal = Depends(get_judge),
    store: RowStore = Depends(get_store),
):
    """Which criteria this judge may edit, and any division/participant restriction."""
    await _assigned_contest(store, principal, contest_id)
    access = await PermissionResolver(store).load(principal.id, contest_id)
    criteria = await store.query_rows("criteria", {"contest_id": contest_id})
    decisions = access.editable_criteria(criterion.id for criterion in criteria)
    return JudgePermissionsResponse(
        contest_id=contest_id,
        submitted=access.submitted,
        criteria=[
            CriterionPermission(criteria_id=criterion_id, can_edit=decision.can_edit, source=decision.source.value)
            for criterion_id, decision in decisions.items()
        ],
        division_ids=sorted(access.divisions) if access.divisions is not None else None,
        participant_ids=sorted(access.participants) if access.participants is not None else None,
    )
