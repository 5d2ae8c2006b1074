"""
tabulation/routes/admin.py
Permission overrides and active-event switching
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from tabulation.database import get_store
from tabulation.rbac.dependencies import get_admin, get_staff
from tabulation.schemas.admin import (
    AccessPermissionResponse,
    DivisionPermissionRequest,
    EventResponse,
    ParticipantPermissionRequest,
    ScoringPermissionRequest,
    ScoringPermissionResponse,
)
from tabulation.services.event_service import set_active_event
from tabulation.services.permission_service import (
    clear_scoring_permission,
    save_scoring_permission,
    set_division_permissions,
    set_participant_permissions,
)
from tabulation.services.row_store import RowStore
from tabulation.services.session_service import Principal

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Administration"])


def _event_id(principal: Principal) -> Optional[int]:
    """Tabulators are bound to their event; administrators are not."""
    return principal.event.id if principal.event is not None else None


@router.put("/permissions/scoring", response_model=ScoringPermissionResponse)
async def put_scoring_permission(
    payload: ScoringPermissionRequest,
    principal: Principal = Depends(get_staff),
    store: RowStore = Depends(get_store),
):
    """Open or lock one criterion (or the whole contest) for a judge."""
    row = await save_scoring_permission(
        store, payload.judge_id, payload.contest_id, payload.criteria_id, payload.can_edit,
        event_id=_event_id(principal),
    )
    return ScoringPermissionResponse.model_validate(row)


@router.delete("/permissions/scoring")
async def delete_scoring_permission(
    judge_id: int = Query(...),
    contest_id: int = Query(...),
    criteria_id: Optional[int] = Query(None),
    principal: Principal = Depends(get_staff),
    store: RowStore = Depends(get_store),
):
    """Remove an override; the next rule in precedence applies again."""
    removed = await clear_scoring_permission(
        store, judge_id, contest_id, criteria_id, event_id=_event_id(principal)
    )
    return {"success": True, "removed": removed}


@router.put("/permissions/divisions", response_model=AccessPermissionResponse)
async def put_division_permissions(
    payload: DivisionPermissionRequest,
    principal: Principal = Depends(get_staff),
    store: RowStore = Depends(get_store),
):
    rows = await set_division_permissions(
        store, payload.judge_id, payload.contest_id, payload.division_ids, event_id=_event_id(principal)
    )
    return AccessPermissionResponse(
        judge_id=payload.judge_id,
        contest_id=payload.contest_id,
        restricted_to=[row.division_id for row in rows] or None,
    )


@router.put("/permissions/participants", response_model=AccessPermissionResponse)
async def put_participant_permissions(
    payload: ParticipantPermissionRequest,
    principal: Principal = Depends(get_staff),
    store: RowStore = Depends(get_store),
):
    rows = await set_participant_permissions(
        store, payload.judge_id, payload.contest_id, payload.participant_ids,
        event_id=_event_id(principal),
    )
    return AccessPermissionResponse(
        judge_id=payload.judge_id,
        contest_id=payload.contest_id,
        restricted_to=[row.participant_id for row in rows] or None,
    )


@router.post("/events/{event_id}/activate", response_model=EventResponse)
async def activate_event(
    event_id: int,
    principal: Principal = Depends(get_admin),
    store: RowStore = Depends(get_store),
):
    """Make this the only active event."""
    event = await set_active_event(store, event_id)
    return EventResponse.model_validate(event)
