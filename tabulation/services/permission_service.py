"""
tabulation/services/permission_service.py
Administrative writes of permission overrides.

Every override names a judge and a contest of the same event. A tabulator
may only touch its own event; an administrator (event_id None) any event.
"""
import logging
from typing import Iterable, List, Optional, Tuple

from tabulation.core.rows import Row
from tabulation.exceptions import NotFoundError, ScoreValidationError

logger = logging.getLogger(__name__)


async def _require_scope(store, judge_id: int, contest_id: int,
                         event_id: Optional[int]) -> Tuple[Row, Row]:
    """Judge and contest must exist, share an event, and sit in the caller's event."""
    contest = await store.require_row("contest", contest_id, "Contest")
    if event_id is not None and contest.event_id != event_id:
        raise NotFoundError("Contest", contest_id)
    judge = await store.require_row("user_judge", judge_id, "Judge")
    if judge.event_id != contest.event_id:
        raise NotFoundError("Judge", judge_id)
    return judge, contest


async def save_scoring_permission(
    store,
    judge_id: int,
    contest_id: int,
    criterion_id: Optional[int],
    can_edit: bool,
    event_id: Optional[int] = None,
) -> Row:
    """
    Upsert an edit override; criterion_id None sets the contest-wide default.
    """
    await _require_scope(store, judge_id, contest_id, event_id)
    if criterion_id is not None:
        criterion = await store.require_row("criteria", criterion_id, "Criterion")
        if criterion.contest_id != contest_id:
            raise ScoreValidationError(
                "Criterion does not belong to this contest.",
                details={"criteria_id": criterion_id, "contest_id": contest_id},
            )

    row, created = await store.upsert_row(
        "judge_scoring_permission",
        {"judge_id": judge_id, "contest_id": contest_id, "criteria_id": criterion_id},
        {"can_edit": can_edit},
    )
    scope = f"criterion {criterion_id}" if criterion_id is not None else "all criteria"
    logger.info(
        f"Scoring override {'created' if created else 'updated'}: judge {judge_id}, "
        f"contest {contest_id}, {scope} -> can_edit={can_edit}"
    )
    return row


async def clear_scoring_permission(store, judge_id: int, contest_id: int,
                                   criterion_id: Optional[int],
                                   event_id: Optional[int] = None) -> int:
    """Remove an override so the next rule in precedence applies."""
    await _require_scope(store, judge_id, contest_id, event_id)
    removed = await store.delete_rows(
        "judge_scoring_permission",
        {"judge_id": judge_id, "contest_id": contest_id, "criteria_id": criterion_id},
    )
    logger.info(f"Cleared {removed} scoring override(s) for judge {judge_id}, contest {contest_id}")
    return removed


async def _replace_access_rows(store, table: str, column: str, judge_id: int,
                               contest_id: int, ids: Iterable[int]) -> List[Row]:
    ids = sorted(set(ids))
    scope = {"judge_id": judge_id, "contest_id": contest_id}
    async with store.atomic():
        await store.delete_rows(table, scope)
        rows = await store.insert_rows(table, [{**scope, column: value} for value in ids]) if ids else []
    logger.info(
        f"{table} for judge {judge_id}, contest {contest_id}: "
        f"{ids if ids else 'unrestricted'}"
    )
    return rows


def _reject_foreign(ids: Iterable[int], known: Iterable[int], resource: str, contest_id: int):
    foreign = sorted(set(ids) - set(known))
    if foreign:
        raise ScoreValidationError(
            f"{resource} ids do not belong to this contest.",
            details={"contest_id": contest_id, "invalid_ids": foreign},
        )


async def set_division_permissions(store, judge_id: int, contest_id: int,
                                   division_ids: Iterable[int],
                                   event_id: Optional[int] = None) -> List[Row]:
    """Restrict the judge to these divisions; an empty list lifts the restriction."""
    _, contest = await _require_scope(store, judge_id, contest_id, event_id)
    division_ids = list(division_ids)
    if division_ids:
        divisions = await store.query_rows("division", {"event_id": contest.event_id})
        _reject_foreign(division_ids, [division.id for division in divisions], "Division", contest_id)
    return await _replace_access_rows(
        store, "judge_division_permission", "division_id", judge_id, contest_id, division_ids
    )


async def set_participant_permissions(store, judge_id: int, contest_id: int,
                                      participant_ids: Iterable[int],
                                      event_id: Optional[int] = None) -> List[Row]:
    """Restrict the judge to these participants; an empty list lifts the restriction."""
    await _require_scope(store, judge_id, contest_id, event_id)
    participant_ids = list(participant_ids)
    if participant_ids:
        participants = await store.query_rows("participant", {"contest_id": contest_id})
        _reject_foreign(participant_ids, [participant.id for participant in participants],
                        "Participant", contest_id)
    return await _replace_access_rows(
        store, "judge_participant_permission", "participant_id", judge_id, contest_id, participant_ids
    )
