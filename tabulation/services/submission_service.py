"""
tabulation/services/submission_service.py
Submit-all: finalize a judge's totals for a contest or one division.

Steps:
1. Target participants: the contest (or one division), limited to those
   the judge may access
2. Validate every target cell; any gap or bad value aborts before writing
3. Flush pending edits through the normal per-cell save path
4. Compute judge-scoped totals
5. In one transaction: delete this judge's totals for exactly the targets,
   insert the fresh ones, and add the submission marker if absent

A judge submits once per contest; later submits only refresh totals for
their scope. The controller never removes a marker.
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Tuple

from tabulation.exceptions import NotFoundError, ScoreValidationError
from tabulation.rbac.scoring_permissions import PermissionResolver
from tabulation.services.aggregation_service import (
    ScoreSet,
    compute_participant_total,
    parse_raw_score,
)
from tabulation.services.event_service import ensure_event_active
from tabulation.services.scoring_service import WriteStatus, save_score

logger = logging.getLogger(__name__)

Cell = Tuple[int, int]


@dataclass
class SubmissionResult:
    judge_id: int
    contest_id: int
    division_id: Optional[int]
    totals: Dict[int, Decimal] = field(default_factory=dict)
    flushed: int = 0
    marker_created: bool = False


async def submit_all(
    store,
    judge: Any,
    contest_id: int,
    division_id: Optional[int] = None,
    pending: Optional[Mapping[Cell, Any]] = None,
) -> SubmissionResult:
    """
    Submit every score of a judge for a contest (or one division).

    Args:
        store: RowStore
        judge: Judge row/model
        contest_id: Contest being submitted
        division_id: Optional division scope
        pending: Unsaved edits {(participant_id, criterion_id): raw value}
    Raises:
        NotFoundError: Unknown or unassigned contest
        ScoringSuspendedError: The judge's event is not active
        ScoreValidationError: Missing or invalid score in scope
        StoreError: The total/marker transaction failed (nothing written)
    """
    contest = await store.require_row("contest", contest_id, "Contest")
    await ensure_event_active(store, judge.event_id)

    resolver = PermissionResolver(store)
    if not await resolver.is_assigned(judge.id, contest_id):
        raise NotFoundError("Contest", contest_id)
    access = await resolver.load(judge.id, contest_id)

    criteria = await store.query_rows("criteria", {"contest_id": contest_id})
    if not criteria:
        raise ScoreValidationError("This contest has no criteria to score.")

    scope = {"contest_id": contest_id}
    if division_id is not None:
        scope["division_id"] = division_id
    participants = [
        participant for participant in await store.query_rows("participant", scope)
        if access.can_see(participant)
    ]
    if not participants:
        raise ScoreValidationError("There are no participants to submit.")

    target_ids = [participant.id for participant in participants]
    participants_by_id = {participant.id: participant for participant in participants}
    criteria_by_id = {criterion.id: criterion for criterion in criteria}

    # Locked or out-of-scope pending edits would be no-ops, so they never count
    writable: Dict[Cell, Any] = {}
    for (participant_id, criterion_id), value in (pending or {}).items():
        participant = participants_by_id.get(participant_id)
        if participant is None or criterion_id not in criteria_by_id:
            continue
        if access.can_write(participant, criterion_id):
            writable[(participant_id, criterion_id)] = value

    score_rows = await store.query_rows(
        "score", {"judge_id": judge.id, "participant_id": target_ids}
    )
    scores = ScoreSet.from_rows(score_rows, judge_id=judge.id, pending=writable)

    missing: List[dict] = []
    invalid: List[dict] = []
    for participant in participants:
        for criterion in criteria:
            raw = scores.raw(participant.id, criterion.id)
            cell = {"participant_id": participant.id, "criteria_id": criterion.id}
            if raw is None or (isinstance(raw, str) and not raw.strip()):
                missing.append(cell)
                continue
            try:
                parse_raw_score(raw, criterion, contest.scoring_type)
            except ScoreValidationError as exc:
                invalid.append({**cell, "message": exc.message})

    if missing or invalid:
        logger.warning(
            f"Submit-all rejected for judge {judge.id}, contest {contest_id}: "
            f"{len(missing)} missing, {len(invalid)} invalid"
        )
        message = (
            "Please enter a score for every participant and criterion before submitting."
            if missing else invalid[0]["message"]
        )
        raise ScoreValidationError(message, details={"missing": missing, "invalid": invalid})

    flushed = 0
    for (participant_id, criterion_id), value in writable.items():
        result = await save_score(store, judge, participant_id, criterion_id, value, access=access)
        if result.status in (WriteStatus.SAVED, WriteStatus.UPDATED):
            flushed += 1

    totals = {
        participant.id: compute_participant_total(scores, participant.id, criteria, contest.scoring_type)
        for participant in participants
    }

    async with store.atomic():
        await store.delete_rows(
            "judge_participant_total",
            {"judge_id": judge.id, "contest_id": contest_id, "participant_id": target_ids},
        )
        await store.insert_rows(
            "judge_participant_total",
            [
                {
                    "judge_id": judge.id,
                    "participant_id": participant_id,
                    "contest_id": contest_id,
                    "total_score": total,
                }
                for participant_id, total in totals.items()
            ],
        )
        marker_key = {"judge_id": judge.id, "contest_id": contest_id}
        marker_created = not await store.query_rows("judge_contest_submission", marker_key)
        if marker_created:
            await store.insert_rows("judge_contest_submission", [marker_key])

    logger.info(
        f"Judge {judge.id} submitted contest {contest_id}"
        f"{f' (division {division_id})' if division_id is not None else ''}: "
        f"{len(totals)} totals, {flushed} pending edits flushed"
    )
    return SubmissionResult(
        judge_id=judge.id,
        contest_id=contest_id,
        division_id=division_id,
        totals=totals,
        flushed=flushed,
        marker_created=marker_created,
    )
