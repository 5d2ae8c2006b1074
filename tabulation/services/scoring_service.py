"""
tabulation/services/scoring_service.py
Per-cell score entry.

A save is an upsert on (judge, participant, criterion): insert when absent,
update in place otherwise. Writes the permission resolver rejects are
no-ops reported as status "locked"; they never reach the store.
"""
import enum
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional

from tabulation.core.rows import Row
from tabulation.exceptions import ScoreValidationError
from tabulation.rbac.scoring_permissions import DENIED_NOT_ASSIGNED, JudgeContestAccess, PermissionResolver
from tabulation.services.aggregation_service import parse_raw_score
from tabulation.services.event_service import ensure_event_active

logger = logging.getLogger(__name__)


class WriteStatus(str, enum.Enum):
    SAVED = "saved"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    LOCKED = "locked"


@dataclass
class ScoreWriteResult:
    status: WriteStatus
    row: Optional[Row] = None
    reason: Optional[str] = None

    @property
    def message(self) -> str:
        if self.status == WriteStatus.SAVED:
            return "Score saved."
        if self.status == WriteStatus.UPDATED:
            return "Score updated."
        if self.status == WriteStatus.UNCHANGED:
            return "Score unchanged."
        return "This score is locked."


async def save_score(
    store,
    judge: Any,
    participant_id: int,
    criterion_id: int,
    value: Any,
    access: Optional[JudgeContestAccess] = None,
) -> ScoreWriteResult:
    """
    Save one raw score for a judge.

    Args:
        store: RowStore
        judge: Judge row/model (id, event_id)
        participant_id: Participant being scored
        criterion_id: Criterion being scored
        value: Raw input (string or number)
        access: Preloaded permissions; loaded fresh when omitted
    Raises:
        NotFoundError: Unknown participant, criterion or contest
        ScoringSuspendedError: The judge's event is not active
        ScoreValidationError: Mismatched contest, blank, non-numeric or out of range
    """
    participant = await store.require_row("participant", participant_id, "Participant")
    criterion = await store.require_row("criteria", criterion_id, "Criterion")
    if criterion.contest_id != participant.contest_id:
        raise ScoreValidationError(
            "Criterion does not belong to the participant's contest.",
            details={"participant_id": participant_id, "criteria_id": criterion_id},
        )
    contest = await store.require_row("contest", participant.contest_id, "Contest")
    await ensure_event_active(store, judge.event_id)

    if access is None:
        resolver = PermissionResolver(store)
        if not await resolver.is_assigned(judge.id, contest.id):
            return _locked(judge, participant_id, criterion_id, DENIED_NOT_ASSIGNED)
        access = await resolver.load(judge.id, contest.id)

    reason = access.denial_reason(participant, criterion_id)
    if reason is not None:
        return _locked(judge, participant_id, criterion_id, reason)

    number = parse_raw_score(value, criterion, contest.scoring_type)

    key = {"judge_id": judge.id, "participant_id": participant_id, "criteria_id": criterion_id}
    existing = await store.query_rows("score", key)
    if existing and Decimal(existing[0].score) == number:
        return ScoreWriteResult(WriteStatus.UNCHANGED, existing[0])

    row, created = await store.upsert_row("score", key, {"score": number})
    status = WriteStatus.SAVED if created else WriteStatus.UPDATED
    logger.info(
        f"Judge {judge.id} {status.value} score {number} "
        f"(participant {participant_id}, criterion {criterion_id})"
    )
    return ScoreWriteResult(status, row)


def _locked(judge: Any, participant_id: int, criterion_id: int, reason: str) -> ScoreWriteResult:
    logger.warning(
        f"Ignored write by judge {judge.id} on participant {participant_id}, "
        f"criterion {criterion_id}: {reason}"
    )
    return ScoreWriteResult(WriteStatus.LOCKED, reason=reason)
