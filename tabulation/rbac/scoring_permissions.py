"""
tabulation/rbac/scoring_permissions.py
Per-judge edit and visibility rules for score entry.

Edit permission for (judge, contest, criterion), first match wins:
1. Criterion-specific override row -> its can_edit
2. Contest-wide override row (criteria_id NULL) -> its can_edit
3. No override -> editable until the judge has submitted the contest

Division and participant access are independent: no rows for the
(judge, contest) means everything is visible; any rows restrict the judge
to exactly the listed ids.

A write is accepted only when division, participant and edit checks all
pass. A rejected write is a no-op, never an error.
"""
import enum
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

logger = logging.getLogger(__name__)

DENIED_NOT_ASSIGNED = "not_assigned"
DENIED_DIVISION = "division_restricted"
DENIED_PARTICIPANT = "participant_restricted"
DENIED_CRITERION = "criterion_locked"


class PermissionSource(str, enum.Enum):
    """Which rule decided an edit permission."""
    SPECIFIC = "specific"
    CONTEST_DEFAULT = "contest_default"
    IMPLICIT_FROM_SUBMISSION = "implicit_from_submission"


@dataclass(frozen=True)
class EditDecision:
    can_edit: bool
    source: PermissionSource
    override_id: Optional[int] = None

    def __bool__(self) -> bool:
        return self.can_edit


def resolve_edit_permission(
    criterion_id: Optional[int],
    overrides: Iterable[Any],
    submitted: bool,
) -> EditDecision:
    """
    Decide edit permission from the judge's override rows for one contest.

    Args:
        criterion_id: Criterion being edited
        overrides: judge_scoring_permission rows for (judge, contest)
        submitted: Whether the judge's submission marker exists
    """
    contest_default = None
    for override in overrides:
        if override.criteria_id is None:
            contest_default = override
        elif override.criteria_id == criterion_id:
            return EditDecision(bool(override.can_edit), PermissionSource.SPECIFIC, override.id)

    if contest_default is not None:
        return EditDecision(
            bool(contest_default.can_edit), PermissionSource.CONTEST_DEFAULT, contest_default.id
        )

    return EditDecision(not submitted, PermissionSource.IMPLICIT_FROM_SUBMISSION)


def allowed_ids(rows: Iterable[Any], column: str) -> Optional[frozenset]:
    """Restriction set from access rows; None means unrestricted."""
    ids = frozenset(getattr(row, column) for row in rows)
    return ids or None


def is_allowed(restriction: Optional[frozenset], value: Any) -> bool:
    return restriction is None or value in restriction


@dataclass
class JudgeContestAccess:
    """
    Everything needed to gate one judge's writes in one contest.

    Loaded once per screen and refreshed by change events.
    """
    judge_id: int
    contest_id: int
    overrides: list
    submitted: bool
    divisions: Optional[frozenset] = None
    participants: Optional[frozenset] = None

    def can_edit(self, criterion_id: Optional[int]) -> EditDecision:
        return resolve_edit_permission(criterion_id, self.overrides, self.submitted)

    def can_access_division(self, division_id: Any) -> bool:
        return is_allowed(self.divisions, division_id)

    def can_access_participant(self, participant_id: Any) -> bool:
        return is_allowed(self.participants, participant_id)

    def can_see(self, participant: Any) -> bool:
        """Division AND participant access."""
        return self.can_access_division(participant.division_id) and self.can_access_participant(participant.id)

    def denial_reason(self, participant: Any, criterion_id: int) -> Optional[str]:
        """Why a write would be rejected, or None when it is allowed."""
        if not self.can_access_division(participant.division_id):
            return DENIED_DIVISION
        if not self.can_access_participant(participant.id):
            return DENIED_PARTICIPANT
        if not self.can_edit(criterion_id).can_edit:
            return DENIED_CRITERION
        return None

    def can_write(self, participant: Any, criterion_id: int) -> bool:
        """Division AND participant access AND criterion edit permission."""
        return self.denial_reason(participant, criterion_id) is None

    def editable_criteria(self, criterion_ids: Iterable[int]) -> Dict[int, EditDecision]:
        return {criterion_id: self.can_edit(criterion_id) for criterion_id in criterion_ids}


class PermissionResolver:
    """
    Store-backed permission lookups.

    Every decision is read fresh from the store so a tabulator's override
    applies to the very next write.
    """

    def __init__(self, store):
        self.store = store

    async def load(self, judge_id: int, contest_id: int) -> JudgeContestAccess:
        scope = {"judge_id": judge_id, "contest_id": contest_id}
        overrides = await self.store.query_rows("judge_scoring_permission", scope)
        markers = await self.store.query_rows("judge_contest_submission", scope)
        divisions = await self.store.query_rows("judge_division_permission", scope)
        participants = await self.store.query_rows("judge_participant_permission", scope)
        return JudgeContestAccess(
            judge_id=judge_id,
            contest_id=contest_id,
            overrides=overrides,
            submitted=bool(markers),
            divisions=allowed_ids(divisions, "division_id"),
            participants=allowed_ids(participants, "participant_id"),
        )

    async def can_edit(self, judge: Any, contest_id: int, criterion_id: Optional[int]) -> EditDecision:
        """
        Edit permission for a judge on a criterion.

        The judge's role does not change the outcome: chairmen are gated
        exactly like other judges.
        """
        access = await self.load(judge.id, contest_id)
        return access.can_edit(criterion_id)

    async def can_access_division(self, judge_id: int, contest_id: int, division_id: int) -> bool:
        rows = await self.store.query_rows(
            "judge_division_permission", {"judge_id": judge_id, "contest_id": contest_id}
        )
        return is_allowed(allowed_ids(rows, "division_id"), division_id)

    async def can_access_participant(self, judge_id: int, contest_id: int, participant_id: int) -> bool:
        rows = await self.store.query_rows(
            "judge_participant_permission", {"judge_id": judge_id, "contest_id": contest_id}
        )
        return is_allowed(allowed_ids(rows, "participant_id"), participant_id)

    async def is_assigned(self, judge_id: int, contest_id: int) -> bool:
        """Whether the judge may see and score the contest at all."""
        rows = await self.store.query_rows(
            "judge_assignment", {"judge_id": judge_id, "contest_id": contest_id}
        )
        return bool(rows)
