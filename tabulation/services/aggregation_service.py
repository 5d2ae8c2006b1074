"""
tabulation/services/aggregation_service.py
Participant totals from raw scores and from persisted judge totals.

Scoring modes:
- percentage: raw in [0, 100], contribution = raw * weight / 100
- points: raw in [0, max], contribution = raw (capped at max)

Totals are Decimal, summed exactly and quantized once to 2dp (ROUND_HALF_UP).
A participant with no scored criterion has no total (None), which is
different from a total of 0.00.
"""
import logging
from collections import OrderedDict, defaultdict
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from tabulation.exceptions import ScoreValidationError
from tabulation.orm.accounts import JudgeRole
from tabulation.orm.event import ScoringType

logger = logging.getLogger(__name__)

QUANTIZER_2DP = Decimal("0.01")
# Raw scores are stored as Numeric(10, 4)
QUANTIZER_RAW = Decimal("0.0001")
ZERO = Decimal("0")
HUNDRED = Decimal("100")

Cell = Tuple[int, int]  # (participant_id, criterion_id)


def quantize_2dp(value: Decimal) -> Decimal:
    return Decimal(value).quantize(QUANTIZER_2DP, rounding=ROUND_HALF_UP)


def to_decimal(value: Any) -> Decimal:
    """
    Convert to Decimal, via str for floats to avoid binary artifacts.

    Raises:
        ScoreValidationError: If the value is not a finite number
    """
    if isinstance(value, Decimal):
        number = value
    else:
        text = str(value).strip() if value is not None else ""
        try:
            number = Decimal(text)
        except (InvalidOperation, ValueError):
            raise ScoreValidationError("Scores must be numeric.", details={"value": value})
    if not number.is_finite():
        raise ScoreValidationError("Scores must be numeric.", details={"value": str(value)})
    return number


def score_bounds(criterion: Any, scoring_type: Any) -> Tuple[Decimal, Decimal]:
    """Inclusive raw-value range for a criterion."""
    if ScoringType(scoring_type) == ScoringType.POINTS:
        return ZERO, Decimal(criterion.percentage)
    return ZERO, HUNDRED


def parse_raw_score(value: Any, criterion: Any, scoring_type: Any) -> Decimal:
    """
    Parse and range-check one raw value, rounded to the stored 4 places.

    Raises:
        ScoreValidationError: Blank, non-numeric, or out-of-range input
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ScoreValidationError("Score is required.", details={"criteria_id": criterion.id})

    number = to_decimal(value)
    low, high = score_bounds(criterion, scoring_type)
    if number < low or number > high:
        if ScoringType(scoring_type) == ScoringType.POINTS:
            message = f"Scores must be between 0 and {high.normalize():f}."
        else:
            message = "Scores must be between 0 and 100."
        raise ScoreValidationError(
            message, details={"criteria_id": criterion.id, "value": str(value)}
        )
    return number.quantize(QUANTIZER_RAW, rounding=ROUND_HALF_UP)


def criterion_contribution(raw: Decimal, criterion: Any, scoring_type: Any) -> Decimal:
    """Unrounded contribution of one raw value to a participant total."""
    weight = Decimal(criterion.percentage)
    if ScoringType(scoring_type) == ScoringType.POINTS:
        return min(raw, weight)
    return raw * weight / HUNDRED


class ScoreSet:
    """
    Raw values for one judge, keyed by (participant_id, criterion_id).

    Pending (unsaved) edits shadow persisted scores. A pending entry is
    authoritative even when blank or invalid: the cell then counts as
    unscored, matching what the judge currently sees.
    """

    def __init__(
        self,
        persisted: Optional[Mapping[Cell, Any]] = None,
        pending: Optional[Mapping[Cell, Any]] = None,
    ):
        self.persisted: Dict[Cell, Any] = dict(persisted or {})
        self.pending: Dict[Cell, Any] = dict(pending or {})

    @classmethod
    def from_rows(cls, score_rows: Iterable[Any], judge_id: Optional[int] = None,
                  pending: Optional[Mapping[Cell, Any]] = None) -> "ScoreSet":
        persisted = {
            (row.participant_id, row.criteria_id): row.score
            for row in score_rows
            if judge_id is None or row.judge_id == judge_id
        }
        return cls(persisted, pending)

    def raw(self, participant_id: int, criterion_id: int) -> Any:
        """Most authoritative raw entry for a cell, or None."""
        key = (participant_id, criterion_id)
        if key in self.pending:
            return self.pending[key]
        return self.persisted.get(key)

    def value(self, participant_id: int, criterion: Any, scoring_type: Any) -> Optional[Decimal]:
        """Validated raw value for a cell; None when unscored or invalid."""
        raw = self.raw(participant_id, criterion.id)
        if raw is None:
            return None
        try:
            return parse_raw_score(raw, criterion, scoring_type)
        except ScoreValidationError:
            return None


def compute_participant_total(
    scores: ScoreSet,
    participant_id: int,
    criteria: Sequence[Any],
    scoring_type: Any,
) -> Optional[Decimal]:
    """
    Weighted total for one participant over the contest's criteria.

    Missing criteria contribute nothing; returns None when no criterion
    has a value.
    """
    total = ZERO
    has_value = False
    for criterion in criteria:
        raw = scores.value(participant_id, criterion, scoring_type)
        if raw is None:
            continue
        has_value = True
        total += criterion_contribution(raw, criterion, scoring_type)
    return quantize_2dp(total) if has_value else None


def category_subtotals(
    scores: ScoreSet,
    participant_id: int,
    criteria: Sequence[Any],
    scoring_type: Any,
) -> "OrderedDict[Optional[str], Optional[Decimal]]":
    """
    Weighted subtotal per criteria category, in criteria order.

    Uncategorised criteria are grouped under None.
    """
    grouped: "OrderedDict[Optional[str], List[Any]]" = OrderedDict()
    for criterion in criteria:
        grouped.setdefault(criterion.category or None, []).append(criterion)
    return OrderedDict(
        (category, compute_participant_total(scores, participant_id, members, scoring_type))
        for category, members in grouped.items()
    )


# =============================================================================
# Persisted totals (post-submission)
# =============================================================================

def viewer_sees_all_judges(viewer: Any) -> bool:
    """
    Chairmen, tabulators and administrators (viewer None) see the sum over
    every judge; any other judge sees only their own totals.
    """
    return viewer is None or getattr(viewer, "role", None) == JudgeRole.CHAIRMAN


def effective_participant_totals(total_rows: Iterable[Any], viewer: Any = None) -> Dict[int, Decimal]:
    """
    Effective total per participant from judge_participant_total rows.

    Args:
        total_rows: Persisted totals for one contest
        viewer: Judge row/model, or None for a tabulator/administrator
    """
    all_judges = viewer_sees_all_judges(viewer)
    sums: Dict[int, Decimal] = defaultdict(lambda: ZERO)
    for row in total_rows:
        if not all_judges and row.judge_id != viewer.id:
            continue
        sums[row.participant_id] += Decimal(row.total_score)
    return {participant_id: quantize_2dp(total) for participant_id, total in sums.items()}


def judge_totals_matrix(total_rows: Iterable[Any]) -> Tuple[List[int], Dict[Cell, Decimal]]:
    """
    Per-judge columns: (judge ids ascending, {(judge_id, participant_id): total}).
    """
    matrix: Dict[Cell, Decimal] = {}
    for row in total_rows:
        matrix[(row.judge_id, row.participant_id)] = quantize_2dp(Decimal(row.total_score))
    judge_ids = sorted({judge_id for judge_id, _ in matrix})
    return judge_ids, matrix


# =============================================================================
# Progress
# =============================================================================

@dataclass(frozen=True)
class ContestProgress:
    completed: int
    total: int

    @property
    def percent(self) -> int:
        if not self.total:
            return 0
        ratio = Decimal(self.completed) * HUNDRED / Decimal(self.total)
        return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def contest_progress(score_rows: Iterable[Any], participants: Sequence[Any],
                     criteria: Sequence[Any]) -> ContestProgress:
    """Filled cells out of participants x criteria for one judge's scores."""
    participant_ids = {participant.id for participant in participants}
    criterion_ids = {criterion.id for criterion in criteria}
    filled = {
        (row.participant_id, row.criteria_id)
        for row in score_rows
        if row.participant_id in participant_ids and row.criteria_id in criterion_ids
    }
    return ContestProgress(completed=len(filled), total=len(participant_ids) * len(criterion_ids))
