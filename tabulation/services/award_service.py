"""
tabulation/services/award_service.py
Award criteria resolution, award rankings and per-judge breakdowns.

An award's configured criteria are expanded to every criterion of the same
contest sharing a category with any configured criterion. Award totals sum
RAW values over that expanded set, per judge, then across judges when the
viewer aggregates all judges.

`special` awards, and `criteria` awards whose resolved set is empty, have
no ranking; callers get an explicit no-ranking result instead of zeros.
"""
import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from tabulation.config.settings import TIE_BREAK_CONTESTANT_NUMBER
from tabulation.core.db_types import parse_id_list
from tabulation.orm.award import AwardType
from tabulation.services.aggregation_service import ScoreSet, quantize_2dp, viewer_sees_all_judges
from tabulation.services.ranking_service import rank_participants

logger = logging.getLogger(__name__)

NO_RANKING_SPECIAL = "special_award"
NO_RANKING_NO_CRITERIA = "no_criteria"


def configured_criteria_ids(award: Any) -> List[int]:
    """criteria_ids when set, else the legacy single criteria_id, else empty."""
    if award.criteria_ids is not None:
        return parse_id_list(award.criteria_ids)
    if award.criteria_id is not None:
        return [award.criteria_id]
    return []


def expand_by_category(criteria_ids: Sequence[int], criteria: Sequence[Any]) -> List[int]:
    """
    Add every criterion sharing a category with a configured criterion.

    Only criteria present in `criteria` (one contest) are considered; the
    result keeps configured ids first, then siblings in criteria order.
    """
    by_id = {criterion.id: criterion for criterion in criteria}
    expanded = [criterion_id for criterion_id in criteria_ids if criterion_id in by_id]
    categories = {
        by_id[criterion_id].category
        for criterion_id in expanded
        if by_id[criterion_id].category
    }
    for criterion in criteria:
        if criterion.category in categories and criterion.id not in expanded:
            expanded.append(criterion.id)
    return expanded


def resolve_award_criteria(award: Any, criteria: Sequence[Any]) -> List[int]:
    """Effective criteria ids of an award (empty for special awards)."""
    if _award_type(award) == AwardType.SPECIAL:
        return []
    return expand_by_category(configured_criteria_ids(award), criteria)


def award_contest_id(award: Any, criteria_by_id: Mapping[int, Any]) -> Optional[int]:
    """Pinned contest, else the contest of the first configured criterion."""
    if award.contest_id is not None:
        return award.contest_id
    for criterion_id in configured_criteria_ids(award):
        criterion = criteria_by_id.get(criterion_id)
        if criterion is not None:
            return criterion.contest_id
    return None


def awards_for_contest(awards: Iterable[Any], contest_id: int,
                       criteria_by_id: Mapping[int, Any]) -> List[Any]:
    """Active awards placed in a contest, in id order."""
    return [
        award for award in awards
        if award.is_active and award_contest_id(award, criteria_by_id) == contest_id
    ]


def _award_type(award: Any) -> AwardType:
    return AwardType(getattr(award.award_type, "value", award.award_type))


# =============================================================================
# Award totals
# =============================================================================

def judge_award_total(scores: ScoreSet, participant_id: int,
                      criterion_ids: Sequence[int]) -> Optional[Decimal]:
    """Sum of one judge's raw values over the criteria; None when none scored."""
    total = Decimal("0")
    has_value = False
    for criterion_id in criterion_ids:
        raw = scores.raw(participant_id, criterion_id)
        if raw is None:
            continue
        has_value = True
        total += Decimal(raw)
    return total if has_value else None


def participant_award_total(judge_scores: Iterable[ScoreSet], participant_id: int,
                            criterion_ids: Sequence[int]) -> Optional[Decimal]:
    """Sum of per-judge award totals over the given judges' score sets."""
    total = Decimal("0")
    has_value = False
    for scores in judge_scores:
        judge_total = judge_award_total(scores, participant_id, criterion_ids)
        if judge_total is None:
            continue
        has_value = True
        total += judge_total
    return quantize_2dp(total) if has_value else None


@dataclass
class AwardRankingRow:
    participant_id: int
    full_name: str
    contestant_number: Optional[str]
    award_total: Optional[Decimal]
    rank: Optional[int] = None
    judge_totals: Dict[int, Optional[Decimal]] = field(default_factory=dict)


@dataclass
class AwardRanking:
    award_id: int
    award_name: str
    contest_id: Optional[int]
    has_ranking: bool
    criteria_ids: List[int] = field(default_factory=list)
    judge_ids: List[int] = field(default_factory=list)
    rows: List[AwardRankingRow] = field(default_factory=list)
    reason: Optional[str] = None


def compute_award_ranking(
    award: Any,
    criteria: Sequence[Any],
    participants: Sequence[Any],
    score_rows: Sequence[Any],
    judge_ids: Sequence[int],
    viewer: Any = None,
    tie_break: str = TIE_BREAK_CONTESTANT_NUMBER,
) -> AwardRanking:
    """
    Rank participants on an award's expanded criteria.

    Args:
        award: Award row/model
        criteria: Criteria of the award's contest
        participants: Participants to rank
        score_rows: Raw score rows of the contest
        judge_ids: Judges with persisted totals in the contest
        viewer: Judge row/model, or None for a tabulator/administrator
    """
    criteria_by_id = {criterion.id: criterion for criterion in criteria}
    result = AwardRanking(
        award_id=award.id,
        award_name=award.name,
        contest_id=award_contest_id(award, criteria_by_id),
        has_ranking=False,
    )

    if _award_type(award) == AwardType.SPECIAL:
        result.reason = NO_RANKING_SPECIAL
        return result

    criterion_ids = resolve_award_criteria(award, criteria)
    if not criterion_ids:
        result.reason = NO_RANKING_NO_CRITERIA
        return result

    if not viewer_sees_all_judges(viewer):
        judge_ids = [viewer.id]
    judge_ids = sorted(set(judge_ids))
    judge_scores = [ScoreSet.from_rows(score_rows, judge_id=judge_id) for judge_id in judge_ids]

    totals: Dict[int, Decimal] = {}
    for participant in participants:
        total = participant_award_total(judge_scores, participant.id, criterion_ids)
        if total is not None:
            totals[participant.id] = total

    ranks = {row.participant_id: row for row in rank_participants(participants, totals, tie_break)}
    by_id = {participant.id: participant for participant in participants}

    def per_judge(participant_id: int) -> Dict[int, Optional[Decimal]]:
        column_totals = {}
        for judge_id, scores in zip(judge_ids, judge_scores):
            value = judge_award_total(scores, participant_id, criterion_ids)
            column_totals[judge_id] = quantize_2dp(value) if value is not None else None
        return column_totals

    rows = [
        AwardRankingRow(
            participant_id=ranked.participant_id,
            full_name=by_id[ranked.participant_id].full_name,
            contestant_number=ranked.contestant_number,
            award_total=ranked.total_score,
            rank=ranked.rank,
            judge_totals=per_judge(ranked.participant_id),
        )
        for ranked in ranks.values()
    ]
    # Unscored participants are listed without a rank
    rows.extend(
        AwardRankingRow(
            participant_id=participant.id,
            full_name=participant.full_name,
            contestant_number=participant.contestant_number,
            award_total=None,
            judge_totals=per_judge(participant.id),
        )
        for participant in participants
        if participant.id not in ranks
    )

    result.has_ranking = True
    result.criteria_ids = criterion_ids
    result.judge_ids = list(judge_ids)
    result.rows = rows
    return result


# =============================================================================
# Per-judge breakdown
# =============================================================================

@dataclass
class BreakdownColumn:
    key: str
    label: str
    criteria_ids: List[int]


@dataclass
class BreakdownRow:
    participant_id: int
    full_name: str
    contestant_number: Optional[str]
    values: "OrderedDict[str, Optional[Decimal]]"
    total: Optional[Decimal]


@dataclass
class AwardBreakdown:
    award_id: int
    judge_id: int
    columns: List[BreakdownColumn]
    rows: List[BreakdownRow]


def breakdown_columns(award: Any, criteria: Sequence[Any]) -> List[BreakdownColumn]:
    """
    One column per category of the configured criteria (covering every
    category sibling), plus one per uncategorised configured criterion.
    """
    by_id = {criterion.id: criterion for criterion in criteria}
    columns: "OrderedDict[str, BreakdownColumn]" = OrderedDict()
    for criterion_id in configured_criteria_ids(award):
        criterion = by_id.get(criterion_id)
        if criterion is None:
            continue
        if criterion.category:
            key = f"category:{criterion.category}"
            if key not in columns:
                members = [c.id for c in criteria if c.category == criterion.category]
                columns[key] = BreakdownColumn(key, criterion.category, members)
        else:
            key = f"criteria:{criterion.id}"
            columns[key] = BreakdownColumn(key, criterion.name, [criterion.id])
    return list(columns.values())


def compute_award_breakdown(
    award: Any,
    criteria: Sequence[Any],
    participants: Sequence[Any],
    score_rows: Sequence[Any],
    judge_id: int,
) -> AwardBreakdown:
    """One judge's raw subtotals per column and award total, per participant."""
    columns = breakdown_columns(award, criteria) if _award_type(award) != AwardType.SPECIAL else []
    criterion_ids = resolve_award_criteria(award, criteria)
    scores = ScoreSet.from_rows(score_rows, judge_id=judge_id)

    rows = []
    for participant in participants:
        values = OrderedDict(
            (column.key, judge_award_total(scores, participant.id, column.criteria_ids))
            for column in columns
        )
        total = judge_award_total(scores, participant.id, criterion_ids)
        rows.append(BreakdownRow(
            participant_id=participant.id,
            full_name=participant.full_name,
            contestant_number=participant.contestant_number,
            values=OrderedDict(
                (key, quantize_2dp(value) if value is not None else None) for key, value in values.items()
            ),
            total=quantize_2dp(total) if total is not None else None,
        ))

    return AwardBreakdown(award_id=award.id, judge_id=judge_id, columns=columns, rows=rows)
