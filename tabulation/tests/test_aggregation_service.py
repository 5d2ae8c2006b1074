"""
Aggregation Engine Tests

Coverage:
- Percentage and points contributions
- Rounding (ROUND_HALF_UP, 2dp)
- Unscored (None) vs zero totals
- Pending edits shadowing persisted scores
- Chairman vs judge effective totals
- Contest progress
"""
from decimal import Decimal

import pytest

from tabulation.core.rows import Row
from tabulation.exceptions import ScoreValidationError
from tabulation.services.aggregation_service import (
    ScoreSet,
    category_subtotals,
    contest_progress,
    criterion_contribution,
    effective_participant_totals,
    judge_totals_matrix,
    parse_raw_score,
)
from tabulation.services.aggregation_service import compute_participant_total as total_for


def criterion(criterion_id, weight, category=None):
    return Row(id=criterion_id, contest_id=1, percentage=Decimal(str(weight)), category=category)


PERCENTAGE_CRITERIA = [criterion(1, 40, "Talent"), criterion(2, 60)]
POINTS_CRITERIA = [criterion(3, 30), criterion(4, 20)]


# =============================================================================
# Contributions
# =============================================================================

def test_percentage_contributions_sum_to_80():
    scores = ScoreSet({(10, 1): 50, (10, 2): 100})

    assert criterion_contribution(Decimal("50"), PERCENTAGE_CRITERIA[0], "percentage") == Decimal("20")
    assert total_for(scores, 10, PERCENTAGE_CRITERIA, "percentage") == Decimal("80.00")


def test_points_are_added_without_scaling():
    scores = ScoreSet({(10, 3): 25, (10, 4): 20})

    assert total_for(scores, 10, POINTS_CRITERIA, "points") == Decimal("45.00")


def test_points_contribution_capped_at_max():
    assert criterion_contribution(Decimal("35"), POINTS_CRITERIA[0], "points") == Decimal("30")


def test_total_rounds_half_up():
    odd = [criterion(5, "33.33")]
    scores = ScoreSet({(10, 5): 50})

    # 50 * 33.33 / 100 = 16.665
    assert total_for(scores, 10, odd, "percentage") == Decimal("16.67")


def test_unscored_participant_has_no_total():
    assert total_for(ScoreSet(), 10, PERCENTAGE_CRITERIA, "percentage") is None


def test_zero_scores_give_zero_total():
    scores = ScoreSet({(10, 1): 0})
    assert total_for(scores, 10, PERCENTAGE_CRITERIA, "percentage") == Decimal("0.00")


def test_missing_criterion_contributes_nothing():
    scores = ScoreSet({(10, 2): 50})
    assert total_for(scores, 10, PERCENTAGE_CRITERIA, "percentage") == Decimal("30.00")


# =============================================================================
# Pending edits
# =============================================================================

def test_pending_edit_shadows_persisted_score():
    scores = ScoreSet({(10, 1): 50, (10, 2): 100}, pending={(10, 1): "100"})
    assert total_for(scores, 10, PERCENTAGE_CRITERIA, "percentage") == Decimal("100.00")


def test_cleared_pending_edit_counts_as_unscored():
    scores = ScoreSet({(10, 1): 50}, pending={(10, 1): ""})

    assert scores.raw(10, 1) == ""
    assert total_for(scores, 10, PERCENTAGE_CRITERIA, "percentage") is None


def test_from_rows_keeps_one_judge():
    rows = [
        Row(judge_id=1, participant_id=10, criteria_id=1, score=Decimal("50")),
        Row(judge_id=2, participant_id=10, criteria_id=1, score=Decimal("90")),
    ]
    scores = ScoreSet.from_rows(rows, judge_id=2)
    assert scores.raw(10, 1) == Decimal("90")


def test_category_subtotals_group_uncategorised_under_none():
    scores = ScoreSet({(10, 1): 50, (10, 2): 100})

    subtotals = category_subtotals(scores, 10, PERCENTAGE_CRITERIA, "percentage")

    assert list(subtotals.items()) == [("Talent", Decimal("20.00")), (None, Decimal("60.00"))]


# =============================================================================
# Validation
# =============================================================================

@pytest.mark.parametrize("value,message", [
    ("", "Score is required."),
    ("abc", "Scores must be numeric."),
    ("101", "Scores must be between 0 and 100."),
    (-1, "Scores must be between 0 and 100."),
])
def test_percentage_input_validation(value, message):
    with pytest.raises(ScoreValidationError) as exc_info:
        parse_raw_score(value, PERCENTAGE_CRITERIA[0], "percentage")
    assert exc_info.value.message == message


def test_points_range_uses_criterion_max():
    assert parse_raw_score("30", POINTS_CRITERIA[0], "points") == Decimal("30")
    with pytest.raises(ScoreValidationError) as exc_info:
        parse_raw_score(30.5, POINTS_CRITERIA[0], "points")
    assert exc_info.value.message == "Scores must be between 0 and 30."


def test_float_input_parsed_exactly():
    assert parse_raw_score(85.1, PERCENTAGE_CRITERIA[0], "percentage") == Decimal("85.1")


def test_raw_value_rounded_to_four_places():
    assert parse_raw_score("85.12345", PERCENTAGE_CRITERIA[0], "percentage") == Decimal("85.1235")
    assert parse_raw_score("99.99996", PERCENTAGE_CRITERIA[0], "percentage") == Decimal("100.0000")


# =============================================================================
# Persisted totals
# =============================================================================

TOTAL_ROWS = [
    Row(judge_id=1, participant_id=10, total_score=Decimal("70.00")),
    Row(judge_id=2, participant_id=10, total_score=Decimal("75.00")),
    Row(judge_id=2, participant_id=11, total_score=Decimal("60.50")),
]


def test_chairman_sees_sum_over_judges():
    chairman = Row(id=3, role="chairman")

    totals = effective_participant_totals(TOTAL_ROWS, chairman)

    assert totals[10] == Decimal("145.00")
    assert totals[11] == Decimal("60.50")


def test_judge_sees_own_totals_only():
    judge_a = Row(id=1, role="judge")

    totals = effective_participant_totals(TOTAL_ROWS, judge_a)

    assert totals == {10: Decimal("70.00")}


def test_aggregate_viewer_sees_sum():
    assert effective_participant_totals(TOTAL_ROWS)[10] == Decimal("145.00")


def test_judge_totals_matrix_columns():
    judge_ids, matrix = judge_totals_matrix(TOTAL_ROWS)

    assert judge_ids == [1, 2]
    assert matrix[(2, 11)] == Decimal("60.50")
    assert (1, 11) not in matrix


# =============================================================================
# Progress
# =============================================================================

def test_contest_progress_counts_filled_cells():
    participants = [Row(id=10), Row(id=11), Row(id=12)]
    rows = [
        Row(participant_id=10, criteria_id=1),
        Row(participant_id=10, criteria_id=2),
        Row(participant_id=11, criteria_id=1),
        Row(participant_id=11, criteria_id=1),
        Row(participant_id=99, criteria_id=1),
    ]

    progress = contest_progress(rows, participants, PERCENTAGE_CRITERIA)

    assert (progress.completed, progress.total) == (3, 6)
    assert progress.percent == 50


def test_progress_percent_rounds_and_handles_empty():
    participants = [Row(id=10), Row(id=11), Row(id=12)]
    rows = [Row(participant_id=10, criteria_id=1), Row(participant_id=11, criteria_id=1)]

    assert contest_progress(rows, participants, [PERCENTAGE_CRITERIA[0]]).percent == 67
    assert contest_progress([], [], PERCENTAGE_CRITERIA).percent == 0
