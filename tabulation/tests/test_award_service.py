"""
Award Resolution Tests

Coverage:
- criteria_ids normalisation (array, literal, delimited, legacy column)
- Category expansion
- Raw-sum award totals and rankings
- Explicit no-ranking state
- Per-judge breakdown columns
"""
from decimal import Decimal

import pytest

from tabulation.core.db_types import parse_id_list
from tabulation.core.rows import Row
from tabulation.services.award_service import (
    NO_RANKING_NO_CRITERIA,
    NO_RANKING_SPECIAL,
    award_contest_id,
    awards_for_contest,
    breakdown_columns,
    compute_award_breakdown,
    compute_award_ranking,
    configured_criteria_ids,
    resolve_award_criteria,
)

CRITERIA = [
    Row(id=5, contest_id=2, name="Song", percentage=Decimal("30"), category="Talent"),
    Row(id=6, contest_id=2, name="Dance", percentage=Decimal("30"), category="Talent"),
    Row(id=7, contest_id=2, name="Stage", percentage=Decimal("20"), category="Talent"),
    Row(id=8, contest_id=2, name="Interview", percentage=Decimal("20"), category=None),
]

PARTICIPANTS = [
    Row(id=10, full_name="Ana", contestant_number="1", division_id=1),
    Row(id=11, full_name="Bea", contestant_number="2", division_id=1),
    Row(id=12, full_name="Cara", contestant_number="3", division_id=2),
]


def award(**fields):
    base = dict(id=1, name="Best Talent", contest_id=None, award_type="criteria",
                criteria_id=None, criteria_ids=None, is_active=True)
    base.update(fields)
    return Row(base)


def score(judge_id, participant_id, criteria_id, value):
    return Row(judge_id=judge_id, participant_id=participant_id, criteria_id=criteria_id, score=Decimal(str(value)))


# =============================================================================
# Normalisation
# =============================================================================

@pytest.mark.parametrize("raw", [[5, 6], "[5, 6]", "{5,6}", "5, 6", ("5", 6, 5)])
def test_criteria_ids_normalised(raw):
    assert parse_id_list(raw) == [5, 6]


def test_unparseable_entries_dropped():
    assert parse_id_list("5,x,") == [5]
    assert parse_id_list(None) == []


def test_legacy_single_criterion_used_when_list_absent():
    assert configured_criteria_ids(award(criteria_id=8)) == [8]
    assert configured_criteria_ids(award(criteria_id=8, criteria_ids=[5])) == [5]


# =============================================================================
# Expansion and placement
# =============================================================================

def test_category_siblings_are_added():
    assert sorted(resolve_award_criteria(award(criteria_ids=[5]), CRITERIA)) == [5, 6, 7]


def test_uncategorised_criterion_not_expanded():
    assert resolve_award_criteria(award(criteria_ids=[8]), CRITERIA) == [8]


def test_criteria_from_other_contest_ignored():
    assert resolve_award_criteria(award(criteria_ids=[99]), CRITERIA) == []


def test_special_award_has_no_criteria():
    assert resolve_award_criteria(award(award_type="special", criteria_ids=[5]), CRITERIA) == []


def test_contest_inferred_from_first_criterion():
    by_id = {criterion.id: criterion for criterion in CRITERIA}

    assert award_contest_id(award(criteria_ids=[6]), by_id) == 2
    assert award_contest_id(award(contest_id=4, criteria_ids=[6]), by_id) == 4
    assert award_contest_id(award(), by_id) is None


def test_awards_for_contest_skips_inactive():
    by_id = {criterion.id: criterion for criterion in CRITERIA}
    awards = [
        award(id=1, criteria_ids=[5]),
        award(id=2, criteria_ids=[6], is_active=False),
        award(id=3, contest_id=9),
    ]

    assert [item.id for item in awards_for_contest(awards, 2, by_id)] == [1]


# =============================================================================
# Award ranking
# =============================================================================

SCORES = [
    score(1, 10, 5, 10), score(1, 10, 6, 20), score(1, 10, 7, 30), score(1, 10, 8, 99),
    score(1, 11, 5, 50), score(1, 11, 6, 10),
    score(2, 10, 5, 40),
    score(2, 11, 5, 20),
]


def test_award_total_sums_raw_scores_over_expanded_set():
    ranking = compute_award_ranking(award(criteria_ids=[5]), CRITERIA, PARTICIPANTS, SCORES, judge_ids=[1])

    totals = {row.participant_id: row.award_total for row in ranking.rows}
    assert ranking.has_ranking is True
    assert sorted(ranking.criteria_ids) == [5, 6, 7]
    # 10 + 20 + 30; criterion 8 is outside the award
    assert totals[10] == Decimal("60.00")
    assert totals[11] == Decimal("60.00")


def test_award_ranking_sums_judges_and_lists_unscored_last():
    ranking = compute_award_ranking(award(criteria_ids=[5]), CRITERIA, PARTICIPANTS, SCORES, judge_ids=[2, 1])

    rows = [(row.participant_id, row.award_total, row.rank) for row in ranking.rows]
    assert ranking.judge_ids == [1, 2]
    assert rows == [
        (10, Decimal("100.00"), 1),
        (11, Decimal("80.00"), 2),
        (12, None, None),
    ]


def test_award_rows_carry_one_total_per_judge():
    ranking = compute_award_ranking(award(criteria_ids=[5]), CRITERIA, PARTICIPANTS, SCORES, judge_ids=[2, 1])

    columns = {row.participant_id: row.judge_totals for row in ranking.rows}
    assert columns[10] == {1: Decimal("60.00"), 2: Decimal("40.00")}
    assert columns[11] == {1: Decimal("60.00"), 2: Decimal("20.00")}
    assert columns[12] == {1: None, 2: None}


def test_judge_viewer_ranks_on_own_scores():
    viewer = Row(id=2, role="judge")

    ranking = compute_award_ranking(
        award(criteria_ids=[5]), CRITERIA, PARTICIPANTS, SCORES, judge_ids=[1, 2], viewer=viewer
    )

    assert ranking.judge_ids == [2]
    assert ranking.rows[0].participant_id == 10
    assert ranking.rows[0].award_total == Decimal("40.00")


def test_special_award_never_ranks():
    ranking = compute_award_ranking(award(award_type="special"), CRITERIA, PARTICIPANTS, SCORES, [1])

    assert ranking.has_ranking is False
    assert ranking.reason == NO_RANKING_SPECIAL
    assert ranking.rows == []


def test_award_without_criteria_never_ranks():
    ranking = compute_award_ranking(award(criteria_ids=[]), CRITERIA, PARTICIPANTS, SCORES, [1])

    assert ranking.has_ranking is False
    assert ranking.reason == NO_RANKING_NO_CRITERIA
    assert all(row.rank is None for row in ranking.rows)


# =============================================================================
# Breakdown
# =============================================================================

def test_breakdown_columns_per_category_and_uncategorised_criterion():
    columns = breakdown_columns(award(criteria_ids=[5, 8, 6]), CRITERIA)

    assert [(column.key, column.label, column.criteria_ids) for column in columns] == [
        ("category:Talent", "Talent", [5, 6, 7]),
        ("criteria:8", "Interview", [8]),
    ]


def test_breakdown_for_one_judge():
    breakdown = compute_award_breakdown(award(criteria_ids=[5, 8]), CRITERIA, PARTICIPANTS, SCORES, judge_id=1)

    first, second, third = breakdown.rows
    assert first.values == {"category:Talent": Decimal("60.00"), "criteria:8": Decimal("99.00")}
    assert first.total == Decimal("159.00")
    assert second.values["criteria:8"] is None
    assert second.total == Decimal("60.00")
    assert third.total is None
