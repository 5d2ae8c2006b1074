"""
Permission Override Tests

Coverage:
- Overrides bound to one event (judge, contest, caller)
- Criteria, divisions and participants must belong to the contest
- Rejected writes leave no rows behind
- Restrictions narrow the judge progress count
"""
import pytest

from tabulation.exceptions import NotFoundError, ScoreValidationError
from tabulation.orm.event import ScoringType
from tabulation.services.permission_service import (
    clear_scoring_permission,
    save_scoring_permission,
    set_division_permissions,
    set_participant_permissions,
)
from tabulation.services.tabulation_service import judge_contest_overview
from tabulation.tests.helpers import score_cells


async def other_event_contest(store, seed):
    rows = await store.insert_rows("contest", [{
        "event_id": seed.other_event_id, "name": "Swimwear", "scoring_type": ScoringType.PERCENTAGE,
    }])
    return rows[0].id


# =============================================================================
# Scoring overrides
# =============================================================================

@pytest.mark.asyncio
async def test_override_saved_within_event(store, seed):
    row = await save_scoring_permission(
        store, seed.judge_a_id, seed.talent_id, seed.qa_id, True, event_id=seed.event_id
    )

    assert row.can_edit is True
    assert row.criteria_id == seed.qa_id


@pytest.mark.asyncio
async def test_judge_from_other_event_rejected(store, seed):
    with pytest.raises(NotFoundError):
        await save_scoring_permission(store, seed.outsider_id, seed.talent_id, None, True)

    assert await store.query_rows("judge_scoring_permission") == []


@pytest.mark.asyncio
async def test_criterion_of_other_contest_rejected(store, seed):
    with pytest.raises(ScoreValidationError):
        await save_scoring_permission(store, seed.judge_a_id, seed.talent_id, seed.speed_id, True)

    assert await store.query_rows("judge_scoring_permission") == []


@pytest.mark.asyncio
async def test_caller_bound_to_own_event(store, seed):
    contest_id = await other_event_contest(store, seed)

    with pytest.raises(NotFoundError):
        await save_scoring_permission(
            store, seed.outsider_id, contest_id, None, True, event_id=seed.event_id
        )
    with pytest.raises(NotFoundError):
        await clear_scoring_permission(
            store, seed.outsider_id, contest_id, None, event_id=seed.event_id
        )

    # Administrators are not bound to an event
    row = await save_scoring_permission(store, seed.outsider_id, contest_id, None, False)
    assert row.contest_id == contest_id


# =============================================================================
# Access restrictions
# =============================================================================

@pytest.mark.asyncio
async def test_division_of_other_event_rejected(store, seed):
    foreign = await store.insert_rows("division", [{"event_id": seed.other_event_id, "name": "Open"}])

    with pytest.raises(ScoreValidationError) as exc_info:
        await set_division_permissions(
            store, seed.judge_a_id, seed.talent_id, [seed.division_a_id, foreign[0].id]
        )

    assert exc_info.value.details["invalid_ids"] == [foreign[0].id]
    assert await store.query_rows("judge_division_permission") == []


@pytest.mark.asyncio
async def test_participant_of_other_contest_rejected(store, seed):
    with pytest.raises(ScoreValidationError):
        await set_participant_permissions(store, seed.judge_a_id, seed.talent_id, [seed.p1_id, seed.p4_id])

    rows = await set_participant_permissions(store, seed.judge_a_id, seed.talent_id, [seed.p1_id])
    assert [row.participant_id for row in rows] == [seed.p1_id]


@pytest.mark.asyncio
async def test_restrictions_narrow_judge_progress(store, seed):
    judge = await store.get_row("user_judge", seed.judge_a_id)
    await score_cells(store, judge.id, {(seed.p1_id, seed.poise_id): 80, (seed.p3_id, seed.poise_id): 80})
    await set_division_permissions(store, judge.id, seed.talent_id, [seed.division_a_id])

    overview = {item.contest.id: item for item in await judge_contest_overview(store, judge)}
    progress = overview[seed.talent_id].progress

    # p3 sits in division b and is hidden from the judge
    assert (progress.completed, progress.total) == (1, 4)
