"""
Live State Reducer Tests

Coverage:
- Last-write-wins per primary key
- Delete handling, no-op detection
- Store-attached state recomputing rankings from the full row set
"""
from decimal import Decimal

import pytest

from tabulation.realtime.events import ChangeEvent, ChangeOperation
from tabulation.realtime.row_state import TRACKED_TABLES, TabulationState
from tabulation.services.submission_service import submit_all
from tabulation.services.tabulation_service import (
    build_contest_ranking,
    get_contest_ranking,
    snapshot_from_state,
)
from tabulation.tests.helpers import score_cells


def score_event(operation, score_id, value=None, participant_id=10):
    row = None
    if operation is not ChangeOperation.DELETE:
        row = {"id": score_id, "judge_id": 1, "participant_id": participant_id, "criteria_id": 1, "score": value}
    old = {"id": score_id, "judge_id": 1, "participant_id": participant_id} if row is None else None
    return ChangeEvent("score", operation, row=row, old=old)


# =============================================================================
# Reducer
# =============================================================================

def test_insert_then_update_keeps_latest_row():
    state = TabulationState()

    assert state.apply(score_event(ChangeOperation.INSERT, 1, 50))
    assert state.apply(score_event(ChangeOperation.UPDATE, 1, 70))

    assert [row.score for row in state.rows("score")] == [70]


def test_update_for_unseen_row_is_applied():
    # An UPDATE may arrive before the INSERT it follows
    state = TabulationState()

    state.apply(score_event(ChangeOperation.UPDATE, 2, 80))

    assert state.get("score", 2).score == 80


def test_delete_removes_row():
    state = TabulationState()
    state.load("score", [{"id": 1, "judge_id": 1, "participant_id": 10, "criteria_id": 1, "score": 50}])

    assert state.apply(score_event(ChangeOperation.DELETE, 1))
    assert state.rows("score") == []
    assert not state.apply(score_event(ChangeOperation.DELETE, 1))


def test_identical_row_is_not_a_change():
    state = TabulationState()
    changes = []
    state.on_change(changes.append)

    state.apply(score_event(ChangeOperation.INSERT, 1, 50))
    version = state.version
    assert not state.apply(score_event(ChangeOperation.UPDATE, 1, 50))

    assert state.version == version
    assert changes == ["score"]


def test_rows_filtered_and_ordered_by_id():
    state = TabulationState()
    for score_id, participant_id in ((3, 10), (1, 11), (2, 10)):
        state.apply(score_event(ChangeOperation.INSERT, score_id, 50, participant_id))

    assert [row.id for row in state.rows("score", {"participant_id": 10})] == [2, 3]
    assert [row.id for row in state.rows("score", {"participant_id": [10, 11]})] == [1, 2, 3]


# =============================================================================
# Attached to a store
# =============================================================================

@pytest.mark.asyncio
async def test_attached_state_follows_store(store, seed):
    state = TabulationState()
    await state.hydrate(store, {"score": {"judge_id": seed.judge_a_id}})
    state.attach(store, ["score"], {"score": {"judge_id": seed.judge_a_id}})

    key = {"judge_id": seed.judge_a_id, "participant_id": seed.p1_id, "criteria_id": seed.poise_id}
    row, _ = await store.upsert_row("score", key, {"score": 40})
    await store.upsert_row("score", key, {"score": 45})
    await score_cells(store, seed.judge_b_id, {(seed.p1_id, seed.poise_id): 99})

    assert [Decimal(r.score) for r in state.rows("score")] == [Decimal("45")]

    state.detach()
    await store.delete_rows("score", {"id": row.id})
    assert state.get("score", row.id) is not None


@pytest.mark.asyncio
async def test_live_ranking_matches_store_ranking(store, seed):
    state = TabulationState()
    await state.hydrate(store, {table: None for table in TRACKED_TABLES})
    state.attach(store)

    judge = await store.get_row("user_judge", seed.judge_a_id)
    await score_cells(store, judge.id, {
        (seed.p1_id, seed.poise_id): 90, (seed.p1_id, seed.qa_id): 90,
        (seed.p2_id, seed.poise_id): 70, (seed.p2_id, seed.qa_id): 70,
        (seed.p3_id, seed.poise_id): 90, (seed.p3_id, seed.qa_id): 90,
    })
    await submit_all(store, judge, seed.talent_id)

    live = build_contest_ranking(snapshot_from_state(state, seed.talent_id))
    stored = await get_contest_ranking(store, seed.talent_id)

    assert [(row.participant_id, row.rank) for row in live.rows] == [
        (seed.p1_id, 1), (seed.p3_id, 1), (seed.p2_id, 3)
    ]
    assert live == stored
    state.detach()
