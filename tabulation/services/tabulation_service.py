"""
tabulation/services/tabulation_service.py
Read-side views for judges and tabulators.

Every view is rebuilt from a ContestSnapshot (the full current row set for
one contest), whether the snapshot comes from the store or from a live
TabulationState. Nothing is patched incrementally.
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional

from tabulation.config.settings import TIE_BREAK_CONTESTANT_NUMBER
from tabulation.core.rows import Row
from tabulation.exceptions import NotFoundError
from tabulation.rbac.scoring_permissions import PermissionResolver
from tabulation.realtime.row_state import TabulationState
from tabulation.services.aggregation_service import (
    ContestProgress,
    contest_progress,
    effective_participant_totals,
    judge_totals_matrix,
    viewer_sees_all_judges,
)
from tabulation.services.award_service import (
    AwardBreakdown,
    AwardRanking,
    award_contest_id,
    awards_for_contest,
    compute_award_breakdown,
    compute_award_ranking,
    configured_criteria_ids,
)
from tabulation.services.ranking_service import rank_participants

logger = logging.getLogger(__name__)


@dataclass
class ContestSnapshot:
    contest: Row
    criteria: List[Row]
    participants: List[Row]
    scores: List[Row]
    totals: List[Row]
    submissions: List[Row]
    awards: List[Row] = field(default_factory=list)

    @property
    def submitted_judge_ids(self) -> List[int]:
        return sorted({row.judge_id for row in self.submissions})

    def participants_in(self, division_id: Optional[int]) -> List[Row]:
        if division_id is None:
            return list(self.participants)
        return [p for p in self.participants if p.division_id == division_id]


async def load_contest_snapshot(store, contest_id: int) -> ContestSnapshot:
    contest = await store.require_row("contest", contest_id, "Contest")
    criteria = await store.query_rows("criteria", {"contest_id": contest_id})
    participants = await store.query_rows("participant", {"contest_id": contest_id})
    participant_ids = [participant.id for participant in participants]
    scores = await store.query_rows("score", {"participant_id": participant_ids}) if participant_ids else []
    totals = await store.query_rows("judge_participant_total", {"contest_id": contest_id})
    submissions = await store.query_rows("judge_contest_submission", {"contest_id": contest_id})
    event_awards = await store.query_rows("award", {"event_id": contest.event_id})

    # Unpinned awards are placed through criteria that may live in any contest
    referenced = {cid for award in event_awards for cid in configured_criteria_ids(award)}
    criteria_by_id = {criterion.id: criterion for criterion in criteria}
    missing = sorted(referenced - set(criteria_by_id))
    if missing:
        for criterion in await store.query_rows("criteria", {"id": missing}):
            criteria_by_id[criterion.id] = criterion

    return ContestSnapshot(
        contest=contest,
        criteria=criteria,
        participants=participants,
        scores=scores,
        totals=totals,
        submissions=submissions,
        awards=awards_for_contest(event_awards, contest_id, criteria_by_id),
    )


def snapshot_from_state(state: TabulationState, contest_id: int) -> ContestSnapshot:
    """Build a snapshot from a hydrated live state."""
    contest = state.get("contest", contest_id)
    if contest is None:
        raise NotFoundError("Contest", contest_id)
    participants = state.rows("participant", {"contest_id": contest_id})
    participant_ids = [participant.id for participant in participants]
    criteria_by_id = {criterion.id: criterion for criterion in state.rows("criteria")}
    return ContestSnapshot(
        contest=contest,
        criteria=state.rows("criteria", {"contest_id": contest_id}),
        participants=participants,
        scores=state.rows("score", {"participant_id": participant_ids}),
        totals=state.rows("judge_participant_total", {"contest_id": contest_id}),
        submissions=state.rows("judge_contest_submission", {"contest_id": contest_id}),
        awards=awards_for_contest(state.rows("award"), contest_id, criteria_by_id),
    )


# =============================================================================
# Contest ranking
# =============================================================================

@dataclass
class ContestRankingRow:
    participant_id: int
    full_name: str
    contestant_number: Optional[str]
    division_id: int
    total_score: Decimal
    rank: int
    judge_totals: Dict[int, Optional[Decimal]] = field(default_factory=dict)


@dataclass
class ContestRanking:
    contest_id: int
    contest_name: str
    scoring_type: str
    division_id: Optional[int]
    judge_ids: List[int]
    submitted_judge_ids: List[int]
    rows: List[ContestRankingRow]


def build_contest_ranking(
    snapshot: ContestSnapshot,
    viewer: Any = None,
    division_id: Optional[int] = None,
    tie_break: str = TIE_BREAK_CONTESTANT_NUMBER,
) -> ContestRanking:
    """
    Rank a contest on persisted judge totals.

    Chairmen and aggregate viewers see the sum over all judges plus one
    column per judge; other judges see only their own total.
    """
    participants = snapshot.participants_in(division_id)
    effective = effective_participant_totals(snapshot.totals, viewer)
    judge_ids, matrix = judge_totals_matrix(snapshot.totals)
    if not viewer_sees_all_judges(viewer):
        judge_ids = [judge_id for judge_id in judge_ids if judge_id == viewer.id]

    by_id = {participant.id: participant for participant in participants}
    rows = []
    for ranked in rank_participants(participants, effective, tie_break):
        participant = by_id[ranked.participant_id]
        rows.append(ContestRankingRow(
            participant_id=participant.id,
            full_name=participant.full_name,
            contestant_number=participant.contestant_number,
            division_id=participant.division_id,
            total_score=ranked.total_score,
            rank=ranked.rank,
            judge_totals={judge_id: matrix.get((judge_id, participant.id)) for judge_id in judge_ids},
        ))

    scoring_type = snapshot.contest.scoring_type
    return ContestRanking(
        contest_id=snapshot.contest.id,
        contest_name=snapshot.contest.name,
        scoring_type=getattr(scoring_type, "value", scoring_type),
        division_id=division_id,
        judge_ids=judge_ids,
        submitted_judge_ids=snapshot.submitted_judge_ids,
        rows=rows,
    )


async def get_contest_ranking(store, contest_id: int, viewer: Any = None,
                              division_id: Optional[int] = None,
                              tie_break: str = TIE_BREAK_CONTESTANT_NUMBER) -> ContestRanking:
    snapshot = await load_contest_snapshot(store, contest_id)
    return build_contest_ranking(snapshot, viewer, division_id, tie_break)


# =============================================================================
# Awards
# =============================================================================

def build_award_ranking(snapshot: ContestSnapshot, award: Any, viewer: Any = None,
                        division_id: Optional[int] = None,
                        tie_break: str = TIE_BREAK_CONTESTANT_NUMBER) -> AwardRanking:
    judge_ids = sorted({row.judge_id for row in snapshot.totals})
    return compute_award_ranking(
        award,
        snapshot.criteria,
        snapshot.participants_in(division_id),
        snapshot.scores,
        judge_ids,
        viewer=viewer,
        tie_break=tie_break,
    )


async def _award_contest(store, award: Row) -> Optional[int]:
    referenced = configured_criteria_ids(award)
    criteria = await store.query_rows("criteria", {"id": referenced}) if referenced else []
    return award_contest_id(award, {criterion.id: criterion for criterion in criteria})


async def get_award_ranking(store, award_id: int, viewer: Any = None,
                            division_id: Optional[int] = None,
                            tie_break: str = TIE_BREAK_CONTESTANT_NUMBER) -> AwardRanking:
    award = await store.require_row("award", award_id, "Award")
    contest_id = await _award_contest(store, award)
    if contest_id is None:
        return compute_award_ranking(award, [], [], [], [], viewer=viewer, tie_break=tie_break)
    snapshot = await load_contest_snapshot(store, contest_id)
    return build_award_ranking(snapshot, award, viewer, division_id, tie_break)


async def get_award_breakdown(store, award_id: int, judge_id: int,
                              division_id: Optional[int] = None) -> AwardBreakdown:
    award = await store.require_row("award", award_id, "Award")
    await store.require_row("user_judge", judge_id, "Judge")
    contest_id = await _award_contest(store, award)
    if contest_id is None:
        return AwardBreakdown(award_id=award.id, judge_id=judge_id, columns=[], rows=[])
    snapshot = await load_contest_snapshot(store, contest_id)
    return compute_award_breakdown(
        award, snapshot.criteria, snapshot.participants_in(division_id), snapshot.scores, judge_id
    )


async def list_contest_awards(store, contest_id: int) -> List[Row]:
    snapshot = await load_contest_snapshot(store, contest_id)
    return snapshot.awards


# =============================================================================
# Judge overview
# =============================================================================

@dataclass
class JudgeContestOverview:
    contest: Row
    progress: ContestProgress
    submitted: bool


async def judge_contest_overview(store, judge: Any) -> List[JudgeContestOverview]:
    """Assigned contests of a judge with progress over the participants they may see."""
    assignments = await store.query_rows("judge_assignment", {"judge_id": judge.id})
    contest_ids = [row.contest_id for row in assignments]
    if not contest_ids:
        return []

    resolver = PermissionResolver(store)
    overview = []
    for contest in await store.query_rows("contest", {"id": contest_ids, "event_id": judge.event_id}):
        criteria = await store.query_rows("criteria", {"contest_id": contest.id})
        access = await resolver.load(judge.id, contest.id)
        participants = [
            participant for participant in await store.query_rows("participant", {"contest_id": contest.id})
            if access.can_see(participant)
        ]
        participant_ids = [participant.id for participant in participants]
        scores = await store.query_rows(
            "score", {"judge_id": judge.id, "participant_id": participant_ids}
        ) if participant_ids else []
        overview.append(JudgeContestOverview(
            contest=contest,
            progress=contest_progress(scores, participants, criteria),
            submitted=access.submitted,
        ))
    return overview
