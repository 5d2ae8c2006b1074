"""
Tabulation view models: contest rankings, award rankings, breakdowns.
"""
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict


class ContestRankingRowResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    participant_id: int
    full_name: str
    contestant_number: Optional[str] = None
    division_id: int
    total_score: Decimal
    rank: int
    judge_totals: Dict[int, Optional[Decimal]] = {}


class ContestRankingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    contest_id: int
    contest_name: str
    scoring_type: str
    division_id: Optional[int] = None
    judge_ids: List[int]
    submitted_judge_ids: List[int]
    rows: List[ContestRankingRowResponse]


class AwardRankingRowResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    participant_id: int
    full_name: str
    contestant_number: Optional[str] = None
    award_total: Optional[Decimal] = None
    rank: Optional[int] = None
    judge_totals: Dict[int, Optional[Decimal]] = {}


class AwardRankingResponse(BaseModel):
    """
    has_ranking False means "no ranking available": rows is empty and
    reason says why (special award, or no criteria configured).
    """
    model_config = ConfigDict(from_attributes=True)

    award_id: int
    award_name: str
    contest_id: Optional[int] = None
    has_ranking: bool
    reason: Optional[str] = None
    criteria_ids: List[int] = []
    judge_ids: List[int] = []
    rows: List[AwardRankingRowResponse] = []


class BreakdownColumnResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    key: str
    label: str
    criteria_ids: List[int]


class BreakdownRowResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    participant_id: int
    full_name: str
    contestant_number: Optional[str] = None
    values: Dict[str, Optional[Decimal]]
    total: Optional[Decimal] = None


class AwardBreakdownResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    award_id: int
    judge_id: int
    columns: List[BreakdownColumnResponse]
    rows: List[BreakdownRowResponse]


class AwardSummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    award_type: str
    contest_id: Optional[int] = None
    criteria_ids: Optional[List[int]] = None
