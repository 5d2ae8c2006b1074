"""
Judge-facing scoring models: score entry, submit-all, permissions, progress.
"""
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ScoreWriteRequest(BaseModel):
    participant_id: int
    criteria_id: int
    value: Union[int, float, str] = Field(..., description="Raw score as entered")


class ScoreRowResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    judge_id: int
    participant_id: int
    criteria_id: int
    score: Decimal
    updated_at: Optional[datetime] = None


class ScoreWriteResponse(BaseModel):
    status: str
    message: str
    reason: Optional[str] = None
    score: Optional[ScoreRowResponse] = None


class PendingEdit(BaseModel):
    participant_id: int
    criteria_id: int
    value: Union[int, float, str]


class SubmitAllRequest(BaseModel):
    division_id: Optional[int] = Field(None, description="Limit the submission to one division")
    pending: List[PendingEdit] = Field(default_factory=list, description="Unsaved edits to flush first")


class SubmissionResponse(BaseModel):
    contest_id: int
    division_id: Optional[int] = None
    totals: Dict[int, Decimal]
    flushed: int
    marker_created: bool
    message: str = "Scores submitted."


class CriterionPermission(BaseModel):
    criteria_id: int
    can_edit: bool
    source: str


class JudgePermissionsResponse(BaseModel):
    contest_id: int
    submitted: bool
    criteria: List[CriterionPermission]
    division_ids: Optional[List[int]] = None
    participant_ids: Optional[List[int]] = None


class JudgeContestResponse(BaseModel):
    id: int
    name: str
    contest_code: Optional[str] = None
    scoring_type: str
    completed: int
    total: int
    percent: int
    submitted: bool
