"""
Administrative models: permission overrides and event activation.
"""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ScoringPermissionRequest(BaseModel):
    judge_id: int
    contest_id: int
    criteria_id: Optional[int] = Field(None, description="Omit for the contest-wide default")
    can_edit: bool


class ScoringPermissionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    judge_id: int
    contest_id: int
    criteria_id: Optional[int] = None
    can_edit: bool


class DivisionPermissionRequest(BaseModel):
    judge_id: int
    contest_id: int
    division_ids: List[int] = Field(default_factory=list, description="Empty list lifts the restriction")


class ParticipantPermissionRequest(BaseModel):
    judge_id: int
    contest_id: int
    participant_ids: List[int] = Field(default_factory=list, description="Empty list lifts the restriction")


class AccessPermissionResponse(BaseModel):
    judge_id: int
    contest_id: int
    restricted_to: Optional[List[int]] = None


class EventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    code: str
    year: int
    is_active: bool
