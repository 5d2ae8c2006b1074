from .base import Base, BaseModel

# Event structure
from .event import Event, Contest, Criterion, Division, Team, ScoringType
from .participant import Participant

# Accounts
from .accounts import Judge, JudgeRole, Tabulator, Administrator, JudgeAssignment, PrincipalRole

# Scoring
from .scoring import Score, JudgeParticipantTotal, JudgeContestSubmission
from .permissions import (
    JudgeScoringPermission,
    JudgeDivisionPermission,
    JudgeParticipantPermission,
)
from .award import Award, AwardType

__all__ = [
    "Base",
    "BaseModel",
    "Event",
    "Contest",
    "Criterion",
    "Division",
    "Team",
    "ScoringType",
    "Participant",
    "Judge",
    "JudgeRole",
    "Tabulator",
    "Administrator",
    "JudgeAssignment",
    "PrincipalRole",
    "Score",
    "JudgeParticipantTotal",
    "JudgeContestSubmission",
    "JudgeScoringPermission",
    "JudgeDivisionPermission",
    "JudgeParticipantPermission",
    "Award",
    "AwardType",
]
