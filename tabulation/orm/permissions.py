"""
Permission override ORM models.

Three independent layers on top of the default-open / locked-after-submit
behavior:
- judge_scoring_permission: (judge, contest, criterion or NULL) -> can_edit
- judge_division_permission: any row restricts the judge to listed divisions
- judge_participant_permission: any row restricts the judge to listed participants
"""
from sqlalchemy import (
    Column, Integer, Boolean, ForeignKey, UniqueConstraint, Index
)

from tabulation.orm.base import BaseModel


class JudgeScoringPermission(BaseModel):
    """
    Edit override for a judge on a contest.

    criteria_id NULL is the contest-wide default for that judge.
    """
    __tablename__ = "judge_scoring_permission"

    judge_id = Column(Integer, ForeignKey("user_judge.id", ondelete="CASCADE"), nullable=False)
    contest_id = Column(Integer, ForeignKey("contest.id", ondelete="CASCADE"), nullable=False)
    criteria_id = Column(Integer, ForeignKey("criteria.id", ondelete="CASCADE"), nullable=True)
    can_edit = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint("judge_id", "contest_id", "criteria_id", name="uq_scoring_permission"),
        Index("idx_scoring_permission_lookup", "judge_id", "contest_id"),
    )


class JudgeDivisionPermission(BaseModel):
    __tablename__ = "judge_division_permission"

    judge_id = Column(Integer, ForeignKey("user_judge.id", ondelete="CASCADE"), nullable=False)
    contest_id = Column(Integer, ForeignKey("contest.id", ondelete="CASCADE"), nullable=False)
    division_id = Column(Integer, ForeignKey("division.id", ondelete="CASCADE"), nullable=False)

    __table_args__ = (
        UniqueConstraint("judge_id", "contest_id", "division_id", name="uq_division_permission"),
    )


class JudgeParticipantPermission(BaseModel):
    __tablename__ = "judge_participant_permission"

    judge_id = Column(Integer, ForeignKey("user_judge.id", ondelete="CASCADE"), nullable=False)
    contest_id = Column(Integer, ForeignKey("contest.id", ondelete="CASCADE"), nullable=False)
    participant_id = Column(Integer, ForeignKey("participant.id", ondelete="CASCADE"), nullable=False)

    __table_args__ = (
        UniqueConstraint("judge_id", "contest_id", "participant_id", name="uq_participant_permission"),
    )
