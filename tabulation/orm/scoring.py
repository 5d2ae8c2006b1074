"""
Scoring ORM models: raw scores, submitted totals, submission markers.

Immutable keys:
- score: one row per (judge, participant, criterion), upserted
- judge_participant_total: one row per (judge, participant, contest),
  only written by submit-all (delete-then-insert)
- judge_contest_submission: at most one marker per (judge, contest)
"""
from datetime import datetime

from sqlalchemy import (
    Column, Integer, Numeric, ForeignKey, DateTime, UniqueConstraint, Index
)

from tabulation.orm.base import BaseModel


class Score(BaseModel):
    """Raw value entered by one judge for one participant on one criterion."""
    __tablename__ = "score"

    judge_id = Column(Integer, ForeignKey("user_judge.id", ondelete="CASCADE"), nullable=False)
    participant_id = Column(Integer, ForeignKey("participant.id", ondelete="CASCADE"), nullable=False)
    criteria_id = Column(Integer, ForeignKey("criteria.id", ondelete="CASCADE"), nullable=False)
    score = Column(Numeric(10, 4), nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("judge_id", "participant_id", "criteria_id", name="uq_score_cell"),
        Index("idx_score_judge", "judge_id"),
        Index("idx_score_participant", "participant_id"),
    )


class JudgeParticipantTotal(BaseModel):
    """Submission-time snapshot of one judge's weighted total for a participant."""
    __tablename__ = "judge_participant_total"

    judge_id = Column(Integer, ForeignKey("user_judge.id", ondelete="CASCADE"), nullable=False)
    participant_id = Column(Integer, ForeignKey("participant.id", ondelete="CASCADE"), nullable=False)
    contest_id = Column(Integer, ForeignKey("contest.id", ondelete="CASCADE"), nullable=False)
    total_score = Column(Numeric(14, 2), nullable=False)

    __table_args__ = (
        UniqueConstraint("judge_id", "participant_id", "contest_id", name="uq_judge_participant_total"),
        Index("idx_total_contest", "contest_id"),
    )


class JudgeContestSubmission(BaseModel):
    """Marker: the judge has finalized scoring for the contest."""
    __tablename__ = "judge_contest_submission"

    judge_id = Column(Integer, ForeignKey("user_judge.id", ondelete="CASCADE"), nullable=False)
    contest_id = Column(Integer, ForeignKey("contest.id", ondelete="CASCADE"), nullable=False)
    submitted_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("judge_id", "contest_id", name="uq_judge_contest_submission"),
    )
