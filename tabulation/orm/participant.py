"""
Participant (contestant) ORM model.
"""
from sqlalchemy import Column, Integer, String, ForeignKey, Index

from tabulation.orm.base import BaseModel


class Participant(BaseModel):
    """
    A contestant in one contest.

    `contestant_number` is a display string that sorts numerically
    when it holds a number.
    """
    __tablename__ = "participant"

    contest_id = Column(Integer, ForeignKey("contest.id", ondelete="CASCADE"), nullable=False)
    division_id = Column(Integer, ForeignKey("division.id", ondelete="RESTRICT"), nullable=False)
    team_id = Column(Integer, ForeignKey("team.id", ondelete="SET NULL"), nullable=True)
    full_name = Column(String(200), nullable=False)
    contestant_number = Column(String(20), nullable=False)
    avatar_url = Column(String(500), nullable=True)

    __table_args__ = (
        Index("idx_participant_contest", "contest_id"),
        Index("idx_participant_division", "contest_id", "division_id"),
    )
