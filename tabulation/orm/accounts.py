"""
Account ORM models: judges, tabulators, administrators, judge assignments.

A chairman is a judge whose view of totals is the sum across every
judge of the contest rather than an individual score.
"""
import enum

from sqlalchemy import (
    Column, Integer, String, ForeignKey, Enum as SQLEnum, UniqueConstraint
)

from tabulation.orm.base import BaseModel


class JudgeRole(str, enum.Enum):
    CHAIRMAN = "chairman"
    JUDGE = "judge"


class PrincipalRole(str, enum.Enum):
    """Roles that can hold a session."""
    ADMIN = "admin"
    JUDGE = "judge"
    TABULATOR = "tabulator"


class Judge(BaseModel):
    __tablename__ = "user_judge"

    event_id = Column(Integer, ForeignKey("event.id", ondelete="CASCADE"), nullable=False, index=True)
    full_name = Column(String(200), nullable=False)
    username = Column(String(100), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(
        SQLEnum(JudgeRole, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=JudgeRole.JUDGE
    )

    @property
    def is_chairman(self) -> bool:
        return self.role == JudgeRole.CHAIRMAN


class Tabulator(BaseModel):
    __tablename__ = "user_tabulator"

    event_id = Column(Integer, ForeignKey("event.id", ondelete="CASCADE"), nullable=False, index=True)
    full_name = Column(String(200), nullable=False)
    username = Column(String(100), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)


class Administrator(BaseModel):
    __tablename__ = "user_admin"

    full_name = Column(String(200), nullable=False)
    username = Column(String(100), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)


class JudgeAssignment(BaseModel):
    """Contests a judge is allowed to score."""
    __tablename__ = "judge_assignment"

    judge_id = Column(Integer, ForeignKey("user_judge.id", ondelete="CASCADE"), nullable=False, index=True)
    contest_id = Column(Integer, ForeignKey("contest.id", ondelete="CASCADE"), nullable=False)

    __table_args__ = (
        UniqueConstraint("judge_id", "contest_id", name="uq_judge_assignment"),
    )
