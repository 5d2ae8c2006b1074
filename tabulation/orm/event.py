"""
Event structure ORM models: events, contests, criteria, divisions, teams.

Exactly one event is active system-wide. A contest's scoring_type decides
how a criterion's `percentage` column is read: as a 0-100 weight in
percentage mode, or as the maximum raw points in points mode.
"""
import enum

from sqlalchemy import (
    Column, Integer, String, Text, Boolean, Numeric, ForeignKey,
    Enum as SQLEnum, Index
)
from sqlalchemy.orm import relationship

from tabulation.orm.base import BaseModel


class ScoringType(str, enum.Enum):
    """How criterion weights are applied to raw scores."""
    PERCENTAGE = "percentage"
    POINTS = "points"


class Event(BaseModel):
    """Top-level competition event (one active at a time)."""
    __tablename__ = "event"

    name = Column(String(200), nullable=False)
    code = Column(String(50), nullable=False, unique=True)
    year = Column(Integer, nullable=False)
    is_active = Column(Boolean, nullable=False, default=False)

    contests = relationship("Contest", back_populates="event", cascade="all, delete-orphan")

    __table_args__ = (
        Index("idx_event_active", "is_active"),
    )


class Contest(BaseModel):
    """A judged segment within an event, with its own criteria and participants."""
    __tablename__ = "contest"

    event_id = Column(Integer, ForeignKey("event.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    contest_code = Column(String(50), nullable=True)
    scoring_type = Column(
        SQLEnum(ScoringType, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=ScoringType.PERCENTAGE
    )

    event = relationship("Event", back_populates="contests")
    criteria = relationship("Criterion", back_populates="contest", cascade="all, delete-orphan")


class Criterion(BaseModel):
    """One scoring dimension of a contest."""
    __tablename__ = "criteria"

    contest_id = Column(Integer, ForeignKey("contest.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    # Weight (percentage mode) or max raw points (points mode)
    percentage = Column(Numeric(7, 2), nullable=False)
    description = Column(Text, nullable=True)
    criteria_code = Column(String(50), nullable=True)
    # Free-text grouping used for subtotals and award expansion
    category = Column(String(100), nullable=True)

    contest = relationship("Contest", back_populates="criteria")

    __table_args__ = (
        Index("idx_criteria_category", "contest_id", "category"),
    )


class Division(BaseModel):
    """Participant grouping within an event (age/gender bracket)."""
    __tablename__ = "division"

    event_id = Column(Integer, ForeignKey("event.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(200), nullable=False)


class Team(BaseModel):
    __tablename__ = "team"

    event_id = Column(Integer, ForeignKey("event.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
