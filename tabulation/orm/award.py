"""
Award ORM model.

criteria_ids is normalized to List[int] by CriteriaIdList regardless of
how it was written; criteria_id is the legacy single-criterion column.
"""
import enum

from sqlalchemy import (
    Column, Integer, String, Text, Boolean, ForeignKey, Enum as SQLEnum
)

from tabulation.core.db_types import CriteriaIdList
from tabulation.orm.base import BaseModel


class AwardType(str, enum.Enum):
    CRITERIA = "criteria"
    SPECIAL = "special"


class Award(BaseModel):
    __tablename__ = "award"

    event_id = Column(Integer, ForeignKey("event.id", ondelete="CASCADE"), nullable=False, index=True)
    # Unpinned awards are placed by their first criterion's contest
    contest_id = Column(Integer, ForeignKey("contest.id", ondelete="SET NULL"), nullable=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    award_type = Column(
        SQLEnum(AwardType, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=AwardType.CRITERIA
    )
    criteria_id = Column(Integer, ForeignKey("criteria.id", ondelete="SET NULL"), nullable=True)
    criteria_ids = Column(CriteriaIdList, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
