"""
tabulation/orm/base.py
Base model for all ORM models
"""
import enum
from datetime import datetime
from typing import Any, Dict

from sqlalchemy import Column, Integer, DateTime
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class BaseModel(Base):
    """
    Abstract base model with common fields.
    All ORM models inherit from this.
    """
    __abstract__ = True

    id = Column(
        Integer,
        primary_key=True,
        autoincrement=True,
        index=True
    )

    created_at = Column(
        DateTime,
        default=datetime.utcnow,
        nullable=False,
        comment="Timestamp when record was created"
    )

    def to_dict(self) -> Dict[str, Any]:
        """
        Plain row representation, as delivered to change subscribers.

        Enums are flattened to their value; Decimals are kept exact.
        """
        row: Dict[str, Any] = {}
        for column in self.__table__.columns:
            value = getattr(self, column.name)
            if isinstance(value, enum.Enum):
                value = value.value
            row[column.name] = value
        return row
