"""
Declarative base and shared column mixins.
"""

from sqlalchemy import Column, DateTime, func
from sqlalchemy.orm import declarative_base

from funbookr.core.clock import utcnow

Base = declarative_base()


class TimestampMixin:
    # Python-side defaults keep the values on the instance after flush,
    # so async handlers never need a refresh round-trip to read them.
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
    )
