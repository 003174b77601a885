"""
Access log model - the audit trail of every card presented at a door.

This is the only table the verification engine writes to.
"""
from datetime import datetime

from sqlalchemy import Column, DateTime, Enum as SQLEnum, Integer, String

from access_control.database import Base
from access_control.models.enums import AccessStatus


class AccessLogEntry(Base):
    """
    Immutable record of one verification attempt.

    Invariants:
    - Once written, never edited or deleted
    - Append-only
    - One row per verification call, including system errors
    """
    __tablename__ = "access_log"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    card_uid = Column(String, nullable=False, index=True)
    # Not a foreign key: attempts against unknown doors are logged too
    door_id = Column(Integer, nullable=False, index=True)
    status = Column(SQLEnum(AccessStatus), nullable=False, index=True)
    denial_reason = Column(String, nullable=True)
    timestamp = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
