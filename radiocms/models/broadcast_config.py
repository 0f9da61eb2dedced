"""SQLAlchemy model for the broadcast publishing configuration."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, Integer

from radiocms.models.base import Base


class BroadcastConfigRecord(Base):
    __tablename__ = "broadcast_configs"

    id = Column(Integer, primary_key=True, index=True)
    ftp = Column(JSON, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(
        DateTime,
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
    )
