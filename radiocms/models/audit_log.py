"""Persisted audit log model for pipeline outcomes."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, Integer, String, Text

from .base import Base


class AuditLog(Base):
    """Append-only system log entry written by the audit logger."""

    __tablename__ = "system_logs"

    id = Column(Integer, primary_key=True, index=True)
    log_type = Column(String(16), nullable=False, index=True)
    module = Column(String(64), nullable=False, index=True)
    message = Column(String(512), nullable=False)
    details = Column(JSON, nullable=False, default=dict)
    stack_trace = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)


__all__ = ["AuditLog"]
