"""SQLAlchemy models for the MVC architecture."""

from .base import Base
from .audit_log import AuditLog  # noqa: F401
from .broadcast_config import BroadcastConfigRecord  # noqa: F401

__all__ = [
    "Base",
    "AuditLog",
    "BroadcastConfigRecord",
]
