from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping, Optional


class Role(str, Enum):
    """Roles issued by the authentication collaborator."""

    USER = "user"
    DJ = "dj"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"


@dataclass(frozen=True)
class Actor:
    """Verified caller identity handed over by the auth layer."""

    id: str
    role: str
    name: Optional[str] = None

    def has_role(self, *roles: str) -> bool:
        return self.role in roles


class LogType(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class AuditLogEntry:
    """Append-only diagnostic record of one pipeline outcome."""

    log_type: LogType
    module: str
    message: str
    details: Mapping[str, Any] = field(default_factory=dict)
    stack_trace: Optional[str] = None
    created_at: datetime = field(default_factory=_utcnow)
