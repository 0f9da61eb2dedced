"""Per-request access log lines for the publishing API."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from radiocms.utils import AuthenticationError, decode_access_token

logger = logging.getLogger("radiocms.middleware.structured")

COLOR_RESET = "\u001b[0m"
_STATUS_COLORS = {
    2: "\u001b[32m",  # green
    3: "\u001b[36m",  # cyan
    4: "\u001b[33m",  # yellow
    5: "\u001b[31m",  # red
}


@dataclass(slots=True)
class RequestLogLine:
    """What one access log line reports about a request."""

    timestamp: str
    method: str
    path: str
    client_ip: Optional[str]
    actor_id: Optional[str]
    status_code: int = 0
    duration_ms: float = 0.0
    error: Optional[str] = None

    def console(self) -> str:
        color = _STATUS_COLORS.get(self.status_code // 100, "")
        fields = (
            f"{self.method} {self.path}",
            f"status={self.status_code}",
            f"duration_ms={self.duration_ms}",
            f"client_ip={self.client_ip or '-'}",
            f"actor_id={self.actor_id or '-'}",
        )
        line = " ".join(fields)
        return f"{color}{line}{COLOR_RESET}" if color else line

    def as_json(self) -> str:
        return json.dumps(asdict(self), default=str, separators=(",", ":"))


def _bearer_actor_id(request: Request) -> Optional[str]:
    scheme, _, token = request.headers.get("authorization", "").partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    try:
        return decode_access_token(token).sub
    except AuthenticationError:
        return None


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """Emit one coloured line (and a JSON debug line) per HTTP request."""

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        started = time.perf_counter()
        line = RequestLogLine(
            timestamp=datetime.now(timezone.utc).isoformat(),
            method=request.method,
            path=request.url.path,
            client_ip=request.client.host if request.client else None,
            actor_id=_bearer_actor_id(request),
        )

        try:
            response = await call_next(request)
        except Exception as exc:  # pragma: no cover
            line.status_code = 500
            line.duration_ms = round((time.perf_counter() - started) * 1000, 2)
            line.error = repr(exc)
            logger.exception(line.console())
            raise

        line.status_code = response.status_code
        line.duration_ms = round((time.perf_counter() - started) * 1000, 2)
        logger.info(line.console())
        logger.debug(line.as_json())
        return response
