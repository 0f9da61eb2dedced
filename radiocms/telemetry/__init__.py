"""Prometheus metrics of the publishing API."""

from .metrics import (
    PUBLISH_COUNTER,
    REQUEST_COUNT,
    REQUEST_LATENCY,
    UPLOAD_BYTES,
    observe_publish,
    observe_request,
)

__all__ = [
    "PUBLISH_COUNTER",
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "UPLOAD_BYTES",
    "observe_publish",
    "observe_request",
]
