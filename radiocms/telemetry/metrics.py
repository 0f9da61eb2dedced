"""Prometheus metrics for the publishing API."""

from __future__ import annotations

from typing import Optional

from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    "radiocms_http_requests_total",
    "HTTP requests by method, route template and status class",
    ("method", "route", "status_class"),
)

# Uploads of several megabytes over FTP dominate the tail.
REQUEST_LATENCY = Histogram(
    "radiocms_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ("method", "route"),
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
)

PUBLISH_COUNTER = Counter(
    "dj_publish_total",
    "DJ audio publishing invocations by outcome and failing stage",
    ("outcome", "stage"),
)

UPLOAD_BYTES = Histogram(
    "dj_upload_bytes",
    "Size of DJ audio files uploaded to the broadcast server",
    buckets=(16_384, 65_536, 262_144, 1_048_576, 4_194_304, 16_777_216),
)


def observe_request(method: str, route: str, status_code: int, duration_seconds: float) -> None:
    REQUEST_COUNT.labels(
        method=method or "UNKNOWN",
        route=route or "unknown",
        status_class=f"{status_code // 100}xx",
    ).inc()
    REQUEST_LATENCY.labels(method=method or "UNKNOWN", route=route or "unknown").observe(
        max(duration_seconds, 0.0)
    )


def observe_publish(outcome: str, stage: Optional[str] = None, size_bytes: Optional[int] = None) -> None:
    """Record one publishing invocation; ``stage`` is the failing stage, if any."""

    PUBLISH_COUNTER.labels(outcome=outcome, stage=stage or "none").inc()
    if size_bytes is not None:
        UPLOAD_BYTES.observe(size_bytes)
