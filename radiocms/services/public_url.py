"""Derive the listener-facing URL of an uploaded file.

The result is a best-effort guess from hostname conventions; nothing here
checks that the URL is actually reachable.
"""

from __future__ import annotations

from typing import Optional

from radiocms.config.settings import settings

_LOOPBACK_HOSTS = frozenset({"localhost", "127.0.0.1"})


def resolve_public_url(
    host: str,
    remote_path: str,
    port: Optional[int] = None,
    *,
    managed_domain: str = settings.publish.managed_host_domain,
    local_port: int = settings.publish.local_http_port,
) -> str:
    """Return the public URL for ``remote_path`` on ``host``.

    1. Hosts on the managed streaming provider's domain serve over HTTPS.
    2. Loopback hosts serve plain HTTP on ``port`` (or ``local_port``).
    3. Any other host is assumed to serve plain HTTP on the default port.
    """

    if managed_domain and managed_domain in host:
        return f"https://{host}/{remote_path}"
    if host in _LOOPBACK_HOSTS:
        return f"http://{host}:{port or local_port}/{remote_path}"
    return f"http://{host}/{remote_path}"


__all__ = ["resolve_public_url"]
