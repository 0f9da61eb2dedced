from __future__ import annotations

from radiocms.services.public_url import resolve_public_url


def test_managed_host_uses_https() -> None:
    url = resolve_public_url("cloud.radioboss.fm", "dj/a.mp3", 21)

    assert url == "https://cloud.radioboss.fm/dj/a.mp3"


def test_localhost_uses_local_port() -> None:
    assert resolve_public_url("localhost", "x/b.mp3") == "http://localhost:8000/x/b.mp3"
    assert resolve_public_url("127.0.0.1", "x/b.mp3", 2121) == "http://127.0.0.1:2121/x/b.mp3"


def test_other_hosts_use_plain_http() -> None:
    assert resolve_public_url("10.0.0.5", "c.mp3", 21) == "http://10.0.0.5/c.mp3"


def test_managed_domain_is_configurable() -> None:
    url = resolve_public_url("media.example.org", "c.mp3", managed_domain="example.org")

    assert url == "https://media.example.org/c.mp3"
