from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from radiocms.controllers.dependencies import (
    get_broadcast_config_repository,
    get_publish_orchestrator,
    get_secret_provider,
)
from radiocms.main import app
from radiocms.services import (
    SecretStore,
    SecretStoreProvider,
    StaticBroadcastConfigRepository,
    encode_audio_payload,
)
from radiocms.utils import create_access_token
from radiocms.views import BroadcastConfig

from conftest import FTP_PASSWORD, make_ftp_config

client = TestClient(app)


def _auth(role: str = "admin") -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token('42', role, name='Tester')}"}


@pytest.fixture(autouse=True)
def override_dependencies(build_orchestrator):
    state = {
        "orchestrator": build_orchestrator(),
        "repository": StaticBroadcastConfigRepository(BroadcastConfig(ftp=make_ftp_config())),
        "secrets": SecretStoreProvider(lambda: SecretStore({"RADIOBOSS_FTP_PASSWORD": FTP_PASSWORD})),
    }
    app.dependency_overrides[get_publish_orchestrator] = lambda: state["orchestrator"]
    app.dependency_overrides[get_broadcast_config_repository] = lambda: state["repository"]
    app.dependency_overrides[get_secret_provider] = lambda: state["secrets"]
    yield state
    app.dependency_overrides.clear()


def test_upload_publishes_audio(audit_store, transport) -> None:
    response = client.post(
        "/dj/upload",
        json={"audio_payload": encode_audio_payload(b"ID3" * 400), "filename": "dj_1.mp3"},
        headers=_auth(),
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["success"] is True
    assert payload["remote_path"] == "dj_interventions/dj_1.mp3"
    assert payload["size_bytes"] == 1200
    assert payload["size_kb"] == 1
    assert "error" not in payload
    assert len(transport.calls) == 1
    assert len(audit_store.entries) == 1


def test_upload_without_token_is_unauthorized(audit_store, transport) -> None:
    response = client.post(
        "/dj/upload",
        json={"audio_payload": "SUQz", "filename": "dj_1.mp3"},
    )

    assert response.status_code == 401
    assert response.json() == {"success": False, "error": "Not authorized"}
    assert transport.calls == []
    assert len(audit_store.entries) == 1


def test_upload_with_listener_role_is_unauthorized() -> None:
    response = client.post(
        "/dj/upload",
        json={"audio_payload": "SUQz", "filename": "dj_1.mp3"},
        headers=_auth("user"),
    )

    assert response.status_code == 401


def test_upload_with_malformed_json_is_bad_request() -> None:
    response = client.post(
        "/dj/upload",
        content=b"{not json",
        headers={**_auth(), "Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json()["success"] is False
    assert response.json()["error"] == "audio_payload and filename are required"


def test_upload_reports_missing_secret(override_dependencies, build_orchestrator) -> None:
    override_dependencies["orchestrator"] = build_orchestrator(secrets={})

    response = client.post(
        "/dj/upload",
        json={"audio_payload": "SUQz", "filename": "dj_1.mp3"},
        headers=_auth("superadmin"),
    )

    assert response.status_code == 500
    payload = response.json()
    assert payload["success"] is False
    assert "RADIOBOSS_FTP_PASSWORD" in payload["error"]
    assert len(payload["troubleshooting"]) == 5


def test_status_reports_configuration_without_secret() -> None:
    response = client.get("/dj/upload/status", headers=_auth())

    assert response.status_code == 200
    payload = response.json()
    assert payload["enabled"] is True
    assert payload["host"] == "c34.radioboss.fm"
    assert payload["secret_key"] == "RADIOBOSS_FTP_PASSWORD"
    assert payload["secret_configured"] is True
    assert FTP_PASSWORD not in response.text


def test_status_flags_missing_secret(override_dependencies) -> None:
    override_dependencies["secrets"] = SecretStoreProvider(lambda: SecretStore({}))

    response = client.get("/dj/upload/status", headers=_auth())

    assert response.status_code == 200
    assert response.json()["secret_configured"] is False
    assert "not found" in response.json()["message"]


def test_status_requires_admin_role() -> None:
    assert client.get("/dj/upload/status").status_code == 401
    response = client.get("/dj/upload/status", headers=_auth("dj"))

    assert response.status_code == 401
    assert response.json() == {"success": False, "error": "Not authorized"}


def test_health_and_metrics() -> None:
    assert client.get("/health").json()["status"] == "healthy"

    metrics = client.get("/metrics")
    assert metrics.status_code == 200
    assert "dj_publish_total" in metrics.text
