from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import pytest

from radiocms.domain.models import Actor, LogType
from radiocms.pipelines.publish import (
    PipelineState,
    PublishPipeline,
    Stage,
    segment_filename,
)
from radiocms.pipelines.publish import orchestrator as orchestrator_module
from radiocms.pipelines.publish.flow import next_state
from radiocms.pipelines.publish.types import size_in_kb
from radiocms.services import encode_audio_payload
from radiocms.services.transport import TransportError
from radiocms.views import BroadcastConfig

from conftest import FTP_PASSWORD, FakeTransport, RecordingStore, make_ftp_config

ADMIN = Actor(id="7", role="admin", name="Station Admin")
AUDIO = b"ID3" + bytes(range(256)) * 8


def _body(data: bytes = AUDIO, filename: str = "dj_20240501.mp3") -> dict[str, str]:
    return {"audio_payload": encode_audio_payload(data), "filename": filename}


def _publish(orchestrator, actor=ADMIN, body=None):
    return asyncio.run(orchestrator.publish(actor, _body() if body is None else body))


def test_successful_publish(build_orchestrator, audit_store, transport) -> None:
    outcome = _publish(build_orchestrator())

    assert outcome.status_code == 200
    assert outcome.state is PipelineState.PUBLISHED
    payload = outcome.result.to_payload()
    assert payload == {
        "success": True,
        "remote_path": "dj_interventions/dj_20240501.mp3",
        "public_url": "https://c34.radioboss.fm/dj_interventions/dj_20240501.mp3",
        "filename": "dj_20240501.mp3",
        "size_bytes": len(AUDIO),
        "size_kb": 2,
        "message": "Audio uploaded via FTP (2 KB)",
    }
    [(data, target)] = transport.calls
    assert data == AUDIO
    assert target.credential == FTP_PASSWORD

    [entry] = audit_store.entries
    assert entry.log_type is LogType.SUCCESS
    assert entry.module == "dj_virtual"
    assert entry.details["size_bytes"] == len(AUDIO)
    assert entry.details["public_url"] == payload["public_url"]
    assert FTP_PASSWORD not in repr(audit_store.entries)


def test_sftp_publish_reports_scheme(build_orchestrator, transport) -> None:
    config = BroadcastConfig(ftp=make_ftp_config(host="localhost", port=None, encryption="sftp"))

    outcome = _publish(build_orchestrator(config=config))

    assert outcome.result.message.startswith("Audio uploaded via SFTP")
    assert outcome.result.public_url == "http://localhost:8000/dj_interventions/dj_20240501.mp3"
    assert transport.calls[0][1].port == 22


@pytest.mark.parametrize(
    "actor",
    [None, Actor(id="3", role="user"), Actor(id="4", role="dj")],
)
def test_unauthorized_actor_is_rejected_before_any_work(build_orchestrator, audit_store, transport, actor) -> None:
    outcome = _publish(build_orchestrator(), actor=actor)

    assert outcome.status_code == 401
    assert outcome.failed_stage is Stage.AUTH
    assert outcome.result.to_payload() == {"success": False, "error": "Not authorized"}
    assert transport.calls == []
    [entry] = audit_store.entries
    assert entry.log_type is LogType.ERROR
    assert entry.details["stage"] == "auth"


def test_superadmin_is_allowed(build_orchestrator) -> None:
    outcome = _publish(build_orchestrator(), actor=Actor(id="1", role="superadmin"))

    assert outcome.status_code == 200


@pytest.mark.parametrize(
    "body",
    [
        None,
        "not an object",
        {},
        {"filename": "a.mp3"},
        {"audio_payload": "SUQz"},
        {"audio_payload": "   ", "filename": "a.mp3"},
    ],
)
def test_invalid_request_is_a_validation_failure(build_orchestrator, audit_store, transport, body) -> None:
    outcome = asyncio.run(build_orchestrator().publish(ADMIN, body))

    assert outcome.status_code == 400
    assert outcome.failed_stage is Stage.VALIDATION
    assert outcome.result.error == "audio_payload and filename are required"
    assert outcome.result.troubleshooting is None
    assert transport.calls == []
    assert len(audit_store.entries) == 1


def test_legacy_audio_field_name_is_accepted(build_orchestrator) -> None:
    body = {"audio_base64": encode_audio_payload(AUDIO), "filename": "legacy.mp3"}

    outcome = _publish(build_orchestrator(), body=body)

    assert outcome.status_code == 200


@pytest.mark.parametrize(
    "config",
    [
        None,
        BroadcastConfig(ftp=None),
        BroadcastConfig(ftp=make_ftp_config(enabled=False)),
        BroadcastConfig(ftp=make_ftp_config(host="   ")),
    ],
)
def test_missing_or_disabled_config_never_contacts_server(build_orchestrator, audit_store, transport, config) -> None:
    outcome = _publish(build_orchestrator(config=config))

    assert outcome.status_code == 500
    assert outcome.failed_stage is Stage.CONFIG
    assert "FTP is not configured" in outcome.result.error
    assert len(outcome.result.troubleshooting) == 5
    assert transport.calls == []
    assert [entry.log_type for entry in audit_store.entries] == [LogType.ERROR]


def test_missing_secret_names_the_key(build_orchestrator, audit_store, transport) -> None:
    config = BroadcastConfig(ftp=make_ftp_config(password_secret_key="STATION_FTP_PASSWORD"))

    outcome = _publish(build_orchestrator(config=config, secrets={}))

    assert outcome.status_code == 500
    assert outcome.failed_stage is Stage.SECRET
    assert "STATION_FTP_PASSWORD" in outcome.result.error
    assert any("STATION_FTP_PASSWORD" in hint for hint in outcome.result.troubleshooting)
    assert transport.calls == []
    assert audit_store.entries[0].details["secret_name"] == "STATION_FTP_PASSWORD"


def test_default_secret_key_is_used_when_unset(build_orchestrator) -> None:
    config = BroadcastConfig(ftp=make_ftp_config(password_secret_key=None))

    outcome = _publish(build_orchestrator(config=config))

    assert outcome.status_code == 200


@pytest.mark.parametrize("payload", ["@@@not-base64@@@", "====", "QUJDRA=x"])
def test_undecodable_audio_fails_at_decode(build_orchestrator, audit_store, transport, payload) -> None:
    outcome = _publish(build_orchestrator(), body={"audio_payload": payload, "filename": "a.mp3"})

    assert outcome.status_code == 500
    assert outcome.failed_stage is Stage.DECODE
    assert outcome.result.error == "Could not convert the base64 audio"
    assert transport.calls == []
    assert len(audit_store.entries) == 1


def test_transport_failure_is_reported_without_credential(build_orchestrator, audit_store) -> None:
    failing = FakeTransport(
        error=TransportError(
            "FTP upload failed: 530 Login incorrect",
            status_code=530,
            status_text="530 Login incorrect",
        )
    )

    outcome = _publish(build_orchestrator(transport_client=failing))

    assert outcome.status_code == 500
    assert outcome.failed_stage is Stage.UPLOAD
    assert outcome.result.error == "Error uploading via FTP"
    assert outcome.result.details == "FTP upload failed: 530 Login incorrect"
    assert len(outcome.result.troubleshooting) == 5
    [entry] = audit_store.entries
    assert entry.details["status_code"] == 530
    assert entry.details["network_failure"] is False
    assert entry.stack_trace
    assert FTP_PASSWORD not in repr(entry)


def test_audit_store_failure_does_not_change_response(build_orchestrator) -> None:
    outcome = _publish(build_orchestrator(store=RecordingStore(fail=True)))

    assert outcome.status_code == 200
    assert outcome.result.success


def test_unexpected_error_is_recorded_as_critical(build_orchestrator, audit_store, transport) -> None:
    broken = FakeTransport(error=RuntimeError("socket exploded"))

    outcome = _publish(build_orchestrator(transport_client=broken))

    assert outcome.status_code == 500
    assert outcome.state is PipelineState.FAILED
    assert outcome.result.to_payload() == {"success": False, "error": "socket exploded"}
    [entry] = audit_store.entries
    assert entry.log_type is LogType.CRITICAL
    assert "socket exploded" in entry.stack_trace


def test_failure_after_success_entry_adds_critical_entry(build_orchestrator, audit_store, monkeypatch) -> None:
    def broken_metrics(outcome, stage=None, size_bytes=None):
        if outcome == "success":
            raise RuntimeError("metrics backend down")

    monkeypatch.setattr(orchestrator_module, "observe_publish", broken_metrics)

    outcome = _publish(build_orchestrator())

    assert outcome.status_code == 500
    assert [entry.log_type for entry in audit_store.entries] == [LogType.SUCCESS, LogType.CRITICAL]


def test_uploads_of_same_filename_are_serialized(build_orchestrator) -> None:
    slow = FakeTransport(delay=0.02)
    orchestrator = build_orchestrator(transport_client=slow)

    async def scenario():
        return await asyncio.gather(*(orchestrator.publish(ADMIN, _body()) for _ in range(3)))

    outcomes = asyncio.run(scenario())

    assert [outcome.status_code for outcome in outcomes] == [200, 200, 200]
    assert slow.max_active == 1


def test_uploads_of_different_filenames_run_concurrently(build_orchestrator) -> None:
    slow = FakeTransport(delay=0.02)
    orchestrator = build_orchestrator(transport_client=slow)

    async def scenario():
        return await asyncio.gather(
            *(orchestrator.publish(ADMIN, _body(filename=f"seg_{i}.mp3")) for i in range(3))
        )

    asyncio.run(scenario())

    assert slow.max_active == 3


@pytest.mark.parametrize(
    ("size", "expected"),
    [(0, 0), (511, 0), (512, 1), (1024, 1), (1535, 1), (1536, 2)],
)
def test_size_in_kb_rounds_half_up(size, expected) -> None:
    assert size_in_kb(size) == expected


def test_state_machine_order() -> None:
    state = PipelineState.RECEIVED
    visited = [state]
    while state is not PipelineState.PUBLISHED:
        state = next_state(state)
        visited.append(state)

    assert visited[-1] is PipelineState.PUBLISHED
    assert len(visited) == 8
    with pytest.raises(ValueError):
        next_state(PipelineState.FAILED)
    assert [stage.stage for stage in PublishPipeline.describe()][0] is Stage.AUTH


def test_segment_filename_is_timestamped() -> None:
    moment = datetime(2024, 5, 1, 8, 30, tzinfo=timezone.utc)

    first = segment_filename("news flash", now=moment)
    second = segment_filename("news flash", now=moment)

    assert first.startswith("news-flash_20240501T083000Z_")
    assert first.endswith(".mp3")
    assert first != second
