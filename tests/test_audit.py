from __future__ import annotations

import asyncio

from radiocms.domain.models import LogType
from radiocms.services.audit import AuditLogger, redact_details

from conftest import RecordingStore


def test_redact_details_masks_sensitive_keys_and_values() -> None:
    details = {
        "ftp_host": "c34.radioboss.fm",
        "password": "hunter2",
        "ftp_password": "hunter2",
        "nested": {"api_key": "abc", "note": "login with hunter2 failed"},
        "attempts": [1, "hunter2"],
        "size_kb": 12,
    }

    clean = redact_details(details, secrets=("hunter2",))

    assert clean == {
        "ftp_host": "c34.radioboss.fm",
        "password": "***",
        "ftp_password": "***",
        "nested": {"api_key": "***", "note": "login with *** failed"},
        "attempts": [1, "***"],
        "size_kb": 12,
    }


def test_record_persists_redacted_entry() -> None:
    store = RecordingStore()
    audit = AuditLogger(store, module="dj_virtual")
    entry = audit.entry(
        LogType.ERROR,
        "Upload failed for hunter2",
        {"error": "530 Login incorrect (hunter2)"},
        stack_trace="Traceback ... hunter2",
    )

    stored = asyncio.run(audit.record(entry, secrets=("hunter2",)))

    assert stored is True
    [persisted] = store.entries
    assert persisted.module == "dj_virtual"
    assert persisted.log_type is LogType.ERROR
    assert "hunter2" not in persisted.message
    assert "hunter2" not in str(persisted.details)
    assert "hunter2" not in persisted.stack_trace


def test_record_swallows_store_failure() -> None:
    audit = AuditLogger(RecordingStore(fail=True))

    stored = asyncio.run(audit.record(audit.entry(LogType.SUCCESS, "Audio uploaded via FTP")))

    assert stored is False
