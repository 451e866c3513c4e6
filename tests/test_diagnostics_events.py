"""Structured debug event schema, compatibility and redaction behavior."""

from __future__ import annotations

from datetime import datetime, timezone
import json
from pathlib import Path

import pytest

from nitter_reader.diagnostics.events import (
    EVENT_SCHEMA_VERSION,
    DebugEvent,
    JsonlEventLogger,
    ensure_schema_compatible,
    iter_events,
)
from nitter_reader.diagnostics.redaction import REDACTED, redact_text, redact_url, redact_value
from nitter_reader.errors import DiagnosticsError

MOMENT = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def test_debug_event_carries_schema_version_and_redacted_payload() -> None:
    event = DebugEvent(
        event_type="attempt_failed",
        job_id="alice-1",
        occurred_at=MOMENT,
        mirror="https://m1.example",
        payload={"kind": "SourceError", "session_cookie": "abc"},
    ).to_dict()

    assert event["schema_version"] == EVENT_SCHEMA_VERSION
    assert event["event_type"] == "attempt_failed"
    assert event["job_id"] == "alice-1"
    assert event["mirror"] == "https://m1.example"
    assert event["occurred_at"] == "2026-03-01T12:00:00+00:00"
    assert event["payload"] == {"kind": "SourceError", "session_cookie": REDACTED}


def test_blank_mirror_becomes_null_and_naive_time_becomes_utc() -> None:
    event = DebugEvent(
        event_type="job_completed",
        job_id="alice-1",
        occurred_at=datetime(2026, 3, 1, 12, 0),
        mirror="  ",
    )

    assert event.mirror is None
    assert event.to_dict()["occurred_at"] == "2026-03-01T12:00:00+00:00"


@pytest.mark.parametrize(
    ("event_type", "job_id", "message"),
    [
        (" ", "j", "event_type"),
        ("x", "", "job_id"),
    ],
)
def test_blank_identifiers_are_rejected(event_type: str, job_id: str, message: str) -> None:
    with pytest.raises(DiagnosticsError, match=message):
        DebugEvent(event_type=event_type, job_id=job_id, occurred_at=MOMENT)


def test_from_dict_rejects_missing_fields() -> None:
    with pytest.raises(DiagnosticsError, match="missing field\\(s\\): job_id"):
        DebugEvent.from_dict(
            {
                "schema_version": "v1",
                "event_type": "attempt_failed",
                "occurred_at": "2026-03-01T00:00:00+00:00",
                "mirror": None,
                "payload": {},
            }
        )


def test_from_dict_rejects_other_major_versions() -> None:
    raw = DebugEvent(event_type="job_completed", job_id="j", occurred_at=MOMENT).to_dict()
    raw["schema_version"] = "v2"

    with pytest.raises(DiagnosticsError, match="Incompatible debug event schema"):
        DebugEvent.from_dict(raw)


def test_iter_events_reads_back_trail_and_reports_bad_lines(tmp_path: Path) -> None:
    path = tmp_path / "events.jsonl"
    logger = JsonlEventLogger(path)
    written = logger.append("job_completed", job_id="j", payload={"success": True}, occurred_at=MOMENT)

    assert list(iter_events(path)) == [written]

    with path.open("a", encoding="utf-8") as stream:
        stream.write("\n{broken\n")
    with pytest.raises(DiagnosticsError, match=":3: invalid JSON"):
        list(iter_events(path))


def test_ensure_schema_compatible_accepts_current_major_forms() -> None:
    ensure_schema_compatible("v1")
    ensure_schema_compatible("1.1")


def test_ensure_schema_compatible_rejects_incompatible_or_malformed_versions() -> None:
    with pytest.raises(DiagnosticsError, match="Incompatible debug event schema"):
        ensure_schema_compatible("v2")
    with pytest.raises(DiagnosticsError, match="Invalid schema version"):
        ensure_schema_compatible("latest")


def test_jsonl_event_logger_appends_valid_json_lines(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "events.jsonl"
    logger = JsonlEventLogger(path)
    moment = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

    logger.append("attempt_failed", job_id="job-1", mirror="https://m1.example", occurred_at=moment)
    logger.append(
        "job_completed",
        job_id="job-1",
        payload={"success": True, "callback": "https://hook.example/x?token=abc"},
        occurred_at=moment,
    )

    lines = path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 2
    events = [json.loads(line) for line in lines]
    assert [event["event_type"] for event in events] == ["attempt_failed", "job_completed"]
    assert events[0]["occurred_at"] == moment.isoformat()
    assert events[1]["payload"]["callback"] == f"https://hook.example/x?{REDACTED}"
    assert logger.path == path


def test_redact_url_drops_query_and_fragment() -> None:
    assert redact_url("https://hook.example/cb") == "https://hook.example/cb"
    assert redact_url("https://hook.example/cb?key=1#frag") == f"https://hook.example/cb?{REDACTED}"
    assert redact_url("https://hook.example/cb#frag") == "https://hook.example/cb"


def test_redact_text_masks_credentials_in_free_text() -> None:
    text = "Authorization: Bearer abc.def token=xyz posting to https://h.example/p?sig=1 now"

    redacted = redact_text(text)

    assert "abc.def" not in redacted
    assert "xyz" not in redacted
    assert "sig=1" not in redacted
    assert "https://h.example/p" in redacted


def test_redact_value_recurses_through_containers() -> None:
    payload = {
        "headers": {"Authorization": "Bearer abc", "Accept": "text/html"},
        "mirrors": ("https://m1.example", "https://m2.example"),
        "attempts": [{"nitter_prefs": "minimal=0"}, 3],
    }

    redacted = redact_value(payload)

    assert redacted["headers"] == {"Authorization": REDACTED, "Accept": "text/html"}
    assert redacted["mirrors"] == ("https://m1.example", "https://m2.example")
    assert redacted["attempts"] == [{"nitter_prefs": REDACTED}, 3]


def test_redact_url_tolerates_unparseable_urls() -> None:
    assert redact_url("http://[bad-host/hook?token=abc") == f"http://[bad-host/hook?{REDACTED}"
    assert redact_url("http://[bad-host/hook#frag") == "http://[bad-host/hook"
