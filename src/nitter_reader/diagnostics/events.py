"""Append-only JSONL trail of attempt and job events.

Each line is one ``DebugEvent`` serialized with sorted keys. Payloads are
redacted before they reach disk. Readers accept any schema version sharing
the current major version; new fields may be added within a major version but
existing ones are never renamed or removed.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
import json
from pathlib import Path
import re
from typing import Any

from nitter_reader.diagnostics.redaction import redact_value
from nitter_reader.errors import DiagnosticsError

EVENT_SCHEMA_VERSION = "v1"

_SCHEMA_VERSION_RE = re.compile(r"^v?(?P<major>\d+)(?:[._-]\d+)?$", re.IGNORECASE)
_EVENT_FIELDS = ("schema_version", "event_type", "occurred_at", "job_id", "mirror", "payload")


@dataclass(frozen=True)
class DebugEvent:
    event_type: str
    job_id: str
    occurred_at: datetime
    mirror: str | None = None
    payload: dict[str, Any] = field(default_factory=dict)
    schema_version: str = EVENT_SCHEMA_VERSION

    def __post_init__(self) -> None:
        for name in ("event_type", "job_id"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise DiagnosticsError(f"Debug event field '{name}' must be a non-empty string.")
            object.__setattr__(self, name, value.strip())

        mirror = self.mirror
        if mirror is not None and not isinstance(mirror, str):
            raise DiagnosticsError("Debug event field 'mirror' must be a string or null.")
        object.__setattr__(self, "mirror", (mirror.strip() or None) if mirror is not None else None)

        if not isinstance(self.payload, Mapping):
            raise DiagnosticsError("Debug event field 'payload' must be an object.")
        object.__setattr__(self, "payload", redact_value(dict(self.payload)))

        if self.occurred_at.tzinfo is None:
            object.__setattr__(self, "occurred_at", self.occurred_at.replace(tzinfo=timezone.utc))
        ensure_schema_compatible(self.schema_version)

    def to_dict(self) -> dict[str, Any]:
        return {
            "schema_version": self.schema_version,
            "event_type": self.event_type,
            "occurred_at": self.occurred_at.isoformat(),
            "job_id": self.job_id,
            "mirror": self.mirror,
            "payload": self.payload,
        }

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> DebugEvent:
        missing = [name for name in _EVENT_FIELDS if name not in raw]
        if missing:
            raise DiagnosticsError(f"Debug event is missing field(s): {', '.join(missing)}.")
        schema_version = raw["schema_version"]
        if not isinstance(schema_version, str):
            raise DiagnosticsError("Debug event field 'schema_version' must be a string.")
        try:
            occurred_at = datetime.fromisoformat(str(raw["occurred_at"]))
        except ValueError as exc:
            raise DiagnosticsError(f"Debug event has invalid occurred_at: {exc}") from exc
        return cls(
            event_type=raw["event_type"],
            job_id=raw["job_id"],
            occurred_at=occurred_at,
            mirror=raw["mirror"],
            payload=raw["payload"],
            schema_version=schema_version,
        )


class JsonlEventLogger:
    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self._path

    def append(
        self,
        event_type: str,
        *,
        job_id: str,
        mirror: str | None = None,
        payload: Mapping[str, Any] | None = None,
        occurred_at: datetime | None = None,
    ) -> DebugEvent:
        event = DebugEvent(
            event_type=event_type,
            job_id=job_id,
            occurred_at=occurred_at or datetime.now(timezone.utc),
            mirror=mirror,
            payload=dict(payload or {}),
        )
        with self._path.open("a", encoding="utf-8") as stream:
            stream.write(json.dumps(event.to_dict(), sort_keys=True, default=str))
            stream.write("\n")
        return event


def iter_events(path: str | Path) -> Iterator[DebugEvent]:
    """Yield events from a JSONL trail, skipping blank lines."""
    resolved = Path(path)
    with resolved.open(encoding="utf-8") as stream:
        for line_number, line in enumerate(stream, start=1):
            if not line.strip():
                continue
            try:
                raw = json.loads(line)
            except json.JSONDecodeError as exc:
                raise DiagnosticsError(f"{resolved}:{line_number}: invalid JSON ({exc.msg}).") from exc
            if not isinstance(raw, dict):
                raise DiagnosticsError(f"{resolved}:{line_number}: expected a JSON object.")
            yield DebugEvent.from_dict(raw)


def schema_major(version: str) -> int:
    match = _SCHEMA_VERSION_RE.match(version.strip())
    if match is None:
        raise DiagnosticsError(f"Invalid schema version '{version}'. Use forms like 'v1' or '1.0'.")
    return int(match.group("major"))


def ensure_schema_compatible(version: str) -> None:
    expected = schema_major(EVENT_SCHEMA_VERSION)
    if schema_major(version) != expected:
        raise DiagnosticsError(
            f"Incompatible debug event schema '{version}'; this build reads major version {expected}."
        )
