"""Debug event trail and redaction helpers."""

from .events import (
    EVENT_SCHEMA_VERSION,
    DebugEvent,
    JsonlEventLogger,
    ensure_schema_compatible,
    iter_events,
    schema_major,
)
from .redaction import REDACTED, redact_text, redact_url, redact_value

__all__ = [
    "DebugEvent",
    "EVENT_SCHEMA_VERSION",
    "JsonlEventLogger",
    "REDACTED",
    "ensure_schema_compatible",
    "iter_events",
    "redact_text",
    "redact_url",
    "redact_value",
    "schema_major",
]
