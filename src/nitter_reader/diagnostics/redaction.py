"""Masking of credentials before payloads reach logs or the event trail."""

from __future__ import annotations

from collections.abc import Mapping
import re
from typing import Any
from urllib.parse import urlsplit, urlunsplit

REDACTED = "<redacted>"

# Keys whose values are masked wholesale, matched case-insensitively as substrings.
_SENSITIVE_KEY_RE = re.compile(r"cookie|token|authorization|password|secret|session|nitter_prefs", re.I)

# (pattern, replacement) pairs applied to free text after URLs are handled.
_TEXT_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"(?i)(authorization\s*[:=]\s*)bearer\s+[\w.~+/-]+"), rf"\g<1>{REDACTED}"),
    (re.compile(r"(?i)(set-cookie\s*[:=]\s*)[^;\n]+"), rf"\g<1>{REDACTED}"),
    (re.compile(r"(?i)\b(auth_token|api_key|access_token|token)\s*=\s*[^&;\"'\s<>]+"), rf"\g<1>={REDACTED}"),
    (re.compile(r"(?i)\"(auth_token|api_key|password|token)\"\s*:\s*\"[^\"]+\""), rf'"\g<1>": "{REDACTED}"'),
)
_URL_RE = re.compile(r"https?://[^\s\"'<>]+")


def redact_url(url: str) -> str:
    """Drop the query string and fragment; callback URLs often carry signing tokens there."""
    try:
        parts = urlsplit(url)
    except ValueError:
        # Unparseable (e.g. an unclosed IPv6 bracket): cut at the first query or fragment marker.
        head, query_mark, _ = url.partition("?")
        head = head.partition("#")[0]
        return f"{head}?{REDACTED}" if query_mark else head
    if not parts.query and not parts.fragment:
        return url
    return urlunsplit((parts.scheme, parts.netloc, parts.path, REDACTED if parts.query else "", ""))


def redact_text(value: str) -> str:
    masked = _URL_RE.sub(lambda match: redact_url(match.group(0)), value)
    for pattern, replacement in _TEXT_RULES:
        masked = pattern.sub(replacement, masked)
    return masked


def redact_value(value: Any) -> Any:
    """Return a copy of ``value`` with sensitive keys and embedded secrets masked."""
    if isinstance(value, str):
        return redact_text(value)
    if isinstance(value, Mapping):
        return {
            str(key): REDACTED if _SENSITIVE_KEY_RE.search(str(key)) else redact_value(child)
            for key, child in value.items()
        }
    if isinstance(value, tuple):
        return tuple(redact_value(child) for child in value)
    if isinstance(value, list):
        return [redact_value(child) for child in value]
    return value
