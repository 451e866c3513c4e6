"""Text, counter, link and timestamp normalization helpers."""

from __future__ import annotations

from datetime import datetime, timezone
import re
import unicodedata
from urllib.parse import urlparse

CANONICAL_BASE_URL = "https://x.com"

_STATUS_PATH_ID_RE = re.compile(r"/status/(\d+)")
_ZERO_WIDTH_RE = re.compile(r"[\u200b\u200c\u200d\ufeff]")
_COUNT_RE = re.compile(r"^(\d+(?:\.\d+)?)([KkMmBb]?)$")
_FIRST_NUMBER_RE = re.compile(r"\d[\d,]*")
_DATE_TITLE_FORMATS = ("%b %d, %Y %I:%M %p", "%d %b %Y %H:%M")
_COUNT_SUFFIX = {"": 1, "k": 1_000, "m": 1_000_000, "b": 1_000_000_000}


def normalize_text(raw: str | None) -> str | None:
    if raw is None:
        return None
    normalized = unicodedata.normalize("NFKC", raw)
    without_zero_width = _ZERO_WIDTH_RE.sub("", normalized)
    collapsed = " ".join(without_zero_width.split())
    return collapsed or None


def status_id_from_href(href: str | None) -> str | None:
    """Parse the numeric status id from a mirror or x.com status link."""
    if not href:
        return None
    match = _STATUS_PATH_ID_RE.search(href.split("#", 1)[0])
    return match.group(1) if match else None


def canonical_status_url(href: str | None) -> str | None:
    """Rewrite a mirror status link to its x.com form, dropping query and fragment."""
    if not href or status_id_from_href(href) is None:
        return None
    path = urlparse(href.strip()).path
    if not path.startswith("/"):
        path = f"/{path}"
    return f"{CANONICAL_BASE_URL}{path}"


def parse_count(raw: str | None) -> int | None:
    """Parse engagement counters such as ``1,234`` or ``1.2K``; None when unreadable."""
    text = normalize_text(raw)
    if text is None:
        return None
    compact = text.replace(",", "").replace(" ", "")
    match = _COUNT_RE.fullmatch(compact)
    if match is None:
        return None
    number, suffix = match.groups()
    return int(round(float(number) * _COUNT_SUFFIX[suffix.lower()]))


def first_count(raw: str | None) -> int | None:
    """Parse the first number embedded in free text, e.g. ``1,024 Photos and videos``."""
    text = normalize_text(raw)
    if text is None:
        return None
    match = _FIRST_NUMBER_RE.search(text)
    return parse_count(match.group(0)) if match else None


def parse_date_title(raw: str | None) -> datetime | None:
    """Parse mirror date titles like ``Jan 5, 2024 · 3:04 PM UTC`` to aware UTC datetimes."""
    text = normalize_text(raw)
    if text is None:
        return None
    cleaned = " ".join(text.replace("·", " ").split())
    if cleaned.upper().endswith(" UTC"):
        cleaned = cleaned[:-4]
    for fmt in _DATE_TITLE_FORMATS:
        try:
            return datetime.strptime(cleaned, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue
    return None


def strip_label(raw: str | None, label: str) -> str | None:
    text = normalize_text(raw)
    if text is None:
        return None
    if text.lower().startswith(label.lower()):
        text = text[len(label):]
    return normalize_text(text)


def strip_handle_prefix(raw: str | None) -> str | None:
    text = normalize_text(raw)
    if text is None:
        return None
    return text.lstrip("@") or None
