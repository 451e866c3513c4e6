"""Selector-pack defaults and override resolution helpers."""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
import json
from pathlib import Path
import sys
from typing import Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

SelectorPack = dict[str, tuple[str, ...]]

DEFAULT_SELECTOR_PACK: dict[str, tuple[str, ...]] = {
    "landing.content": (".profile-card",),
    "landing.error": (".error-panel",),
    "timeline.ready": (".timeline-item", ".timeline-header"),
    "timeline.load_more": (
        ".show-more:not(.timeline-item)",
        ".timeline > .show-more",
        ".more-results",
    ),
    "timeline.countable": (".timeline-item:not(.show-more)",),
    "item.container": (".timeline-item",),
    "item.load_more_marker": (".show-more",),
    "item.link": (".tweet-link",),
    "item.fullname": (".fullname",),
    "item.username": (".username",),
    "item.verified": (".verified-icon",),
    "item.retweet_header": (".retweet-header",),
    "item.pinned": (".pinned",),
    "item.content": (".tweet-content",),
    "item.date": (".tweet-date a",),
    "item.stat.comments": (".tweet-stat:nth-child(1)",),
    "item.stat.retweets": (".tweet-stat:nth-child(2)",),
    "item.stat.quotes": (".tweet-stat:nth-child(3)",),
    "item.stat.likes": (".tweet-stat:nth-child(4)",),
    "item.media": (".attachments .attachment",),
    "item.media_image": ("img",),
    "item.quote": (".quote-big",),
    "item.quote_link": (".quote-link",),
    "item.quote_fullname": (".fullname",),
    "item.quote_username": (".username",),
    "item.quote_text": (".quote-text",),
    "profile.avatar": (".profile-card-avatar img", ".profile-card-avatar"),
    "profile.fullname": (".profile-card-fullname",),
    "profile.username": (".profile-card-username",),
    "profile.verified": (".verified-icon",),
    "profile.bio": (".profile-bio",),
    "profile.location": (".profile-location",),
    "profile.website": (".profile-website a",),
    "profile.join_date": (".profile-joindate",),
    "profile.following": (".profile-statlist .following .profile-stat-num",),
    "profile.followers": (".profile-statlist .followers .profile-stat-num",),
    "profile.tweets": (
        ".profile-statlist .posts .profile-stat-num",
        ".profile-statlist .tweets .profile-stat-num",
    ),
    "profile.likes": (".profile-statlist .likes .profile-stat-num",),
    "profile.banner": (".profile-banner img",),
    "profile.media_header": (".photo-rail-header",),
}


@dataclass(frozen=True)
class SelectorPackResolution:
    selectors: SelectorPack
    warnings: tuple[str, ...] = ()
    loaded_override: bool = False


class _OverrideRejected(Exception):
    pass


def default_selector_pack() -> SelectorPack:
    """Return a mutable copy of built-in selector defaults."""
    return {key: tuple(value) for key, value in DEFAULT_SELECTOR_PACK.items()}


def joined(selectors: SelectorPack, key: str) -> str:
    """Join a key's selector variants into one CSS selector list."""
    return ", ".join(selectors.get(key, ()))


def resolve_selector_pack(
    override_path: str | Path | None = None,
    *,
    override_data: Mapping[str, Any] | None = None,
) -> SelectorPackResolution:
    """Layer file and inline overrides on the defaults.

    Overrides never make the pack unusable: unreadable files, unknown keys
    and malformed values are reported as warnings and the defaults stay in
    place for whatever was rejected.
    """
    selectors = default_selector_pack()
    warnings: list[str] = []
    overrides: list[Mapping[str, Any]] = []

    if override_path is not None:
        try:
            overrides.append(_read_override_file(Path(override_path).expanduser()))
        except _OverrideRejected as exc:
            warnings.append(f"{exc} Using defaults.")
    if override_data is not None:
        overrides.append(override_data)

    for override in overrides:
        warnings.extend(_apply_override(selectors, override))

    return SelectorPackResolution(
        selectors=selectors,
        warnings=tuple(warnings),
        loaded_override=bool(overrides),
    )


def _read_override_file(path: Path) -> Mapping[str, Any]:
    if not path.exists():
        raise _OverrideRejected(f"Selector override file '{path}' was not found.")
    if not path.is_file():
        raise _OverrideRejected(f"Selector override path '{path}' is not a file.")

    suffix = path.suffix.lower()
    if suffix not in _OVERRIDE_FORMATS:
        raise _OverrideRejected(
            f"Unsupported selector override extension '{suffix or '<none>'}' for '{path}' "
            "(expected .json or .toml)."
        )
    label, parse = _OVERRIDE_FORMATS[suffix]

    try:
        data = parse(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise _OverrideRejected(f"Could not read selector override file '{path}': {exc}.") from exc
    except ValueError as exc:
        raise _OverrideRejected(
            f"Selector override file '{path}' contains invalid {label}: {exc}."
        ) from exc

    if not isinstance(data, Mapping):
        raise _OverrideRejected(f"Selector override file '{path}' must hold a table at top level.")
    return data


def _apply_override(selectors: SelectorPack, override: Mapping[str, Any]) -> list[str]:
    table = override.get("selectors", override)
    if not isinstance(table, Mapping):
        return ["Selector override key 'selectors' must be a table; ignoring override."]

    warnings: list[str] = []
    flattened = dict(_dotted_items(table))
    for key in sorted(flattened):
        if key not in DEFAULT_SELECTOR_PACK:
            warnings.append(f"Unknown selector override key '{key}'; ignoring.")
            continue
        variants = _as_variants(flattened[key])
        if variants is None:
            warnings.append(
                f"Selector override for '{key}' must be a non-empty string or list of strings; ignoring."
            )
            continue
        selectors[key] = variants
    return warnings


def _dotted_items(table: Mapping[str, Any], prefix: str = "") -> Iterator[tuple[str, Any]]:
    # Nested TOML tables ([selectors.item.stat]) map onto dotted pack keys.
    for key, value in table.items():
        dotted = f"{prefix}{key}"
        if isinstance(value, Mapping):
            yield from _dotted_items(value, f"{dotted}.")
        else:
            yield dotted, value


def _as_variants(value: Any) -> tuple[str, ...] | None:
    raw = [value] if isinstance(value, str) else value
    if not isinstance(raw, (list, tuple)) or not raw:
        return None
    if not all(isinstance(entry, str) and entry.strip() for entry in raw):
        return None
    return tuple(entry.strip() for entry in raw)


_OVERRIDE_FORMATS: dict[str, tuple[str, Callable[[str], Any]]] = {
    ".json": ("JSON", json.loads),
    ".toml": ("TOML", tomllib.loads),
}
