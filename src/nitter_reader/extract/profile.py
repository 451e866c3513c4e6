"""Profile card extraction with per-field fault isolation."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
from typing import Any, TypeVar

from nitter_reader.extract.base import Node, attr_of, class_names, first_match, text_of
from nitter_reader.extract.normalize import first_count, parse_count, strip_handle_prefix, strip_label
from nitter_reader.extract.selectors import SelectorPack, default_selector_pack
from nitter_reader.models import Profile

T = TypeVar("T")

_VERIFIED_KINDS = ("government", "business")


class ProfileAdapter:
    """Read the profile card; missing fields become None, faulted fields mark the profile partial."""

    def __init__(self, selectors: SelectorPack | None = None) -> None:
        self._selectors = selectors or default_selector_pack()

    def extract(self, root: Node) -> Profile:
        errors: list[str] = []

        def field(name: str, read: Callable[[], T], default: T) -> T:
            try:
                return read()
            except Exception as exc:
                errors.append(f"{name}: {exc}")
                return default

        name_element = field("name", lambda: self._find(root, "profile.fullname"), None)
        verified_icon = field(
            "verified",
            lambda: first_match(name_element, self._selectors["profile.verified"])
            if name_element is not None
            else None,
            None,
        )
        website_element = field("website", lambda: self._find(root, "profile.website"), None)

        profile = Profile(
            name=field("name", lambda: text_of(name_element), None),
            username=field(
                "username", lambda: strip_handle_prefix(self._text(root, "profile.username")), None
            ),
            verified=verified_icon is not None,
            verified_type=field("verified_type", lambda: _verified_type(verified_icon), None),
            bio=field("bio", lambda: self._text(root, "profile.bio"), None),
            location=field("location", lambda: self._text(root, "profile.location"), None),
            website=field("website", lambda: attr_of(website_element, "href"), None),
            join_date=field(
                "join_date", lambda: strip_label(self._text(root, "profile.join_date"), "Joined"), None
            ),
            following=field("following", lambda: parse_count(self._text(root, "profile.following")), None),
            followers=field("followers", lambda: parse_count(self._text(root, "profile.followers")), None),
            tweets=field("tweets", lambda: parse_count(self._text(root, "profile.tweets")), None),
            likes=field("likes", lambda: parse_count(self._text(root, "profile.likes")), None),
            media_count=field(
                "media_count", lambda: first_count(self._text(root, "profile.media_header")), None
            ),
            avatar=field("avatar", lambda: self._image_ref(root, "profile.avatar"), None),
            banner=field("banner", lambda: self._image_ref(root, "profile.banner"), None),
        )
        if not errors:
            return profile
        return _mark_partial(profile, "; ".join(errors))

    def degrade(self, exc: Exception) -> Profile:
        return Profile(partial=True, error=str(exc) or type(exc).__name__)

    def _find(self, root: Node, key: str) -> Any | None:
        return first_match(root, self._selectors[key])

    def _text(self, root: Node, key: str) -> str | None:
        return text_of(self._find(root, key))

    def _image_ref(self, root: Node, key: str) -> str | None:
        element = self._find(root, key)
        return attr_of(element, "src") or attr_of(element, "href")


def _verified_type(icon: Any | None) -> str | None:
    if icon is None:
        return None
    classes = class_names(icon)
    for kind in _VERIFIED_KINDS:
        if kind in classes:
            return kind
    return "standard"


def _mark_partial(profile: Profile, error: str) -> Profile:
    return replace(profile, partial=True, error=error)
