"""Data model contracts for cross-module use."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
import math
from typing import Any

DEFAULT_ITEM_LIMIT = 20


@dataclass(frozen=True)
class SourceEndpoint:
    url: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "url", self.url.strip().rstrip("/"))

    @property
    def host(self) -> str:
        return self.url.split("://", 1)[-1].split("/", 1)[0]

    def profile_url(self, username: str) -> str:
        return f"{self.url}/{username}"


@dataclass(frozen=True)
class ExtractionJob:
    username: str
    limit: int = DEFAULT_ITEM_LIMIT
    max_source_attempts: int = 6
    max_pagination_rounds: int = 5


def derive_pagination_rounds(limit: int) -> int:
    """Round budget scaled to the requested limit, clamped to [5, 20]."""
    return min(max(math.ceil(limit / 5), 5), 20)


@dataclass(frozen=True)
class Profile:
    name: str | None = None
    username: str | None = None
    verified: bool = False
    verified_type: str | None = None
    bio: str | None = None
    location: str | None = None
    website: str | None = None
    join_date: str | None = None
    following: int | None = None
    followers: int | None = None
    tweets: int | None = None
    likes: int | None = None
    media_count: int | None = None
    avatar: str | None = None
    banner: str | None = None
    partial: bool = False
    error: str | None = None


@dataclass(frozen=True)
class MediaRef:
    kind: str
    url: str | None


@dataclass(frozen=True)
class ItemTimestamp:
    display: str | None = None
    title: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class ItemStats:
    comments: int | None = None
    retweets: int | None = None
    quotes: int | None = None
    likes: int | None = None


@dataclass(frozen=True)
class QuotedItem:
    item_id: str | None
    url: str | None
    username: str | None = None
    fullname: str | None = None
    content: str | None = None


@dataclass(frozen=True)
class Item:
    item_id: str
    url: str
    username: str | None = None
    fullname: str | None = None
    verified: bool = False
    content: str | None = None
    timestamp: ItemTimestamp = field(default_factory=ItemTimestamp)
    stats: ItemStats = field(default_factory=ItemStats)
    media: tuple[MediaRef, ...] = ()
    quoted: QuotedItem | None = None
    is_retweet: bool = False
    retweeted_by: str | None = None
    is_pinned: bool = False


@dataclass(frozen=True)
class ResultEnvelope:
    success: bool
    job_type: str
    indicator: str | None
    params: dict[str, Any]
    result: dict[str, Any] | None = None
    error: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "success": self.success,
            "type": self.job_type,
            "indicator": self.indicator,
            "params": self.params,
        }
        if self.success:
            payload["result"] = self.result
        else:
            payload["error"] = self.error
        return payload
