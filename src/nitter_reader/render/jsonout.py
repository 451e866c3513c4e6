"""JSON rendering of profiles, items and result payloads."""

from __future__ import annotations

from dataclasses import asdict
import json
from typing import Any

from nitter_reader.models import Item, Profile


def render_json(payload: Any) -> str:
    return json.dumps(payload, indent=2, sort_keys=True, ensure_ascii=False)


def render_jsonl(items: tuple[Item, ...]) -> str:
    return "\n".join(json.dumps(item_to_dict(item), sort_keys=True, ensure_ascii=False) for item in items)


def profile_to_dict(profile: Profile) -> dict[str, Any]:
    payload = asdict(profile)
    if not profile.partial:
        payload.pop("partial")
        payload.pop("error")
    return payload


def item_to_dict(item: Item) -> dict[str, object]:
    return {
        "id": item.item_id,
        "url": item.url,
        "author": {
            "username": item.username,
            "fullname": item.fullname,
            "verified": item.verified,
        },
        "content": item.content,
        "timestamp": {
            "display": item.timestamp.display,
            "title": item.timestamp.title,
            "created_at": item.timestamp.created_at.isoformat() if item.timestamp.created_at else None,
        },
        "stats": {
            "comments": item.stats.comments,
            "retweets": item.stats.retweets,
            "quotes": item.stats.quotes,
            "likes": item.stats.likes,
        },
        "media": [{"type": media.kind, "url": media.url} for media in item.media],
        "quoted": (
            {
                "id": item.quoted.item_id,
                "url": item.quoted.url,
                "username": item.quoted.username,
                "fullname": item.quoted.fullname,
                "content": item.quoted.content,
            }
            if item.quoted is not None
            else None
        ),
        "is_retweet": item.is_retweet,
        "retweeted_by": item.retweeted_by,
        "is_pinned": item.is_pinned,
    }


def result_to_dict(
    profile: Profile,
    items: tuple[Item, ...],
    metadata: dict[str, Any],
) -> dict[str, Any]:
    return {
        "metadata": dict(metadata),
        "profile": profile_to_dict(profile),
        "items": [item_to_dict(item) for item in items],
    }
