"""JSON rendering of profiles, items and result payloads."""

from __future__ import annotations

from datetime import datetime, timezone
import json

from nitter_reader.models import Item, ItemStats, ItemTimestamp, MediaRef, Profile, QuotedItem
from nitter_reader.render.jsonout import (
    item_to_dict,
    profile_to_dict,
    render_json,
    render_jsonl,
    result_to_dict,
)


def _item(item_id: str = "1") -> Item:
    return Item(
        item_id=item_id,
        url=f"https://x.com/alice/status/{item_id}",
        username="alice",
        fullname="Alice",
        content="héllo",
        timestamp=ItemTimestamp(
            display="Mar 1",
            title="Mar 1, 2026 · 12:00 PM UTC",
            created_at=datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc),
        ),
        stats=ItemStats(comments=1, retweets=2, quotes=None, likes=4),
        media=(MediaRef(kind="image", url="https://pbs.twimg.com/media/a.jpg"),),
        quoted=QuotedItem(item_id="9", url="https://x.com/bob/status/9", username="bob"),
    )


def test_item_to_dict_nests_author_timestamp_and_stats() -> None:
    payload = item_to_dict(_item())

    assert payload["id"] == "1"
    assert payload["author"] == {"username": "alice", "fullname": "Alice", "verified": False}
    assert payload["timestamp"]["created_at"] == "2026-03-01T12:00:00+00:00"  # type: ignore[index]
    assert payload["stats"] == {"comments": 1, "retweets": 2, "quotes": None, "likes": 4}
    assert payload["media"] == [{"type": "image", "url": "https://pbs.twimg.com/media/a.jpg"}]
    assert payload["quoted"]["username"] == "bob"  # type: ignore[index]
    assert payload["is_retweet"] is False


def test_item_without_quote_or_date_renders_nulls() -> None:
    payload = item_to_dict(Item(item_id="2", url="https://x.com/alice/status/2"))

    assert payload["quoted"] is None
    assert payload["timestamp"] == {"display": None, "title": None, "created_at": None}


def test_profile_to_dict_hides_partial_markers_on_complete_profiles() -> None:
    complete = profile_to_dict(Profile(name="Alice", username="alice", followers=10))
    partial = profile_to_dict(Profile(partial=True, error="card detached"))

    assert "partial" not in complete
    assert complete["followers"] == 10
    assert partial["partial"] is True
    assert partial["error"] == "card detached"


def test_result_payload_and_renderers() -> None:
    payload = result_to_dict(Profile(username="alice"), (_item("1"), _item("2")), {"items_count": 2})

    assert set(payload) == {"metadata", "profile", "items"}
    assert [item["id"] for item in payload["items"]] == ["1", "2"]
    assert json.loads(render_json(payload)) == payload
    assert "héllo" in render_json(payload)
    assert [json.loads(line)["id"] for line in render_jsonl((_item("1"), _item("2"))).splitlines()] == ["1", "2"]
