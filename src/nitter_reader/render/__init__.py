"""JSON output formatters."""

from nitter_reader.render.jsonout import (
    item_to_dict,
    profile_to_dict,
    render_json,
    render_jsonl,
    result_to_dict,
)

__all__ = [
    "item_to_dict",
    "profile_to_dict",
    "render_json",
    "render_jsonl",
    "result_to_dict",
]
