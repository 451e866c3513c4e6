"""Extraction adapters and selector packs."""

from .base import ExtractionAdapter, Node, TextAdapter
from .html import HtmlNode
from .items import ItemAdapter, ItemExtractionResult
from .profile import ProfileAdapter
from .selectors import (
    DEFAULT_SELECTOR_PACK,
    SelectorPack,
    SelectorPackResolution,
    default_selector_pack,
    resolve_selector_pack,
)

__all__ = [
    "DEFAULT_SELECTOR_PACK",
    "ExtractionAdapter",
    "HtmlNode",
    "ItemAdapter",
    "ItemExtractionResult",
    "Node",
    "ProfileAdapter",
    "SelectorPack",
    "SelectorPackResolution",
    "TextAdapter",
    "default_selector_pack",
    "resolve_selector_pack",
]
