"""Timeline item extraction with skip-and-continue fault isolation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from nitter_reader.extract.base import Node, attr_of, class_names, first_match, text_of
from nitter_reader.extract.normalize import (
    canonical_status_url,
    normalize_text,
    parse_count,
    parse_date_title,
    status_id_from_href,
    strip_handle_prefix,
)
from nitter_reader.extract.selectors import SelectorPack, default_selector_pack, joined
from nitter_reader.models import Item, ItemStats, ItemTimestamp, MediaRef, QuotedItem


@dataclass(frozen=True)
class ItemExtractionResult:
    items: tuple[Item, ...]
    raw_count: int = 0
    skipped: int = 0
    dropped: int = 0
    warnings: tuple[str, ...] = ()


class ItemAdapter:
    """Extract every rendered timeline item; one malformed item never aborts the rest.

    Items without a status id or canonical link are dropped as a data-quality
    filter and only counted. Items whose extraction raises are skipped with a
    warning.
    """

    def __init__(self, selectors: SelectorPack | None = None) -> None:
        self._selectors = selectors or default_selector_pack()

    def extract(self, root: Node) -> ItemExtractionResult:
        items: list[Item] = []
        warnings: list[str] = []
        raw_count = 0
        skipped = 0
        dropped = 0

        for index, element in enumerate(root.query_selector_all(joined(self._selectors, "item.container"))):
            try:
                if self._is_load_more(element):
                    continue
                item = self.extract_item(element)
            except Exception as exc:
                raw_count += 1
                skipped += 1
                warnings.append(f"Skipped timeline item #{index}: {exc}")
                continue
            raw_count += 1
            if item is None:
                dropped += 1
                continue
            items.append(item)

        return ItemExtractionResult(
            items=tuple(items),
            raw_count=raw_count,
            skipped=skipped,
            dropped=dropped,
            warnings=tuple(warnings),
        )

    def degrade(self, exc: Exception) -> ItemExtractionResult:
        return ItemExtractionResult(items=(), warnings=(f"Item extraction failed: {exc}",))

    def extract_item(self, element: Any) -> Item | None:
        href = attr_of(self._find(element, "item.link"), "href")
        item_id = status_id_from_href(href)
        url = canonical_status_url(href)
        if item_id is None or url is None:
            return None

        fullname_element = self._find(element, "item.fullname")
        retweet_header = text_of(self._find(element, "item.retweet_header"))
        date_element = self._find(element, "item.date")
        date_title = attr_of(date_element, "title")

        return Item(
            item_id=item_id,
            url=url,
            username=strip_handle_prefix(text_of(self._find(element, "item.username"))),
            fullname=text_of(fullname_element),
            verified=fullname_element is not None
            and first_match(fullname_element, self._selectors["item.verified"]) is not None,
            content=text_of(self._find(element, "item.content")),
            timestamp=ItemTimestamp(
                display=text_of(date_element),
                title=date_title,
                created_at=parse_date_title(date_title),
            ),
            stats=ItemStats(
                comments=self._count(element, "item.stat.comments"),
                retweets=self._count(element, "item.stat.retweets"),
                quotes=self._count(element, "item.stat.quotes"),
                likes=self._count(element, "item.stat.likes"),
            ),
            media=self._media(element),
            quoted=self._quoted(element),
            is_retweet=retweet_header is not None,
            retweeted_by=_retweeter(retweet_header),
            is_pinned=self._find(element, "item.pinned") is not None,
        )

    def _is_load_more(self, element: Any) -> bool:
        if "show-more" in class_names(element):
            return True
        return self._find(element, "item.load_more_marker") is not None

    def _find(self, element: Any, key: str) -> Any | None:
        return first_match(element, self._selectors[key])

    def _count(self, element: Any, key: str) -> int | None:
        return parse_count(text_of(self._find(element, key)))

    def _media(self, element: Any) -> tuple[MediaRef, ...]:
        media: list[MediaRef] = []
        for attachment in element.query_selector_all(joined(self._selectors, "item.media")):
            classes = class_names(attachment)
            if "video-container" in classes:
                kind = "video"
            elif "gif" in classes:
                kind = "gif"
            else:
                kind = "image"
            image = self._find(attachment, "item.media_image")
            media.append(MediaRef(kind=kind, url=attr_of(image, "src")))
        return tuple(media)

    def _quoted(self, element: Any) -> QuotedItem | None:
        quote = self._find(element, "item.quote")
        if quote is None:
            return None
        href = attr_of(self._find(quote, "item.quote_link"), "href")
        return QuotedItem(
            item_id=status_id_from_href(href),
            url=canonical_status_url(href),
            username=strip_handle_prefix(text_of(self._find(quote, "item.quote_username"))),
            fullname=text_of(self._find(quote, "item.quote_fullname")),
            content=text_of(self._find(quote, "item.quote_text")),
        )


def _retweeter(header: str | None) -> str | None:
    if header is None:
        return None
    return normalize_text(header.replace("retweeted", ""))
