"""BeautifulSoup-backed nodes so adapters can run against saved HTML."""

from __future__ import annotations

from pathlib import Path

from bs4 import BeautifulSoup
from bs4.element import Tag

from nitter_reader.errors import ExtractionInternalError


class HtmlNode:
    """Expose a parsed tag through the same surface as a Playwright element handle."""

    def __init__(self, tag: Tag) -> None:
        self._tag = tag

    @classmethod
    def parse(cls, html: str) -> HtmlNode:
        return cls(BeautifulSoup(html, "html.parser"))

    @classmethod
    def from_file(cls, path: str | Path) -> HtmlNode:
        resolved = Path(path).expanduser()
        try:
            html = resolved.read_text(encoding="utf-8")
        except OSError as exc:
            raise ExtractionInternalError(f"Could not read HTML file '{resolved}': {exc}") from exc
        return cls.parse(html)

    def query_selector(self, selector: str) -> HtmlNode | None:
        found = self._tag.select_one(selector)
        return HtmlNode(found) if found is not None else None

    def query_selector_all(self, selector: str) -> list[HtmlNode]:
        return [HtmlNode(found) for found in self._tag.select(selector)]

    def get_attribute(self, name: str) -> str | None:
        value = self._tag.get(name)
        if value is None:
            return None
        if isinstance(value, list):
            return " ".join(value)
        return str(value)

    def text_content(self) -> str | None:
        return self._tag.get_text()
