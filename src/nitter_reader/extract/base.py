"""Engine-agnostic node and adapter interfaces."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol, TypeVar

from nitter_reader.extract.normalize import normalize_text

ResultT = TypeVar("ResultT", covariant=True)


class Node(Protocol):
    """Subset of the Playwright page/element-handle surface adapters rely on."""

    def query_selector(self, selector: str) -> Any:
        """Return the first matching descendant or None."""

    def query_selector_all(self, selector: str) -> Sequence[Any]:
        """Return all matching descendants."""


class ElementNode(Node, Protocol):
    def get_attribute(self, name: str) -> str | None:
        """Return an attribute value or None."""

    def text_content(self) -> str | None:
        """Return the concatenated text of the element."""


class ExtractionAdapter(Protocol[ResultT]):
    def extract(self, root: Node) -> ResultT:
        """Map the rendered root into a structured result."""

    def degrade(self, exc: Exception) -> ResultT:
        """Return the degraded result used when ``extract`` faults."""


def first_match(root: Node, selectors: Sequence[str]) -> Any | None:
    """Return the first element matched by any selector variant, in order."""
    for selector in selectors:
        element = root.query_selector(selector)
        if element is not None:
            return element
    return None


def text_of(element: Any | None) -> str | None:
    if element is None:
        return None
    return normalize_text(element.text_content())


def attr_of(element: Any | None, name: str) -> str | None:
    if element is None:
        return None
    value = element.get_attribute(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def class_names(element: Any | None) -> frozenset[str]:
    raw = attr_of(element, "class")
    if raw is None:
        return frozenset()
    return frozenset(raw.split())


class TextAdapter:
    """Read the text of the first element matched by any selector variant."""

    def __init__(self, selectors: Sequence[str]) -> None:
        self._selectors = tuple(selectors)

    def extract(self, root: Node) -> str | None:
        return text_of(first_match(root, self._selectors))

    def degrade(self, exc: Exception) -> str | None:
        return None
