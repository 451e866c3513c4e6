"""Pagination contracts shared by the controller and the executor."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from nitter_reader.models import Item


class PaginationState(str, Enum):
    INIT = "init"
    EXTRACTING = "extracting"
    LOADING_MORE = "loading_more"
    TERMINATED = "terminated"


@dataclass(frozen=True)
class PaginationResult:
    items: tuple[Item, ...]
    raw_count: int
    rounds: int
    failures: int
    stop_reason: str
    state: PaginationState = PaginationState.TERMINATED
    extraction_passes: int = 0
    warnings: tuple[str, ...] = ()


class SeenIdSet:
    """Item ids admitted during one job; never persisted or shared across jobs."""

    def __init__(self) -> None:
        self._ids: set[str] = set()

    def __len__(self) -> int:
        return len(self._ids)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._ids

    def admit(self, items: Iterable[Item]) -> list[Item]:
        """Return the items whose ids were not seen before, in encounter order."""
        admitted: list[Item] = []
        for item in items:
            if item.item_id in self._ids:
                continue
            self._ids.add(item.item_id)
            admitted.append(item)
        return admitted
