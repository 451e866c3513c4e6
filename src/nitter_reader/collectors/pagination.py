"""Bounded load-more/extract/dedup loop over one rendered timeline."""

from __future__ import annotations

from collections.abc import Callable
import logging
import time
from typing import Protocol

from nitter_reader.browser.session import LoadMoreResult
from nitter_reader.collectors.base import PaginationResult, PaginationState, SeenIdSet
from nitter_reader.extract.base import ExtractionAdapter
from nitter_reader.extract.items import ItemExtractionResult
from nitter_reader.models import Item

logger = logging.getLogger(__name__)

STOP_SATISFIED = "satisfied"
STOP_EXHAUSTED = "exhausted"
STOP_BUDGET = "budget"


class PaginatedSession(Protocol):
    def extract(self, adapter: ExtractionAdapter[ItemExtractionResult]) -> ItemExtractionResult:
        """Run the item adapter against the current rendered state."""

    def trigger_load_more(self, settle_seconds: float) -> LoadMoreResult:
        """Reveal more content."""


class PaginationController:
    """Drive rounds of load-more and re-extraction until a stopping condition holds.

    Stopping conditions are checked after every round in priority order:
    consecutive unproductive rounds reaching the threshold (``exhausted``),
    enough unique items (``satisfied``), then the round budget (``budget``).
    A round is productive when the raw visible count grew or new unique items
    appeared. The loop runs at most ``max_rounds`` rounds, so at most
    ``max_rounds + 1`` extraction passes.
    """

    def __init__(
        self,
        *,
        desired_count: int,
        max_rounds: int,
        consecutive_failure_threshold: int = 3,
        settle_seconds: float = 2.0,
        round_pause_seconds: float = 1.0,
        sleep_fn: Callable[[float], None] = time.sleep,
    ) -> None:
        if desired_count <= 0:
            raise ValueError("desired_count must be > 0.")
        if max_rounds < 0:
            raise ValueError("max_rounds must be >= 0.")
        if consecutive_failure_threshold <= 0:
            raise ValueError("consecutive_failure_threshold must be > 0.")
        self.desired_count = desired_count
        self.max_rounds = max_rounds
        self.consecutive_failure_threshold = consecutive_failure_threshold
        self.settle_seconds = settle_seconds
        self.round_pause_seconds = round_pause_seconds
        self._sleep = sleep_fn
        self.state = PaginationState.INIT

    def run(
        self,
        session: PaginatedSession,
        adapter: ExtractionAdapter[ItemExtractionResult],
    ) -> PaginationResult:
        seen = SeenIdSet()
        items: list[Item] = []
        warnings: list[str] = []

        self.state = PaginationState.EXTRACTING
        initial = session.extract(adapter)
        items.extend(seen.admit(initial.items))
        warnings.extend(initial.warnings)
        raw_count = initial.raw_count
        passes = 1
        rounds = 0
        failures = 0
        logger.debug("pagination_initial raw_count=%s unique=%s", raw_count, len(items))

        if len(items) >= self.desired_count:
            return self._terminate(items, raw_count, rounds, failures, STOP_SATISFIED, passes, warnings)
        if self.max_rounds == 0:
            return self._terminate(items, raw_count, rounds, failures, STOP_BUDGET, passes, warnings)

        while True:
            rounds += 1
            self.state = PaginationState.LOADING_MORE
            load_more = session.trigger_load_more(self.settle_seconds)

            self.state = PaginationState.EXTRACTING
            extracted = session.extract(adapter)
            passes += 1
            fresh = seen.admit(extracted.items)
            items.extend(fresh)
            warnings.extend(extracted.warnings)

            if extracted.raw_count > raw_count or fresh:
                failures = 0
                raw_count = extracted.raw_count
            else:
                failures += 1
            logger.debug(
                "pagination_round round=%s strategy=%s new=%s unique=%s raw_count=%s failures=%s",
                rounds,
                load_more.strategy,
                len(fresh),
                len(items),
                raw_count,
                failures,
            )

            stop_reason = self._stop_reason(len(items), rounds, failures)
            if stop_reason is not None:
                return self._terminate(items, raw_count, rounds, failures, stop_reason, passes, warnings)

            if self.round_pause_seconds > 0:
                self._sleep(self.round_pause_seconds)

    def _stop_reason(self, unique_count: int, rounds: int, failures: int) -> str | None:
        if failures >= self.consecutive_failure_threshold:
            return STOP_EXHAUSTED
        if unique_count >= self.desired_count:
            return STOP_SATISFIED
        if rounds >= self.max_rounds:
            return STOP_BUDGET
        return None

    def _terminate(
        self,
        items: list[Item],
        raw_count: int,
        rounds: int,
        failures: int,
        stop_reason: str,
        passes: int,
        warnings: list[str],
    ) -> PaginationResult:
        self.state = PaginationState.TERMINATED
        logger.info(
            "pagination_stopped reason=%s rounds=%s unique=%s raw_count=%s",
            stop_reason,
            rounds,
            len(items),
            raw_count,
        )
        return PaginationResult(
            items=tuple(items),
            raw_count=raw_count,
            rounds=rounds,
            failures=failures,
            stop_reason=stop_reason,
            state=self.state,
            extraction_passes=passes,
            warnings=tuple(warnings),
        )
