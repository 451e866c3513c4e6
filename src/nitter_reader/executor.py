"""Attempt-with-failover orchestration for one timeline extraction job."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import partial
import logging
import time
from typing import Any

from nitter_reader.browser.session import Session, open_page_session
from nitter_reader.collectors.base import PaginationResult
from nitter_reader.collectors.pagination import PaginationController
from nitter_reader.config import RuntimeConfig
from nitter_reader.diagnostics.events import JsonlEventLogger
from nitter_reader.errors import (
    BrowserError,
    EmptyResultError,
    InvalidJobError,
    SourceError,
    error_kind,
)
from nitter_reader.extract.base import TextAdapter
from nitter_reader.extract.items import ItemAdapter
from nitter_reader.extract.profile import ProfileAdapter
from nitter_reader.extract.selectors import SelectorPack, default_selector_pack, joined
from nitter_reader.models import (
    ExtractionJob,
    Item,
    Profile,
    SourceEndpoint,
    derive_pagination_rounds,
)
from nitter_reader.render.jsonout import result_to_dict
from nitter_reader.rotation import RotationRegistry

logger = logging.getLogger(__name__)

SessionFactory = Callable[[SourceEndpoint], Session]
NowFn = Callable[[], datetime]

LANDING_ERROR = "error"
LANDING_CONTENT = "content"
LANDING_TIMELINE = "timeline"


@dataclass(frozen=True)
class AttemptFailure:
    attempt: int
    mirror: str
    kind: str
    message: str


@dataclass(frozen=True)
class JobOutcome:
    job: ExtractionJob
    success: bool
    profile: Profile | None = None
    items: tuple[Item, ...] = ()
    metadata: dict[str, Any] = field(default_factory=dict)
    error: BaseException | None = None
    failures: tuple[AttemptFailure, ...] = ()

    @property
    def error_kind(self) -> str | None:
        return error_kind(self.error) if self.error is not None else None

    def result_payload(self) -> dict[str, Any]:
        if not self.success or self.profile is None:
            raise ValueError("Only successful outcomes carry a result payload.")
        return result_to_dict(self.profile, self.items, self.metadata)


@dataclass(frozen=True)
class _AttemptResult:
    profile: Profile
    pagination: PaginationResult


def build_job(
    config: RuntimeConfig,
    registry: RotationRegistry,
    username: str,
    *,
    limit: int | None = None,
) -> ExtractionJob:
    """Resolve attempt and round budgets for one job from configuration."""
    resolved_limit = limit if limit is not None else config.app.default_limit
    if resolved_limit <= 0:
        raise InvalidJobError("limit must be a positive integer.")
    max_rounds = config.pagination.max_rounds
    max_attempts = config.rotation.max_source_attempts
    return ExtractionJob(
        username=username,
        limit=resolved_limit,
        max_source_attempts=max_attempts if max_attempts is not None else len(registry),
        max_pagination_rounds=(
            max_rounds if max_rounds is not None else derive_pagination_rounds(resolved_limit)
        ),
    )


class JobExecutor:
    """Run one job against rotating mirrors until an attempt succeeds or attempts run out.

    Each attempt owns a fresh session, released on every exit path. A failed
    attempt advances the registry; the cursor is left on the mirror that
    succeeded. Exactly one ``JobOutcome`` is returned per job and nothing is
    raised for source-level failures.
    """

    def __init__(
        self,
        config: RuntimeConfig,
        registry: RotationRegistry,
        *,
        session_factory: SessionFactory | None = None,
        selectors: SelectorPack | None = None,
        sleep_fn: Callable[[float], None] = time.sleep,
        now_fn: NowFn | None = None,
        event_logger: JsonlEventLogger | None = None,
    ) -> None:
        self._config = config
        self._registry = registry
        self._selectors = selectors or default_selector_pack()
        self._sleep = sleep_fn
        self._now = now_fn or (lambda: datetime.now(timezone.utc))
        self._event_logger = event_logger
        self._session_factory = session_factory or partial(
            open_page_session,
            config,
            selectors=self._selectors,
            sleep_fn=sleep_fn,
        )

    @property
    def registry(self) -> RotationRegistry:
        return self._registry

    def run(self, job: ExtractionJob, *, job_id: str | None = None) -> JobOutcome:
        if job.max_source_attempts <= 0:
            raise InvalidJobError("max_source_attempts must be > 0.")
        resolved_job_id = job_id or _new_job_id(job.username, self._now())
        failures: list[AttemptFailure] = []
        last_error: BaseException | None = None

        for attempt in range(1, job.max_source_attempts + 1):
            endpoint = self._registry.current()
            logger.info(
                "attempt_started job=%s attempt=%s/%s mirror=%s username=%s",
                resolved_job_id,
                attempt,
                job.max_source_attempts,
                endpoint.url,
                job.username,
            )
            try:
                result = self._attempt(job, endpoint)
            except Exception as exc:
                last_error = exc
                failure = AttemptFailure(
                    attempt=attempt,
                    mirror=endpoint.url,
                    kind=error_kind(exc),
                    message=str(exc) or type(exc).__name__,
                )
                failures.append(failure)
                logger.warning(
                    "attempt_failed job=%s attempt=%s mirror=%s kind=%s error=%s",
                    resolved_job_id,
                    attempt,
                    endpoint.url,
                    failure.kind,
                    failure.message,
                )
                self._emit(
                    "attempt_failed",
                    resolved_job_id,
                    endpoint,
                    {"attempt": attempt, "kind": failure.kind, "message": failure.message},
                )
                self._registry.advance()
                continue

            items = result.pagination.items[: job.limit]
            metadata = self._metadata(job, endpoint, result.pagination, items, attempt)
            logger.info(
                "job_completed job=%s mirror=%s items=%s stop_reason=%s attempts=%s",
                resolved_job_id,
                endpoint.url,
                len(items),
                result.pagination.stop_reason,
                attempt,
            )
            self._emit("job_completed", resolved_job_id, endpoint, {"success": True, **metadata})
            return JobOutcome(
                job=job,
                success=True,
                profile=result.profile,
                items=items,
                metadata=metadata,
                failures=tuple(failures),
            )

        logger.error(
            "job_failed job=%s attempts=%s kind=%s error=%s",
            resolved_job_id,
            len(failures),
            error_kind(last_error) if last_error is not None else None,
            last_error,
        )
        self._emit(
            "job_completed",
            resolved_job_id,
            None,
            {
                "success": False,
                "source_attempts": len(failures),
                "kinds": [failure.kind for failure in failures],
            },
        )
        return JobOutcome(job=job, success=False, error=last_error, failures=tuple(failures))

    def _attempt(self, job: ExtractionJob, endpoint: SourceEndpoint) -> _AttemptResult:
        browser = self._config.browser
        session = self._session_factory(endpoint)
        try:
            session.navigate(endpoint.profile_url(job.username), browser.navigation_timeout_ms)
            landing = session.wait_for_any_of(
                (
                    (LANDING_ERROR, joined(self._selectors, "landing.error")),
                    (LANDING_CONTENT, joined(self._selectors, "landing.content")),
                ),
                browser.landing_timeout_ms,
            )
            if landing == LANDING_ERROR:
                raise self._source_error(session, endpoint)

            profile = session.extract(ProfileAdapter(self._selectors))
            if profile.partial:
                raise EmptyResultError(
                    f"Profile on {endpoint.url} was only partially extracted: {profile.error}"
                )

            timeline = session.wait_for_any_of(
                (
                    (LANDING_ERROR, joined(self._selectors, "landing.error")),
                    (LANDING_TIMELINE, joined(self._selectors, "timeline.ready")),
                ),
                browser.landing_timeout_ms,
            )
            if timeline == LANDING_ERROR:
                raise self._source_error(session, endpoint)

            pagination = self._controller(job).run(session, ItemAdapter(self._selectors))
            if not pagination.items:
                raise EmptyResultError(f"No timeline items were extracted from {endpoint.url}.")
            return _AttemptResult(profile=profile, pagination=pagination)
        finally:
            self._release(session, endpoint)

    def _controller(self, job: ExtractionJob) -> PaginationController:
        pagination = self._config.pagination
        return PaginationController(
            desired_count=job.limit,
            max_rounds=job.max_pagination_rounds,
            consecutive_failure_threshold=pagination.consecutive_failure_threshold,
            settle_seconds=pagination.settle_delay_ms / 1000,
            round_pause_seconds=pagination.round_pause_ms / 1000,
            sleep_fn=self._sleep,
        )

    def _source_error(self, session: Session, endpoint: SourceEndpoint) -> SourceError:
        message = session.extract(TextAdapter(self._selectors["landing.error"]))
        return SourceError(f"Mirror {endpoint.url} reported an error: {message or 'no details'}")

    def _release(self, session: Session, endpoint: SourceEndpoint) -> None:
        try:
            session.release()
        except BrowserError as exc:
            logger.warning("session_release_failed mirror=%s error=%s", endpoint.url, exc)

    def _metadata(
        self,
        job: ExtractionJob,
        endpoint: SourceEndpoint,
        pagination: PaginationResult,
        items: tuple[Item, ...],
        attempt: int,
    ) -> dict[str, Any]:
        return {
            "username": job.username,
            "timestamp": self._now().isoformat(),
            "mirror": endpoint.url,
            "items_count": len(items),
            "limit": job.limit,
            "total_found": pagination.raw_count,
            "pagination_rounds": pagination.rounds,
            "max_pagination_rounds": job.max_pagination_rounds,
            "stop_reason": pagination.stop_reason,
            "source_attempts": attempt,
            "max_source_attempts": job.max_source_attempts,
        }

    def _emit(
        self,
        event_type: str,
        job_id: str,
        endpoint: SourceEndpoint | None,
        payload: dict[str, Any],
    ) -> None:
        if self._event_logger is None:
            return
        self._event_logger.append(
            event_type,
            job_id=job_id,
            mirror=endpoint.url if endpoint is not None else None,
            payload=payload,
            occurred_at=self._now(),
        )


def _new_job_id(username: str, moment: datetime) -> str:
    stamp = moment.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
    return f"{username}-{stamp}"
