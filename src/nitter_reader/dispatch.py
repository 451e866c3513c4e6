"""Job request parsing, job-type routing and result envelope construction."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
import logging
import re
import traceback
from typing import Any
from urllib.parse import urlparse

from nitter_reader.config import RuntimeConfig
from nitter_reader.errors import InvalidJobError, UnknownJobType, error_kind
from nitter_reader.executor import JobExecutor, JobOutcome, build_job
from nitter_reader.models import ResultEnvelope
from nitter_reader.publish import DeliveryReport, ResultPublisher
from nitter_reader.rotation import RotationRegistry

logger = logging.getLogger(__name__)

USER_TWEETS = "user_tweets"
SUPPORTED_JOB_TYPES = (USER_TWEETS,)

_HANDLE_RE = re.compile(r"^[A-Za-z0-9_]{1,32}$")

ExecutorFactory = Callable[[RuntimeConfig, RotationRegistry], JobExecutor]


@dataclass(frozen=True)
class JobRequest:
    job_type: str
    params: dict[str, Any] = field(default_factory=dict)
    callback_url: str | None = None
    indicator: str | None = None

    @classmethod
    def from_payload(cls, payload: Any) -> JobRequest:
        if not isinstance(payload, Mapping):
            raise InvalidJobError(
                f"Job request must be a JSON object, got {type(payload).__name__}."
            )
        job_type = payload.get("type")
        if not isinstance(job_type, str) or not job_type.strip():
            raise InvalidJobError("Job request is missing a non-empty 'type'.")
        params = payload.get("params", {})
        if params is None:
            params = {}
        if not isinstance(params, Mapping):
            raise InvalidJobError("Job request 'params' must be a JSON object.")
        callback_url = payload.get("callback_url")
        if callback_url is not None and (not isinstance(callback_url, str) or not callback_url.strip()):
            raise InvalidJobError("Job request 'callback_url' must be a non-empty string.")
        indicator = payload.get("indicator")
        return cls(
            job_type=job_type.strip(),
            params=dict(params),
            callback_url=callback_url.strip() if callback_url else None,
            indicator=str(indicator) if indicator is not None else None,
        )


@dataclass(frozen=True)
class DispatchResult:
    success: bool
    envelope: ResultEnvelope
    delivery: DeliveryReport
    outcome: JobOutcome | None = None


def parse_handle(value: Any) -> str:
    """Accept ``name``, ``@name`` or a profile URL and return the bare handle."""
    if not isinstance(value, str) or not value.strip():
        raise InvalidJobError("'username' is required and must be a non-empty string.")
    raw = value.strip()
    if raw.startswith("@"):
        raw = raw[1:]
    elif "://" in raw:
        segments = [segment for segment in urlparse(raw).path.split("/") if segment]
        if not segments:
            raise InvalidJobError(f"Could not parse username from '{value}'.")
        raw = segments[0].lstrip("@")
    if not _HANDLE_RE.fullmatch(raw):
        raise InvalidJobError(
            f"Invalid username '{value}'. Use a handle like '@someuser' or a profile URL."
        )
    return raw


def parse_limit(value: Any, default: int) -> int:
    if value is None:
        return default
    if isinstance(value, bool):
        raise InvalidJobError("'limit' must be a positive integer.")
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if not isinstance(value, int) or value <= 0:
        raise InvalidJobError("'limit' must be a positive integer.")
    return value


def success_envelope(request: JobRequest, outcome: JobOutcome) -> ResultEnvelope:
    return ResultEnvelope(
        success=True,
        job_type=request.job_type,
        indicator=request.indicator,
        params=request.params,
        result=outcome.result_payload(),
    )


def failure_envelope(
    job_type: str,
    params: Mapping[str, Any],
    indicator: str | None,
    error: BaseException | None,
) -> ResultEnvelope:
    return ResultEnvelope(
        success=False,
        job_type=job_type,
        indicator=indicator,
        params=dict(params),
        error=error_payload(error),
    )


def error_payload(error: BaseException | None) -> dict[str, Any]:
    if error is None:
        return {"kind": "UnexpectedError", "message": "Job failed without an error.", "stack": None}
    return {
        "kind": error_kind(error),
        "message": str(error) or type(error).__name__,
        "stack": "".join(traceback.format_exception(type(error), error, error.__traceback__)),
    }


def process_job(
    payload: Any,
    *,
    config: RuntimeConfig,
    registry: RotationRegistry | None = None,
    executor_factory: ExecutorFactory | None = None,
    publisher: ResultPublisher | None = None,
) -> DispatchResult:
    """Route one job request and publish exactly one envelope for it."""
    resolved_publisher = publisher or ResultPublisher(timeout_seconds=config.delivery.timeout_seconds)
    try:
        request = JobRequest.from_payload(payload)
        if request.job_type not in SUPPORTED_JOB_TYPES:
            supported = ", ".join(SUPPORTED_JOB_TYPES)
            raise UnknownJobType(
                f"Unsupported job type '{request.job_type}'. Supported types: {supported}."
            )
        username = parse_handle(request.params.get("username"))
        limit = parse_limit(request.params.get("limit"), config.app.default_limit)
    except InvalidJobError as exc:
        logger.error("job_rejected kind=%s error=%s", exc.kind, exc)
        return reject_job(payload, exc, publisher=resolved_publisher)

    resolved_registry = registry or RotationRegistry(config.mirrors)
    factory = executor_factory or JobExecutor
    try:
        executor = factory(config, resolved_registry)
        job = build_job(config, resolved_registry, username, limit=limit)
        outcome = executor.run(job)
    except Exception as exc:
        logger.exception("job_crashed type=%s username=%s", request.job_type, username)
        envelope = failure_envelope(request.job_type, request.params, request.indicator, exc)
        delivery = resolved_publisher.publish(envelope, request.callback_url)
        return DispatchResult(success=False, envelope=envelope, delivery=delivery)

    if outcome.success:
        envelope = success_envelope(request, outcome)
    else:
        envelope = failure_envelope(request.job_type, request.params, request.indicator, outcome.error)
    delivery = resolved_publisher.publish(envelope, request.callback_url)
    return DispatchResult(success=outcome.success, envelope=envelope, delivery=delivery, outcome=outcome)


def reject_job(payload: Any, error: BaseException, *, publisher: ResultPublisher) -> DispatchResult:
    """Publish the failure envelope for a request that never reached an executor."""
    raw_callback, raw_type, raw_params, raw_indicator = _raw_fields(payload)
    envelope = failure_envelope(raw_type, raw_params, raw_indicator, error)
    delivery = publisher.publish(envelope, raw_callback)
    return DispatchResult(success=False, envelope=envelope, delivery=delivery)


def _raw_fields(payload: Any) -> tuple[str | None, str, dict[str, Any], str | None]:
    """Best-effort fields for failure envelopes of requests that did not validate."""
    if not isinstance(payload, Mapping):
        return None, "unknown", {}, None
    callback = payload.get("callback_url")
    job_type = payload.get("type")
    params = payload.get("params")
    indicator = payload.get("indicator")
    return (
        callback.strip() if isinstance(callback, str) and callback.strip() else None,
        job_type.strip() if isinstance(job_type, str) and job_type.strip() else "unknown",
        dict(params) if isinstance(params, Mapping) else {},
        str(indicator) if indicator is not None else None,
    )
