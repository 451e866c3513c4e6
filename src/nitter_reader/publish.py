"""Single fire-and-forget delivery of a job's result envelope."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from urllib.parse import urlsplit

import httpx

from nitter_reader.diagnostics.redaction import redact_url
from nitter_reader.errors import DeliveryError
from nitter_reader.models import ResultEnvelope

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeliveryReport:
    delivered: bool
    status_code: int | None = None
    error: str | None = None
    skipped: bool = False


class ResultPublisher:
    """POST one envelope as JSON to the caller's callback URL.

    Delivery failures are logged as ``DeliveryError`` and reported, never raised.
    Callers inspect the callback payload for the job's outcome.
    """

    def __init__(self, *, timeout_seconds: float = 10.0, client: httpx.Client | None = None) -> None:
        self._timeout_seconds = timeout_seconds
        self._client = client

    def publish(self, envelope: ResultEnvelope, callback_url: str | None) -> DeliveryReport:
        if not callback_url:
            logger.info(
                "delivery_skipped type=%s indicator=%s reason=no_callback_url",
                envelope.job_type,
                envelope.indicator,
            )
            return DeliveryReport(delivered=False, skipped=True)

        target = redact_url(callback_url)
        try:
            _check_callback_url(callback_url)
            response = self._post(callback_url, envelope)
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            return self._failed(DeliveryError(f"Callback to {target} timed out: {exc}"))
        except httpx.HTTPStatusError as exc:
            return self._failed(
                DeliveryError(f"Callback to {target} returned HTTP {exc.response.status_code}"),
                status_code=exc.response.status_code,
            )
        except httpx.HTTPError as exc:
            return self._failed(DeliveryError(f"Callback to {target} failed: {exc}"))
        except (httpx.InvalidURL, ValueError) as exc:
            return self._failed(DeliveryError(f"Callback URL {target} is invalid: {exc}"))

        logger.info(
            "delivery_succeeded type=%s indicator=%s success=%s status=%s url=%s",
            envelope.job_type,
            envelope.indicator,
            envelope.success,
            response.status_code,
            target,
        )
        return DeliveryReport(delivered=True, status_code=response.status_code)

    def _post(self, callback_url: str, envelope: ResultEnvelope) -> httpx.Response:
        if self._client is not None:
            return self._client.post(callback_url, json=envelope.to_dict(), timeout=self._timeout_seconds)
        with httpx.Client(timeout=self._timeout_seconds) as client:
            return client.post(callback_url, json=envelope.to_dict())

    def _failed(self, error: DeliveryError, *, status_code: int | None = None) -> DeliveryReport:
        logger.error("delivery_failed kind=%s error=%s", error.kind, error)
        return DeliveryReport(delivered=False, status_code=status_code, error=str(error))


def _check_callback_url(callback_url: str) -> None:
    parts = urlsplit(callback_url)
    if parts.scheme not in ("http", "https") or not parts.hostname:
        raise ValueError("expected an absolute http(s) URL")
