"""Resource-routing, blocked-state detection and load-more affordance policies."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any, Protocol

DEFAULT_BLOCKED_RESOURCE_TYPES = frozenset({"image", "media", "font"})

_CHALLENGE_TITLE_MARKERS = ("just a moment", "attention required", "ddos-guard")
_CHALLENGE_BODY_MARKERS = (
    "checking your browser",
    "verify you are human",
    "enable javascript and cookies to continue",
    "checking if the site connection is secure",
)
_RATE_LIMIT_MARKERS = (
    "rate limited",
    "rate limit exceeded",
    "too many requests",
)


class RequestRoute(Protocol):
    def abort(self) -> Any:
        """Abort current request."""

    def continue_(self) -> Any:
        """Continue current request."""


class RequestLike(Protocol):
    @property
    def resource_type(self) -> str:
        """Request resource type."""


class RoutablePage(Protocol):
    def route(
        self,
        url: str,
        handler: Callable[[RequestRoute, RequestLike], Any],
    ) -> Any:
        """Register request-routing handler."""


class AffordancePage(Protocol):
    def query_selector(self, selector: str) -> Any:
        """Query for single element."""

    def click(self, selector: str, **kwargs: Any) -> Any:
        """Click the first element matching selector."""

    def evaluate(self, expression: str, arg: Any = None) -> Any:
        """Run a script in the page."""


@dataclass(frozen=True)
class ResourceRoutingPolicy:
    enabled: bool
    blocked_resource_types: frozenset[str]


def install_resource_routing(
    page: RoutablePage,
    *,
    block_resources: bool,
    blocked_resource_types: Iterable[str] | None = None,
) -> ResourceRoutingPolicy:
    """Install request interception for configured blocked resource types."""
    if not block_resources:
        return ResourceRoutingPolicy(enabled=False, blocked_resource_types=frozenset())

    blocked = _normalize_resource_types(blocked_resource_types)
    if not blocked:
        return ResourceRoutingPolicy(enabled=False, blocked_resource_types=frozenset())

    handler = make_resource_route_handler(blocked)
    page.route("**/*", handler)
    return ResourceRoutingPolicy(enabled=True, blocked_resource_types=blocked)


def make_resource_route_handler(
    blocked_resource_types: Iterable[str],
) -> Callable[[RequestRoute, RequestLike], Any]:
    """Build a route handler that aborts blocked resource types."""
    blocked = _normalize_resource_types(blocked_resource_types)

    def _handler(route: RequestRoute, request: RequestLike) -> Any:
        resource_type = str(getattr(request, "resource_type", "")).strip().lower()
        if resource_type in blocked:
            return route.abort()
        return route.continue_()

    return _handler


def detect_blocked_state(page_title: str, body_text: str) -> str | None:
    """Return a blocked category when a mirror shows a bot challenge or rate-limit wall."""
    lowered_title = str(page_title).lower()
    lowered_body = str(body_text).lower()

    if any(marker in lowered_title for marker in _CHALLENGE_TITLE_MARKERS) or any(
        marker in lowered_body for marker in _CHALLENGE_BODY_MARKERS
    ):
        return "challenge"
    if any(marker in lowered_title or marker in lowered_body for marker in _RATE_LIMIT_MARKERS):
        return "rate_limited"
    return None


def find_load_more_selector(page: AffordancePage, selectors: Sequence[str]) -> str | None:
    """Return the first load-more variant present on the page."""
    for selector in selectors:
        try:
            element = page.query_selector(selector)
        except Exception:
            continue
        if element is not None:
            return selector
    return None


def click_affordance(page: AffordancePage, selector: str, *, timeout_ms: int) -> bool:
    """Click directly, falling back to a scripted click when the direct click fails."""
    try:
        page.click(selector, timeout=timeout_ms)
    except Exception:
        return _scripted_click(page, selector)
    return True


def _scripted_click(page: AffordancePage, selector: str) -> bool:
    try:
        return bool(
            page.evaluate(
                "(selector) => { const el = document.querySelector(selector);"
                " if (!el) { return false; } el.click(); return true; }",
                selector,
            )
        )
    except Exception:
        return False


def _normalize_resource_types(resource_types: Iterable[str] | None) -> frozenset[str]:
    source = DEFAULT_BLOCKED_RESOURCE_TYPES if resource_types is None else resource_types
    normalized = {
        str(resource_type).strip().lower()
        for resource_type in source
        if str(resource_type).strip()
    }
    return frozenset(normalized)
