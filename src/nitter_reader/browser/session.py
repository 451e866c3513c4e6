"""Browser session lifecycle manager and the page-level Session capability."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from contextlib import AbstractContextManager
from dataclasses import dataclass, field
import logging
import random
import time
from typing import Any, Protocol, TypeVar

from nitter_reader.browser.policy import (
    click_affordance,
    detect_blocked_state,
    find_load_more_selector,
    install_resource_routing,
)
from nitter_reader.config import RuntimeConfig
from nitter_reader.errors import BrowserError, NavigationError, NavigationTimeout, SelectorTimeout
from nitter_reader.extract.base import ExtractionAdapter
from nitter_reader.extract.selectors import SelectorPack, default_selector_pack, joined
from nitter_reader.models import SourceEndpoint

logger = logging.getLogger(__name__)

T = TypeVar("T")

PREFERENCES_COOKIE = "nitter_prefs"
PREFERENCES_COOKIE_VALUE = "minimal=0&infinite=1"
DEFAULT_EXTRA_HEADERS = {
    "Accept-Language": "en-US,en;q=0.9",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,image/apng,*/*;q=0.8",
}
NETWORK_IDLE_TIMEOUT_MS = 3_000
VIEWPORT_JITTER_PX = 100


@dataclass(frozen=True)
class LoadMoreResult:
    strategy: str
    before: int
    after: int

    @property
    def changed(self) -> bool:
        return self.after != self.before


class Session(Protocol):
    """Renderable-page capability consumed by the executor and pagination controller."""

    @property
    def endpoint(self) -> SourceEndpoint:
        """Mirror this session was opened for."""

    def navigate(self, address: str, timeout_ms: int) -> None:
        """Load a page or raise NavigationTimeout/NavigationError."""

    def wait_for_any_of(self, markers: Sequence[tuple[str, str]], timeout_ms: int) -> str:
        """Block until a named marker appears; raise SelectorTimeout otherwise."""

    def extract(self, adapter: ExtractionAdapter[T]) -> T:
        """Run an adapter; faults come back as the adapter's degraded result."""

    def trigger_load_more(self, settle_seconds: float) -> LoadMoreResult:
        """Reveal more content via load-more affordance or scroll fallback."""

    def release(self) -> None:
        """Release page and browser resources."""


class SessionOwner(Protocol):
    def close(self) -> None:
        """Close the browser resources behind a page."""


@dataclass(frozen=True)
class BrowserSessionOptions:
    engine: str
    headless: bool
    navigation_timeout_ms: int
    action_timeout_ms: int
    locale: str
    viewport_width: int
    viewport_height: int
    user_agent: str
    extra_http_headers: dict[str, str] = field(default_factory=dict)

    def context_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "locale": self.locale,
            "user_agent": self.user_agent,
            "viewport": {"width": self.viewport_width, "height": self.viewport_height},
        }
        if self.extra_http_headers:
            kwargs["extra_http_headers"] = dict(self.extra_http_headers)
        return kwargs


class PlaywrightBrowserSession:
    """One Playwright browser and context, launched for a single attempt.

    Every resource registers its closer as soon as it exists. Teardown runs
    the closers newest-first, keeps going past individual failures and
    reports them together.
    """

    def __init__(
        self,
        config: RuntimeConfig,
        *,
        viewport_width: int | None = None,
        viewport_height: int | None = None,
        extra_http_headers: dict[str, str] | None = None,
        playwright_factory: Callable[[], AbstractContextManager[Any]] | None = None,
    ) -> None:
        browser = config.browser
        self.options = BrowserSessionOptions(
            engine=browser.engine,
            headless=browser.headless,
            navigation_timeout_ms=browser.navigation_timeout_ms,
            action_timeout_ms=browser.action_timeout_ms,
            locale=browser.locale,
            viewport_width=viewport_width or browser.viewport_width,
            viewport_height=viewport_height or browser.viewport_height,
            user_agent=browser.user_agent,
            extra_http_headers=dict(extra_http_headers or {}),
        )
        self._playwright_factory = playwright_factory or _default_playwright_factory
        self._closers: list[tuple[str, Callable[[], Any]]] = []
        self._context: Any | None = None

    def open(self) -> None:
        if self._context is not None:
            return
        try:
            self._context = self._launch()
        except BrowserError:
            self.abort()
            raise
        except Exception as exc:
            self.abort()
            raise BrowserError(f"Failed to open browser session: {exc}") from exc

    def new_page(self) -> Any:
        context = self._require_context()
        try:
            page = context.new_page()
            page.set_default_navigation_timeout(self.options.navigation_timeout_ms)
        except Exception as exc:
            raise BrowserError(f"Failed to create browser page: {exc}") from exc
        return page

    def add_cookies(self, cookies: list[dict[str, Any]]) -> None:
        context = self._require_context()
        try:
            context.add_cookies(cookies)
        except Exception as exc:
            raise BrowserError(f"Failed to set browser cookies: {exc}") from exc

    def close(self) -> None:
        errors = self._run_closers()
        if errors:
            raise BrowserError(
                "Errors occurred during browser session teardown: " + "; ".join(errors)
            )

    def abort(self) -> None:
        """Tear down after a failed setup; the original failure is what callers see."""
        for error in self._run_closers():
            logger.debug("browser_abort_error error=%s", error)

    def _launch(self) -> Any:
        manager = self._playwright_factory()
        playwright = manager.__enter__()
        self._closers.append(("playwright teardown", lambda: manager.__exit__(None, None, None)))

        launcher = getattr(playwright, self.options.engine, None)
        if launcher is None:
            raise BrowserError(
                f"Unsupported browser engine '{self.options.engine}' for Playwright session."
            )
        browser = launcher.launch(headless=self.options.headless)
        self._closers.append(("browser close", browser.close))

        context = browser.new_context(**self.options.context_kwargs())
        self._closers.append(("context close", context.close))
        context.set_default_timeout(self.options.action_timeout_ms)
        return context

    def _require_context(self) -> Any:
        if self._context is None:
            raise BrowserError("Browser session is not open.")
        return self._context

    def _run_closers(self) -> list[str]:
        errors: list[str] = []
        while self._closers:
            label, closer = self._closers.pop()
            try:
                closer()
            except Exception as exc:
                errors.append(f"{label} failed: {exc}")
        self._context = None
        return errors


class PageSession:
    """Session implementation over one Playwright page owned by one attempt."""

    def __init__(
        self,
        page: Any,
        *,
        endpoint: SourceEndpoint,
        owner: SessionOwner | None = None,
        selectors: SelectorPack | None = None,
        action_timeout_ms: int = 10_000,
        network_idle_timeout_ms: int = NETWORK_IDLE_TIMEOUT_MS,
        sleep_fn: Callable[[float], None] = time.sleep,
    ) -> None:
        self._page = page
        self._endpoint = endpoint
        self._owner = owner
        self._selectors = selectors or default_selector_pack()
        self._action_timeout_ms = action_timeout_ms
        self._network_idle_timeout_ms = network_idle_timeout_ms
        self._sleep = sleep_fn
        self._released = False

    @property
    def endpoint(self) -> SourceEndpoint:
        return self._endpoint

    def navigate(self, address: str, timeout_ms: int) -> None:
        try:
            self._page.goto(address, wait_until="domcontentloaded", timeout=timeout_ms)
        except Exception as exc:
            if _is_timeout(exc):
                raise NavigationTimeout(
                    f"Navigation to '{address}' did not settle within {timeout_ms} ms."
                ) from exc
            raise NavigationError(f"Could not navigate to '{address}': {exc}") from exc
        self._wait_for_network_idle()

    def wait_for_any_of(self, markers: Sequence[tuple[str, str]], timeout_ms: int) -> str:
        if not markers:
            raise SelectorTimeout("No landing-state markers were supplied.")
        combined = ", ".join(selector for _, selector in markers)
        try:
            self._page.wait_for_selector(combined, timeout=timeout_ms, state="attached")
        except Exception as exc:
            if not _is_timeout(exc):
                raise
            raise SelectorTimeout(self._selector_timeout_message(markers, timeout_ms)) from exc

        for name, selector in markers:
            if self._page.query_selector(selector) is not None:
                return name
        raise SelectorTimeout(
            f"Landing markers vanished before classification on {self._endpoint.url}."
        )

    def extract(self, adapter: ExtractionAdapter[T]) -> T:
        try:
            return adapter.extract(self._page)
        except Exception as exc:
            logger.warning(
                "extraction_degraded mirror=%s adapter=%s error=%s",
                self._endpoint.url,
                type(adapter).__name__,
                exc,
            )
            return adapter.degrade(exc)

    def visible_item_count(self) -> int:
        return len(self._page.query_selector_all(joined(self._selectors, "timeline.countable")))

    def trigger_load_more(self, settle_seconds: float) -> LoadMoreResult:
        before = self.visible_item_count()
        selector = find_load_more_selector(self._page, self._selectors["timeline.load_more"])
        if selector is not None and click_affordance(
            self._page, selector, timeout_ms=self._action_timeout_ms
        ):
            self._sleep(settle_seconds)
            self._wait_for_network_idle()
            after = self.visible_item_count()
            if after != before:
                return LoadMoreResult(strategy="button", before=before, after=after)

        self._page.evaluate("window.scrollTo(0, document.body.scrollHeight)")
        self._sleep(settle_seconds)
        return LoadMoreResult(strategy="scroll", before=before, after=self.visible_item_count())

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        errors: list[str] = []
        try:
            self._page.close()
        except Exception as exc:
            errors.append(f"page close failed: {exc}")
        if self._owner is not None:
            try:
                self._owner.close()
            except BrowserError as exc:
                errors.append(str(exc))
        if errors:
            raise BrowserError("Errors occurred while releasing session: " + "; ".join(errors))

    def _wait_for_network_idle(self) -> None:
        try:
            self._page.wait_for_load_state("networkidle", timeout=self._network_idle_timeout_ms)
        except Exception as exc:
            if not _is_timeout(exc):
                raise
            logger.debug("network_idle_timeout mirror=%s", self._endpoint.url)

    def _selector_timeout_message(self, markers: Sequence[tuple[str, str]], timeout_ms: int) -> str:
        names = ", ".join(name for name, _ in markers)
        message = f"None of the markers [{names}] appeared within {timeout_ms} ms on {self._endpoint.url}."
        blocked = detect_blocked_state(_safe_title(self._page), _safe_body_text(self._page))
        if blocked is not None:
            message += f" Mirror appears blocked ({blocked})."
        return message


def open_page_session(
    config: RuntimeConfig,
    endpoint: SourceEndpoint,
    *,
    selectors: SelectorPack | None = None,
    playwright_factory: Callable[[], AbstractContextManager[Any]] | None = None,
    sleep_fn: Callable[[float], None] = time.sleep,
    rng: random.Random | None = None,
) -> PageSession:
    """Launch a fresh browser for one attempt against ``endpoint``."""
    jitter = rng or random.Random()
    browser_session = PlaywrightBrowserSession(
        config,
        viewport_width=config.browser.viewport_width + jitter.randrange(VIEWPORT_JITTER_PX),
        viewport_height=config.browser.viewport_height + jitter.randrange(VIEWPORT_JITTER_PX),
        extra_http_headers=DEFAULT_EXTRA_HEADERS,
        playwright_factory=playwright_factory,
    )
    browser_session.open()
    try:
        browser_session.add_cookies(
            [
                {
                    "name": PREFERENCES_COOKIE,
                    "value": PREFERENCES_COOKIE_VALUE,
                    "domain": endpoint.host,
                    "path": "/",
                }
            ]
        )
        page = browser_session.new_page()
        install_resource_routing(page, block_resources=config.browser.block_resources)
    except Exception:
        browser_session.abort()
        raise
    return PageSession(
        page,
        endpoint=endpoint,
        owner=browser_session,
        selectors=selectors,
        action_timeout_ms=config.browser.action_timeout_ms,
        sleep_fn=sleep_fn,
    )


def _is_timeout(exc: BaseException) -> bool:
    return isinstance(exc, TimeoutError) or type(exc).__name__ == "TimeoutError"


def _safe_title(page: Any) -> str:
    try:
        return str(page.title())
    except Exception:
        return ""


def _safe_body_text(page: Any) -> str:
    try:
        return str(page.inner_text("body", timeout=2_000))
    except Exception:
        return ""


def _default_playwright_factory() -> AbstractContextManager[Any]:
    try:
        from playwright.sync_api import sync_playwright
    except ModuleNotFoundError as exc:
        raise BrowserError(
            "Playwright is not available. Install dependencies and run "
            "`python -m playwright install chromium`."
        ) from exc
    return sync_playwright()
