"""Browser session and page policies."""

from .policy import (
    DEFAULT_BLOCKED_RESOURCE_TYPES,
    ResourceRoutingPolicy,
    click_affordance,
    detect_blocked_state,
    find_load_more_selector,
    install_resource_routing,
    make_resource_route_handler,
)
from .session import (
    BrowserSessionOptions,
    LoadMoreResult,
    PageSession,
    PlaywrightBrowserSession,
    Session,
    SessionOwner,
    open_page_session,
)

__all__ = [
    "DEFAULT_BLOCKED_RESOURCE_TYPES",
    "BrowserSessionOptions",
    "LoadMoreResult",
    "PageSession",
    "PlaywrightBrowserSession",
    "ResourceRoutingPolicy",
    "Session",
    "SessionOwner",
    "click_affordance",
    "detect_blocked_state",
    "find_load_more_selector",
    "install_resource_routing",
    "make_resource_route_handler",
    "open_page_session",
]
