"""Error taxonomy for stable module boundaries.

Every error carries a stable ``kind`` string; failure envelopes report it so
callers can branch on the failure class without parsing messages.
"""


class NitterReaderError(Exception):
    """Base exception for nitter-reader."""

    kind = "NitterReaderError"


class ConfigError(NitterReaderError):
    """Raised when configuration is invalid or missing."""

    kind = "ConfigError"


class BrowserError(NitterReaderError):
    """Raised for browser/session management failures."""

    kind = "BrowserError"


class NavigationError(NitterReaderError):
    """Raised when a mirror page cannot be loaded."""

    kind = "NavigationError"


class NavigationTimeout(NavigationError):
    """Raised when a page load does not settle within its budget."""

    kind = "NavigationTimeout"


class SelectorTimeout(NitterReaderError):
    """Raised when no landing-state marker appears within its budget."""

    kind = "SelectorTimeout"


class SourceError(NitterReaderError):
    """Raised when a mirror explicitly renders an error state."""

    kind = "SourceError"


class EmptyResultError(NitterReaderError):
    """Raised when an attempt yields no usable profile or zero items."""

    kind = "EmptyResultError"


class ExtractionInternalError(NitterReaderError):
    """Describes an adapter fault that was downgraded to a partial result."""

    kind = "ExtractionInternalError"


class InvalidJobError(NitterReaderError):
    """Raised when a job request payload or its params are malformed."""

    kind = "InvalidJobError"


class UnknownJobType(InvalidJobError):
    """Raised when a job request names a type no pipeline handles."""

    kind = "UnknownJobType"


class DeliveryError(NitterReaderError):
    """Raised inside the publisher when a result envelope cannot be delivered."""

    kind = "DeliveryError"


class DiagnosticsError(NitterReaderError):
    """Raised when a debug event is malformed or uses an incompatible schema."""

    kind = "DiagnosticsError"


def error_kind(exc: BaseException) -> str:
    """Return the stable kind for ``exc``; foreign exceptions map to ``UnexpectedError``."""
    if isinstance(exc, NitterReaderError):
        return exc.kind
    return "UnexpectedError"
