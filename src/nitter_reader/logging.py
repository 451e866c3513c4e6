"""Process-wide logging setup for the ``nitter`` command."""

from __future__ import annotations

import logging
import sys

LOGGER_NAME = "nitter_reader"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

# httpx and httpcore log every request at INFO.
_CHATTY_LIBRARIES = ("httpx", "httpcore")


def configure_logging(debug: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format=LOG_FORMAT,
        stream=sys.stderr,
    )
    library_level = logging.DEBUG if debug else logging.WARNING
    for name in _CHATTY_LIBRARIES:
        logging.getLogger(name).setLevel(library_level)


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a logger nested under the package namespace."""
    if not name or name == LOGGER_NAME:
        return logging.getLogger(LOGGER_NAME)
    if name.startswith(f"{LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{LOGGER_NAME}.{name}")
