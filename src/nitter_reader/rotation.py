"""Round-robin rotation over interchangeable mirror endpoints."""

from __future__ import annotations

from collections.abc import Iterable

from nitter_reader.errors import ConfigError
from nitter_reader.models import SourceEndpoint


class RotationRegistry:
    """Ordered mirror sequence with a wrapping cursor.

    A registry is owned by whoever runs jobs with it. Jobs that run
    concurrently in one process must each build their own registry from
    configuration; the cursor is not synchronized.
    """

    def __init__(self, endpoints: Iterable[SourceEndpoint]) -> None:
        self._endpoints = tuple(endpoints)
        if not self._endpoints:
            raise ConfigError("Rotation requires at least one mirror endpoint.")
        self._cursor = 0

    def __len__(self) -> int:
        return len(self._endpoints)

    @property
    def cursor(self) -> int:
        return self._cursor

    def current(self) -> SourceEndpoint:
        return self._endpoints[self._cursor]

    def advance(self) -> SourceEndpoint:
        """Move to the next mirror after a source-level failure."""
        self._cursor = (self._cursor + 1) % len(self._endpoints)
        return self.current()

    def reset(self) -> None:
        self._cursor = 0

    def all(self) -> tuple[SourceEndpoint, ...]:
        return self._endpoints
