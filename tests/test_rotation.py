"""Round-robin mirror rotation behavior."""

from __future__ import annotations

import pytest

from nitter_reader.errors import ConfigError
from nitter_reader.models import SourceEndpoint
from nitter_reader.rotation import RotationRegistry

URLS = ("https://one.example", "https://two.example/", "https://three.example")


def _registry() -> RotationRegistry:
    return RotationRegistry(SourceEndpoint(url) for url in URLS)


def test_advance_wraps_and_returns_to_origin_after_n_steps() -> None:
    registry = _registry()

    visited = [registry.advance().url for _ in range(len(registry))]

    assert visited == ["https://two.example", "https://three.example", "https://one.example"]
    assert registry.cursor == 0
    assert registry.current() == SourceEndpoint("https://one.example")


def test_current_is_a_pure_read() -> None:
    registry = _registry()

    assert registry.current() == registry.current()
    assert registry.cursor == 0


def test_reset_and_snapshot() -> None:
    registry = _registry()
    registry.advance()
    registry.advance()

    snapshot = registry.all()
    registry.reset()

    assert registry.cursor == 0
    assert isinstance(snapshot, tuple)
    assert [endpoint.url for endpoint in snapshot] == [
        "https://one.example",
        "https://two.example",
        "https://three.example",
    ]


def test_empty_registry_is_a_config_error() -> None:
    with pytest.raises(ConfigError, match="at least one mirror"):
        RotationRegistry([])


def test_endpoint_builds_profile_url_and_host() -> None:
    endpoint = SourceEndpoint("https://nitter.example/ ")

    assert endpoint.url == "https://nitter.example"
    assert endpoint.host == "nitter.example"
    assert endpoint.profile_url("alice") == "https://nitter.example/alice"
