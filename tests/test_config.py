"""Config loading, defaults and validation messages."""

from __future__ import annotations

from pathlib import Path

import pytest

from nitter_reader.config import (
    DEFAULT_MIRRORS,
    default_config,
    init_default_config,
    load_runtime_config,
    load_runtime_config_or_default,
    parse_runtime_config,
    resolve_config_path,
)
from nitter_reader.errors import ConfigError


def test_default_template_round_trips_to_defaults(tmp_path: Path) -> None:
    path = init_default_config(tmp_path / "config.toml")

    assert load_runtime_config(path) == default_config()


def test_defaults_cover_all_tables() -> None:
    config = default_config()

    assert config.app.default_limit == 20
    assert config.browser.navigation_timeout_ms == 30_000
    assert config.browser.landing_timeout_ms == 15_000
    assert config.browser.block_resources is False
    assert config.pagination.max_rounds is None
    assert config.pagination.consecutive_failure_threshold == 3
    assert config.pagination.settle_delay_ms == 2_000
    assert config.pagination.round_pause_ms == 1_000
    assert config.rotation.max_source_attempts is None
    assert config.delivery.timeout_seconds == 10
    assert tuple(endpoint.url for endpoint in config.mirrors) == DEFAULT_MIRRORS


def test_explicit_values_override_defaults() -> None:
    config = parse_runtime_config(
        {
            "app": {"debug": True, "default_limit": 50, "selectors_path": "~/selectors.toml"},
            "browser": {"engine": "firefox", "headless": False, "block_resources": True},
            "pagination": {"max_rounds": 7, "settle_delay_ms": 0},
            "rotation": {"max_source_attempts": 2},
            "mirrors": [{"url": "https://only.example/"}],
        }
    )

    assert config.app.debug is True
    assert config.app.default_limit == 50
    assert config.app.selectors_path == "~/selectors.toml"
    assert config.browser.engine == "firefox"
    assert config.browser.block_resources is True
    assert config.pagination.max_rounds == 7
    assert config.pagination.settle_delay_ms == 0
    assert config.rotation.max_source_attempts == 2
    assert [endpoint.url for endpoint in config.mirrors] == ["https://only.example"]


@pytest.mark.parametrize(
    ("data", "message"),
    [
        ({"browser": {"engine": "opera"}}, "browser.engine"),
        ({"browser": {"headless": "yes"}}, "browser.headless"),
        ({"pagination": {"consecutive_failure_threshold": 0}}, "consecutive_failure_threshold"),
        ({"pagination": {"settle_delay_ms": -1}}, "settle_delay_ms"),
        ({"pagination": {"max_rounds": 0}}, "pagination.max_rounds"),
        ({"rotation": {"max_source_attempts": True}}, "rotation.max_source_attempts"),
        ({"app": {"selectors_path": ""}}, "app.selectors_path"),
        ({"browser": []}, "[browser]"),
        ({"mirrors": []}, "at least one mirror"),
        ({"mirrors": {"url": "https://a.example"}}, "array of tables"),
        ({"mirrors": [{"url": "ftp://a.example"}]}, "http(s) URL"),
        ({"mirrors": [{}]}, "mirrors[0].url"),
        (
            {"mirrors": [{"url": "https://a.example"}, {"url": "https://a.example/"}]},
            "Duplicate mirror",
        ),
    ],
)
def test_invalid_values_raise_actionable_errors(data: dict[str, object], message: str) -> None:
    with pytest.raises(ConfigError) as excinfo:
        parse_runtime_config(data)
    assert message in str(excinfo.value)


def test_invalid_toml_points_at_regeneration(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"
    path.write_text("[app\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="invalid TOML"):
        load_runtime_config(path)


def test_env_var_selects_config_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    target = tmp_path / "env.toml"
    monkeypatch.setenv("NITTER_READER_CONFIG", str(target))

    assert resolve_config_path() == target


def test_or_default_falls_back_only_for_implicit_path(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("NITTER_READER_CONFIG", str(tmp_path / "missing.toml"))

    assert load_runtime_config_or_default() == default_config()
    with pytest.raises(ConfigError, match="not found"):
        load_runtime_config_or_default(tmp_path / "explicit.toml")


def test_init_refuses_directory_and_existing_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="is a directory"):
        init_default_config(tmp_path)

    path = init_default_config(tmp_path / "config.toml")
    with pytest.raises(ConfigError, match="--force"):
        init_default_config(path)
    assert init_default_config(path, force=True) == path
