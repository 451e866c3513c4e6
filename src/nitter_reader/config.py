"""Shared configuration contracts and validation helpers for nitter-reader."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
import os
from pathlib import Path
import sys
from typing import Any

from platformdirs import user_config_dir

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from .errors import ConfigError
from .models import SourceEndpoint

VALID_BROWSER_ENGINES = {"chromium", "firefox", "webkit"}
DEFAULT_CONFIG_FILENAME = "config.toml"
CONFIG_ENV_VAR = "NITTER_READER_CONFIG"

DEFAULT_MIRRORS = (
    "https://nitter.tiekoetter.com",
    "https://nitter.space",
    "https://lightbrd.com",
    "https://nitter.privacyredirect.com",
    "https://nitter.net",
    "https://xcancel.com",
)
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/96.0.4664.110 Safari/537.36"
)

DEFAULT_CONFIG_TEMPLATE = """[app]
debug = false
default_limit = 20

[browser]
engine = "chromium"
headless = true
navigation_timeout_ms = 30000
landing_timeout_ms = 15000
action_timeout_ms = 10000
block_resources = false
viewport_width = 1280
viewport_height = 800
locale = "en-US"

[pagination]
consecutive_failure_threshold = 3
settle_delay_ms = 2000
round_pause_ms = 1000
# max_rounds = 10

[rotation]
# max_source_attempts = 6

[delivery]
timeout_seconds = 10

[[mirrors]]
url = "https://nitter.tiekoetter.com"

[[mirrors]]
url = "https://nitter.space"

[[mirrors]]
url = "https://lightbrd.com"

[[mirrors]]
url = "https://nitter.privacyredirect.com"

[[mirrors]]
url = "https://nitter.net"

[[mirrors]]
url = "https://xcancel.com"
"""


@dataclass(frozen=True)
class AppConfig:
    debug: bool = False
    default_limit: int = 20
    selectors_path: str | None = None


@dataclass(frozen=True)
class BrowserConfig:
    engine: str = "chromium"
    headless: bool = True
    navigation_timeout_ms: int = 30_000
    landing_timeout_ms: int = 15_000
    action_timeout_ms: int = 10_000
    block_resources: bool = False
    viewport_width: int = 1280
    viewport_height: int = 800
    locale: str = "en-US"
    user_agent: str = DEFAULT_USER_AGENT


@dataclass(frozen=True)
class PaginationConfig:
    max_rounds: int | None = None
    consecutive_failure_threshold: int = 3
    settle_delay_ms: int = 2_000
    round_pause_ms: int = 1_000


@dataclass(frozen=True)
class RotationConfig:
    max_source_attempts: int | None = None


@dataclass(frozen=True)
class DeliveryConfig:
    timeout_seconds: int = 10


@dataclass(frozen=True)
class RuntimeConfig:
    app: AppConfig = field(default_factory=AppConfig)
    browser: BrowserConfig = field(default_factory=BrowserConfig)
    pagination: PaginationConfig = field(default_factory=PaginationConfig)
    rotation: RotationConfig = field(default_factory=RotationConfig)
    delivery: DeliveryConfig = field(default_factory=DeliveryConfig)
    mirrors: tuple[SourceEndpoint, ...] = tuple(SourceEndpoint(url) for url in DEFAULT_MIRRORS)


def default_config() -> RuntimeConfig:
    return RuntimeConfig()


def default_config_toml() -> str:
    return DEFAULT_CONFIG_TEMPLATE


def resolve_config_path(config_path: str | Path | None = None) -> Path:
    if config_path:
        return Path(config_path).expanduser()

    env_value = os.getenv(CONFIG_ENV_VAR)
    if env_value:
        return Path(env_value).expanduser()

    config_dir = Path(user_config_dir("nitter-reader", appauthor=False))
    return config_dir / DEFAULT_CONFIG_FILENAME


def init_default_config(config_path: str | Path | None = None, force: bool = False) -> Path:
    path = resolve_config_path(config_path)
    if path.exists() and path.is_dir():
        raise ConfigError(
            f"Config path '{path}' is a directory; expected a TOML file path (for example '{path / DEFAULT_CONFIG_FILENAME}')."
        )
    if path.exists() and not force:
        raise ConfigError(
            f"Config file already exists at '{path}'. Re-run with --force to overwrite."
        )

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(default_config_toml(), encoding="utf-8")
    except OSError as exc:
        raise ConfigError(
            f"Could not write config file at '{path}': {exc}. "
            "Check path permissions or choose a writable location with `--config`."
        ) from exc
    return path


def load_runtime_config(config_path: str | Path | None = None) -> RuntimeConfig:
    path = resolve_config_path(config_path)
    if not path.exists():
        raise ConfigError(
            f"Config file not found at '{path}'. Run `nitter config init --config \"{path}\"` to generate defaults."
        )
    if path.is_dir():
        raise ConfigError(
            f"Config path '{path}' is a directory; pass a file path ending in '{DEFAULT_CONFIG_FILENAME}'."
        )

    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(
            f"Could not read config file '{path}': {exc}. "
            "Check file permissions and that the path points to a readable TOML file."
        ) from exc
    raw = _load_toml(text, path)
    return parse_runtime_config(raw)


def load_runtime_config_or_default(config_path: str | Path | None = None) -> RuntimeConfig:
    """Load an explicit config path strictly; fall back to defaults when the implicit one is absent."""
    if config_path:
        return load_runtime_config(config_path)
    path = resolve_config_path(None)
    if not path.exists():
        return default_config()
    return load_runtime_config(path)


def config_to_dict(config: RuntimeConfig) -> dict[str, Any]:
    return asdict(config)


def _load_toml(text: str, path: Path) -> dict[str, Any]:
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(
            f"Config file '{path}' contains invalid TOML: {exc}. "
            "Fix the syntax or regenerate defaults with `nitter config init --force`."
        ) from exc

    if not isinstance(data, dict):
        raise ConfigError(f"Config file '{path}' must parse to a TOML table.")
    return data


def parse_runtime_config(data: dict[str, Any]) -> RuntimeConfig:
    app = _Section.of(data, "app")
    browser = _Section.of(data, "browser")
    pagination = _Section.of(data, "pagination")
    rotation = _Section.of(data, "rotation")
    delivery = _Section.of(data, "delivery")

    return RuntimeConfig(
        app=AppConfig(
            debug=app.boolean("debug", False),
            default_limit=app.positive_int("default_limit", 20),
            selectors_path=app.optional_text("selectors_path"),
        ),
        browser=BrowserConfig(
            engine=browser.choice("engine", "chromium", VALID_BROWSER_ENGINES),
            headless=browser.boolean("headless", True),
            navigation_timeout_ms=browser.positive_int("navigation_timeout_ms", 30_000),
            landing_timeout_ms=browser.positive_int("landing_timeout_ms", 15_000),
            action_timeout_ms=browser.positive_int("action_timeout_ms", 10_000),
            block_resources=browser.boolean("block_resources", False),
            viewport_width=browser.positive_int("viewport_width", 1280),
            viewport_height=browser.positive_int("viewport_height", 800),
            locale=browser.text("locale", "en-US"),
            user_agent=browser.text("user_agent", DEFAULT_USER_AGENT),
        ),
        pagination=PaginationConfig(
            max_rounds=pagination.optional_positive_int("max_rounds"),
            consecutive_failure_threshold=pagination.positive_int("consecutive_failure_threshold", 3),
            settle_delay_ms=pagination.non_negative_int("settle_delay_ms", 2_000),
            round_pause_ms=pagination.non_negative_int("round_pause_ms", 1_000),
        ),
        rotation=RotationConfig(
            max_source_attempts=rotation.optional_positive_int("max_source_attempts"),
        ),
        delivery=DeliveryConfig(
            timeout_seconds=delivery.positive_int("timeout_seconds", 10),
        ),
        mirrors=_parse_mirrors(data.get("mirrors")),
    )


def _parse_mirrors(raw: Any) -> tuple[SourceEndpoint, ...]:
    if raw is None:
        return tuple(SourceEndpoint(url) for url in DEFAULT_MIRRORS)
    if not isinstance(raw, list):
        raise ConfigError("Invalid [mirrors]: expected an array of tables (`[[mirrors]]`).")
    if not raw:
        raise ConfigError("Invalid [mirrors]: at least one mirror is required.")

    endpoints: dict[str, SourceEndpoint] = {}
    for index, entry in enumerate(raw):
        name = f"mirrors[{index}]"
        if not isinstance(entry, dict):
            raise ConfigError(f"{name} must be a table, got {type(entry).__name__}.")
        url = _Section(entry, name).text("url", None)
        if not url.startswith(("http://", "https://")):
            raise ConfigError(f"Invalid value for '{name}.url': expected http(s) URL.")
        endpoint = SourceEndpoint(url)
        if endpoint.url in endpoints:
            raise ConfigError(f"Duplicate mirror '{endpoint.url}' at {name}.")
        endpoints[endpoint.url] = endpoint
    return tuple(endpoints.values())


class _Section:
    """Typed reads from one TOML table; errors name the dotted key."""

    def __init__(self, values: dict[str, Any], name: str) -> None:
        self._values = values
        self._name = name

    @classmethod
    def of(cls, data: dict[str, Any], name: str) -> _Section:
        values = data.get(name, {})
        if not isinstance(values, dict):
            raise ConfigError(f"Invalid [{name}] table: expected table, got {type(values).__name__}.")
        return cls(values, name)

    def boolean(self, key: str, default: bool) -> bool:
        value = self._values.get(key, default)
        if not isinstance(value, bool):
            raise self._invalid(key, "expected boolean true/false")
        return value

    def positive_int(self, key: str, default: int) -> int:
        return self._int(key, default, minimum=1, expected="expected positive integer")

    def non_negative_int(self, key: str, default: int) -> int:
        return self._int(key, default, minimum=0, expected="expected integer >= 0")

    def optional_positive_int(self, key: str) -> int | None:
        if key not in self._values:
            return None
        return self.positive_int(key, 0)

    def text(self, key: str, default: str | None) -> str:
        if key not in self._values and default is None:
            raise ConfigError(f"Missing required value '{self._name}.{key}'.")
        value = self._values.get(key, default)
        if not isinstance(value, str) or not value.strip():
            raise self._invalid(key, "expected non-empty string")
        return value

    def optional_text(self, key: str) -> str | None:
        if key not in self._values:
            return None
        return self.text(key, None)

    def choice(self, key: str, default: str, choices: set[str]) -> str:
        value = self._values.get(key, default)
        if not isinstance(value, str) or value not in choices:
            raise self._invalid(key, f"expected one of [{', '.join(sorted(choices))}]")
        return value

    def _int(self, key: str, default: int, *, minimum: int, expected: str) -> int:
        value = self._values.get(key, default)
        # bool is an int subclass; `true` is never a valid count.
        if isinstance(value, bool) or not isinstance(value, int) or value < minimum:
            raise self._invalid(key, expected)
        return value

    def _invalid(self, key: str, expected: str) -> ConfigError:
        return ConfigError(f"Invalid value for '{self._name}.{key}': {expected}.")
