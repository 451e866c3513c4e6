"""nitter_reader package."""

from .config import (
    AppConfig,
    BrowserConfig,
    DeliveryConfig,
    PaginationConfig,
    RotationConfig,
    RuntimeConfig,
    config_to_dict,
    default_config,
    init_default_config,
    load_runtime_config,
    resolve_config_path,
)
from .models import ExtractionJob, Item, Profile, ResultEnvelope, SourceEndpoint
from .rotation import RotationRegistry

__all__ = [
    "AppConfig",
    "BrowserConfig",
    "DeliveryConfig",
    "ExtractionJob",
    "Item",
    "PaginationConfig",
    "Profile",
    "ResultEnvelope",
    "RotationConfig",
    "RotationRegistry",
    "RuntimeConfig",
    "SourceEndpoint",
    "config_to_dict",
    "default_config",
    "init_default_config",
    "load_runtime_config",
    "resolve_config_path",
]

__version__ = "0.1.0"
