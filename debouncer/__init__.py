"""Debounce and throttle named action handlers."""

from .capabilities import DebouncedCapabilities, create_dispatcher
from .config import (
    ConfigError,
    DebounceError,
    DebouncerConfig,
    DebounceType,
    PolicyError,
    resolve_config,
)
from .dispatcher import RateLimitedDispatcher

__all__ = [
    "ConfigError",
    "DebounceError",
    "DebounceType",
    "DebouncedCapabilities",
    "DebouncerConfig",
    "PolicyError",
    "RateLimitedDispatcher",
    "create_dispatcher",
    "resolve_config",
]
