"""Configuration model and validation for debounced channels."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from numbers import Real
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Optional, Tuple

from core.config import DEFAULT_SETTINGS, DebounceSettings

__all__ = [
    "DebounceError",
    "ConfigError",
    "PolicyError",
    "DebounceType",
    "ChannelPolicy",
    "DebouncerConfig",
    "resolve_config",
]

log = logging.getLogger(__name__)

CHANNELS_KEY = "propTypesToDebounce"
CHANNELS_ALIAS = "channels"


class DebounceError(RuntimeError):
    """Base class for debouncer configuration failures."""

    def __init__(self, message: str, *, key: str | None = None) -> None:
        super().__init__(message)
        self.key = key


class ConfigError(DebounceError):
    """Raised when the configuration is missing or has the wrong shape."""


class PolicyError(DebounceError):
    """Raised when a debounce type does not name a known policy."""


class DebounceType(str, Enum):
    LEADING_EDGE = "leading"
    TRAILING_EDGE = "trailing"
    THROTTLE = "throttle"

    @classmethod
    def coerce(cls, value: Any) -> "DebounceType":
        """Accept a member, its value or its name (case-insensitive)."""

        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            cleaned = value.strip()
            try:
                return cls(cleaned.lower())
            except ValueError:
                pass
            member = cls.__members__.get(cleaned.upper())
            if member is not None:
                return member
        expected = ", ".join(member.value for member in cls)
        raise PolicyError(
            f"unrecognized debounce type {value!r}; expected one of {expected}",
            key="type",
        )


@dataclass(frozen=True)
class ChannelPolicy:
    """Resolved timing for one channel."""

    duration_ms: float
    debounce_type: DebounceType

    @property
    def duration_s(self) -> float:
        return self.duration_ms / 1000.0


@dataclass(frozen=True)
class DebouncerConfig:
    """Validated, normalised configuration shared by all channels."""

    channels: Tuple[str, ...]
    duration_ms: float
    debounce_type: DebounceType
    overrides: Mapping[str, ChannelPolicy] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def policy_for(self, channel: str) -> ChannelPolicy:
        override = self.overrides.get(channel)
        if override is not None:
            return override
        return ChannelPolicy(self.duration_ms, self.debounce_type)


def _normalise_channels(value: Any) -> Tuple[str, ...]:
    if value is None or (isinstance(value, (str, list, tuple)) and not value):
        raise ConfigError(
            f"missing required field `{CHANNELS_KEY}`", key=CHANNELS_KEY
        )
    if isinstance(value, str):
        names: Iterable[Any] = (value,)
    elif isinstance(value, Mapping) or not isinstance(value, Iterable):
        raise ConfigError(
            f"`{CHANNELS_KEY}` must be a string or a sequence of strings, "
            f"got {type(value).__name__}",
            key=CHANNELS_KEY,
        )
    else:
        names = value

    cleaned = []
    for name in names:
        if not isinstance(name, str) or not name:
            raise ConfigError(
                f"channel names must be non-empty strings, got {name!r}",
                key=CHANNELS_KEY,
            )
        cleaned.append(name)
    if not cleaned:
        raise ConfigError(
            f"missing required field `{CHANNELS_KEY}`", key=CHANNELS_KEY
        )

    unique = tuple(dict.fromkeys(cleaned))
    if len(unique) != len(cleaned):
        log.debug("Duplicate channel names collapsed: %s", cleaned)
    return unique


def _resolve_duration(value: Any, default: float) -> float:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, Real):
        raise ConfigError(
            f"duration must be a positive number of milliseconds, got {value!r}",
            key="duration",
        )
    if value <= 0:
        raise ConfigError(
            f"duration must be positive, got {value!r}", key="duration"
        )
    return value


def _resolve_type(value: Any, default: str) -> DebounceType:
    if value is None:
        return DebounceType.coerce(default)
    return DebounceType.coerce(value)


def _resolve_overrides(
    raw: Any,
    channels: Tuple[str, ...],
    duration_ms: float,
    debounce_type: DebounceType,
) -> Mapping[str, ChannelPolicy]:
    if raw is None:
        return MappingProxyType({})
    if not isinstance(raw, Mapping):
        raise ConfigError(
            f"overrides must be a mapping, got {type(raw).__name__}",
            key="overrides",
        )

    resolved = {}
    for channel, spec in raw.items():
        if channel not in channels:
            raise ConfigError(
                f"override given for unknown channel {channel!r}", key="overrides"
            )
        if isinstance(spec, (str, DebounceType)):
            spec = {"type": spec}
        elif not isinstance(spec, Mapping):
            raise ConfigError(
                f"override for {channel!r} must be a mapping or a type name",
                key="overrides",
            )
        resolved[channel] = ChannelPolicy(
            duration_ms=_resolve_duration(spec.get("duration"), duration_ms),
            debounce_type=_resolve_type(spec.get("type"), debounce_type.value),
        )
    return MappingProxyType(resolved)


def resolve_config(
    raw: Any, *, settings: Optional[DebounceSettings] = None
) -> DebouncerConfig:
    """Validate ``raw`` and return a :class:`DebouncerConfig`.

    ``raw`` may be a single channel name, a mapping with ``propTypesToDebounce``
    (or ``channels``), ``duration``, ``type`` and optional ``overrides``, or an
    already resolved :class:`DebouncerConfig`, which is returned unchanged.
    Raises :class:`ConfigError` for shape problems and :class:`PolicyError`
    for unknown debounce types.
    """

    if isinstance(raw, DebouncerConfig):
        return raw
    if raw is None:
        raise ConfigError("config is required. Received None")

    defaults = settings or DEFAULT_SETTINGS
    if isinstance(raw, str):
        raw = {CHANNELS_KEY: raw}
    elif not isinstance(raw, Mapping):
        raise ConfigError(f"invalid config type {type(raw).__name__}")

    channels_value = raw.get(CHANNELS_KEY)
    if channels_value is None:
        channels_value = raw.get(CHANNELS_ALIAS)
    channels = _normalise_channels(channels_value)
    duration_ms = _resolve_duration(raw.get("duration"), defaults.duration_ms)
    debounce_type = _resolve_type(raw.get("type"), defaults.debounce_type)
    overrides = _resolve_overrides(
        raw.get("overrides"), channels, duration_ms, debounce_type
    )
    return DebouncerConfig(
        channels=channels,
        duration_ms=duration_ms,
        debounce_type=debounce_type,
        overrides=overrides,
    )
