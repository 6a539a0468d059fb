"""Central configuration helpers for debounce defaults."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

__all__ = [
    "DebounceSettings",
    "DEFAULT_DURATION_MS",
    "DEFAULT_DEBOUNCE_TYPE",
    "DEBOUNCE_TYPE_NAMES",
    "DEFAULT_SETTINGS",
    "load_settings",
]

log = logging.getLogger(__name__)


DEFAULT_DURATION_MS = 1000
"""Window length used when a configuration does not name a duration."""

DEFAULT_DEBOUNCE_TYPE = "leading"

DEBOUNCE_TYPE_NAMES: Sequence[str] = ("leading", "trailing", "throttle")
"""Accepted values for ``DEBOUNCE_DEFAULT_TYPE``."""


def _coerce_int(value: str | None, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        log.warning("Invalid integer value %r ignored.", value)
        return default


def _coerce_bool(value: str | None, default: bool) -> bool:
    if value is None or value == "":
        return default
    cleaned = value.strip().lower()
    if cleaned in {"1", "true", "yes", "on"}:
        return True
    if cleaned in {"0", "false", "no", "off"}:
        return False
    log.warning("Invalid boolean value %r ignored.", value)
    return default


def _normalise_type_name(value: str | None) -> str:
    if not value:
        return DEFAULT_DEBOUNCE_TYPE
    cleaned = value.strip().lower()
    if cleaned not in DEBOUNCE_TYPE_NAMES:
        log.warning(
            "Invalid DEBOUNCE_DEFAULT_TYPE %r ignored; expected one of %s.",
            value,
            ", ".join(DEBOUNCE_TYPE_NAMES),
        )
        return DEFAULT_DEBOUNCE_TYPE
    return cleaned


@dataclass(frozen=True)
class DebounceSettings:
    """Process-wide defaults applied when a configuration leaves a field out."""

    duration_ms: int = DEFAULT_DURATION_MS
    debounce_type: str = DEFAULT_DEBOUNCE_TYPE
    warn_missing_handler: bool = True


def load_settings(environ: Optional[Mapping[str, str]] = None) -> DebounceSettings:
    """Read :class:`DebounceSettings` from ``environ`` (defaults to ``os.environ``)."""

    env = os.environ if environ is None else environ
    duration_ms = _coerce_int(env.get("DEBOUNCE_DEFAULT_DURATION_MS"), DEFAULT_DURATION_MS)
    if duration_ms <= 0:
        log.warning(
            "DEBOUNCE_DEFAULT_DURATION_MS must be positive, got %d; using %d.",
            duration_ms,
            DEFAULT_DURATION_MS,
        )
        duration_ms = DEFAULT_DURATION_MS
    return DebounceSettings(
        duration_ms=duration_ms,
        debounce_type=_normalise_type_name(env.get("DEBOUNCE_DEFAULT_TYPE")),
        warn_missing_handler=_coerce_bool(env.get("DEBOUNCE_WARN_MISSING_HANDLER"), True),
    )


DEFAULT_SETTINGS = load_settings()
"""Settings read from the environment at import time."""
