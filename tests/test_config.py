"""Unit tests for configuration resolution."""

import pytest

from core.config import DebounceSettings
from debouncer.config import (
    ConfigError,
    DebouncerConfig,
    DebounceType,
    PolicyError,
    resolve_config,
)


def test_bare_string_uses_defaults() -> None:
    config = resolve_config("onPress")
    assert config.channels == ("onPress",)
    assert config.duration_ms == 1000
    assert config.debounce_type is DebounceType.LEADING_EDGE


def test_mapping_is_normalised_and_deduplicated() -> None:
    config = resolve_config(
        {
            "propTypesToDebounce": ["onPress", "onLongPress", "onPress"],
            "duration": 250,
            "type": "trailing",
        }
    )
    assert config.channels == ("onPress", "onLongPress")
    assert config.duration_ms == 250
    assert config.debounce_type is DebounceType.TRAILING_EDGE
    assert config.policy_for("onLongPress").duration_s == pytest.approx(0.25)


def test_channels_alias_and_member_names_are_accepted() -> None:
    config = resolve_config({"channels": ("save",), "type": "THROTTLE"})
    assert config.channels == ("save",)
    assert config.debounce_type is DebounceType.THROTTLE


def test_resolved_config_passes_through() -> None:
    config = resolve_config("save")
    assert resolve_config(config) is config


def test_settings_supply_defaults() -> None:
    settings = DebounceSettings(duration_ms=40, debounce_type="throttle")
    config = resolve_config({"propTypesToDebounce": "save"}, settings=settings)
    assert config.duration_ms == 40
    assert config.debounce_type is DebounceType.THROTTLE


@pytest.mark.parametrize(
    "raw",
    [
        {},
        {"duration": 100},
        {"propTypesToDebounce": None},
        {"propTypesToDebounce": ""},
        {"propTypesToDebounce": []},
    ],
)
def test_missing_channels_is_rejected(raw) -> None:
    with pytest.raises(ConfigError, match="missing required field") as info:
        resolve_config(raw)
    assert info.value.key == "propTypesToDebounce"


def test_none_config_is_rejected() -> None:
    with pytest.raises(ConfigError, match="config is required"):
        resolve_config(None)


@pytest.mark.parametrize("raw", [42, 3.5, ["onPress"], object()])
def test_invalid_config_type_is_rejected(raw) -> None:
    with pytest.raises(ConfigError, match="invalid config type"):
        resolve_config(raw)


@pytest.mark.parametrize("channels", [[1], ["ok", ""], {"a": 1}, 7])
def test_invalid_channel_names_are_rejected(channels) -> None:
    with pytest.raises(ConfigError):
        resolve_config({"propTypesToDebounce": channels})


@pytest.mark.parametrize("duration", [0, -10, "100", True])
def test_invalid_duration_is_rejected(duration) -> None:
    with pytest.raises(ConfigError) as info:
        resolve_config({"propTypesToDebounce": "save", "duration": duration})
    assert info.value.key == "duration"


def test_unknown_type_raises_policy_error() -> None:
    with pytest.raises(PolicyError, match="unrecognized debounce type"):
        resolve_config({"propTypesToDebounce": "save", "type": "bogus"})


def test_overrides_resolve_per_channel() -> None:
    config = resolve_config(
        {
            "propTypesToDebounce": ["save", "search"],
            "duration": 500,
            "overrides": {"search": {"type": "trailing", "duration": 150}},
        }
    )
    assert config.policy_for("save").duration_ms == 500
    assert config.policy_for("save").debounce_type is DebounceType.LEADING_EDGE
    search = config.policy_for("search")
    assert search.duration_ms == 150
    assert search.debounce_type is DebounceType.TRAILING_EDGE


def test_override_shorthand_keeps_shared_duration() -> None:
    config = resolve_config(
        {"propTypesToDebounce": ["save"], "duration": 300, "overrides": {"save": "throttle"}}
    )
    assert config.policy_for("save").duration_ms == 300
    assert config.policy_for("save").debounce_type is DebounceType.THROTTLE


@pytest.mark.parametrize(
    "overrides, error",
    [
        ({"other": {"duration": 10}}, ConfigError),
        ({"save": 10}, ConfigError),
        (["save"], ConfigError),
        ({"save": {"type": "sideways"}}, PolicyError),
    ],
)
def test_invalid_overrides_are_rejected(overrides, error) -> None:
    with pytest.raises(error):
        resolve_config({"propTypesToDebounce": "save", "overrides": overrides})


def test_config_is_immutable() -> None:
    config = resolve_config({"propTypesToDebounce": "save", "overrides": {"save": "trailing"}})
    assert isinstance(config, DebouncerConfig)
    with pytest.raises(AttributeError):
        config.duration_ms = 5  # type: ignore[misc]
    with pytest.raises(TypeError):
        config.overrides["save"] = None  # type: ignore[index]
