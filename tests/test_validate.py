"""Tests for configuration validation."""

import pytest

from gesture_lights.config import (
    HSBK,
    Binding,
    Config,
    ConfigError,
    GeneralConfig,
    LoggingConfig,
    MQTTConfig,
    Selector,
    TrackingConfig,
)
from gesture_lights.devices import Serial
from gesture_lights.validate import validate_config

TRACKING = TrackingConfig(frame_skip=1, buffer_size=5, gesture_threshold=0.1)
HAND_CLOSED = (0, 0, 0, 0, 0)
ALL = Selector(type="all")


def with_bindings(*bindings):
    return Config(tracking=TRACKING, bindings=tuple(bindings))


@pytest.mark.parametrize(
    "cfg, want_err, want_field",
    [
        (Config(general=GeneralConfig(transition_ms=0)),
         "general.transition_ms must be > 0", "general.transition_ms"),
        (Config(logging=LoggingConfig(level="panic")),
         "logging.level must be one of debug, info, warn, error", "logging.level"),
        (Config(tracking=TrackingConfig(frame_skip=0)),
         "tracking.frame_skip must be > 0", "tracking.frame_skip"),
        (Config(tracking=TrackingConfig(buffer_size=-1)),
         "tracking.buffer_size must be > 0", "tracking.buffer_size"),
        (Config(tracking=TrackingConfig(gesture_threshold=0)),
         "tracking.gesture_threshold must be > 0.0", "tracking.gesture_threshold"),
        (Config(tracking=TrackingConfig(gesture_threshold=float("nan"))),
         "tracking.gesture_threshold must be > 0.0", "tracking.gesture_threshold"),
        (Config(tracking=TrackingConfig(gesture_threshold=1.2)),
         "tracking.gesture_threshold must be <= 1.0", "tracking.gesture_threshold"),
        (Config(mqtt=MQTTConfig(port=0)),
         "mqtt.port must be between 1 and 65535", "mqtt.port"),
        (with_bindings(Binding(gesture="swoop")),
         "bindings[0]: invalid gesture: swoop", "bindings[0].gesture"),
        (with_bindings(Binding(gesture="swipe_left", selector=Selector(type="serial"))),
         "bindings[0]: invalid serial value: expected 12 hex chars (6 bytes), got 0",
         "bindings[0].selector"),
        (with_bindings(Binding(gesture="swipe_left", selector=Selector(type="serial", value="zz73d5000000"))),
         'bindings[0]: invalid serial value: invalid hex in serial "zz73d5000000"',
         "bindings[0].selector"),
        (with_bindings(Binding(gesture="swipe_left", selector=Selector(type="serial", value="d073d5 0000 "))),
         'bindings[0]: invalid serial value: invalid hex in serial "d073d5 0000 "',
         "bindings[0].selector"),
        (with_bindings(Binding(gesture="swipe_left", selector=Selector(type="serial", value=" d073d50000 "))),
         'bindings[0]: invalid serial value: invalid hex in serial " d073d50000 "',
         "bindings[0].selector"),
        (with_bindings(Binding(gesture="swipe_left", selector=Selector(type="label"))),
         'bindings[0]: missing selector value for type "label"', "bindings[0].selector"),
        (with_bindings(Binding(gesture="swipe_left", selector=Selector(type="room", value="x"))),
         'bindings[0]: unknown selector type "room"', "bindings[0].selector"),
        (with_bindings(Binding(gesture="swipe_left", selector=ALL)),
         "bindings[0]: action is required", "bindings[0].action"),
        (with_bindings(Binding(gesture="swipe_left", selector=ALL, action="Unknown")),
         "bindings[0]: invalid action: Unknown", "bindings[0].action"),
        (with_bindings(Binding(gesture="swipe_left", selector=ALL, action="set_color")),
         "bindings[0]: hsbk must be set for action set_color", "bindings[0].hsbk"),
        (with_bindings(Binding(gesture="swipe_left", selector=ALL, action="set_color", hsbk=HSBK())),
         "bindings[0]: hsbk must be set for action set_color", "bindings[0].hsbk"),
        (with_bindings(Binding(gesture="swipe_left", selector=ALL, action="power_on", hsbk=HSBK(kelvin=1000))),
         "bindings[0]: invalid value for kelvin [1000], must be 1500-9000", "bindings[0].hsbk.kelvin"),
        (with_bindings(Binding(pattern=(1, 2, 3, 4, 5))),
         "bindings[0]: pattern should only contain 0s & 1s", "bindings[0].pattern"),
        (with_bindings(Binding(pattern=(1, 1, 1))),
         "bindings[0]: pattern must have 5 elements", "bindings[0].pattern"),
        (with_bindings(Binding(pattern=HAND_CLOSED, selector=Selector(type="serial"))),
         "bindings[0]: invalid serial value: expected 12 hex chars (6 bytes), got 0",
         "bindings[0].selector"),
        (with_bindings(Binding(pattern=HAND_CLOSED, selector=ALL, action="set_color", hsbk=HSBK())),
         "bindings[0]: hsbk must be set for action set_color", "bindings[0].hsbk"),
        (with_bindings(Binding(selector=ALL, action="power_on")),
         "bindings[0]: exactly one of gesture or pattern must be set", "bindings[0]"),
        (with_bindings(Binding(gesture="swipe_up", pattern=HAND_CLOSED, selector=ALL, action="power_on")),
         "bindings[0]: exactly one of gesture or pattern must be set", "bindings[0]"),
        (with_bindings(
            Binding(gesture="swipe_up", selector=ALL, action="power_on"),
            Binding(gesture="swipe_up", selector=ALL, action="set_color", hsbk=HSBK(hue=400.0)),
        ), "bindings[1]: invalid value for hue [400.0], must be 0-360", "bindings[1].hsbk.hue"),
    ],
)
def test_validate_errors(cfg, want_err, want_field):
    with pytest.raises(ConfigError) as exc_info:
        validate_config(cfg)
    assert str(exc_info.value) == want_err
    assert exc_info.value.field == want_field


def test_first_failure_wins():
    cfg = Config(
        general=GeneralConfig(transition_ms=0),
        logging=LoggingConfig(level="panic"),
        bindings=(Binding(gesture="swoop"),),
    )
    with pytest.raises(ConfigError, match="general.transition_ms"):
        validate_config(cfg)


def test_valid_config_parses_serial():
    selector = Selector(type="serial", value="d073d5000000")
    cfg = with_bindings(
        Binding(gesture="swipe_left", selector=ALL, action="power_off"),
        Binding(pattern=HAND_CLOSED, selector=selector, action="set_color",
                hsbk=HSBK(hue=180.0, saturation=100.0)),
        Binding(gesture="expand", selector=Selector(type="group", value="Bedroom"), action="power_on"),
    )
    validate_config(cfg)

    assert cfg.bindings[1].selector.serial == Serial(bytes.fromhex("d073d5000000"))
    assert cfg.bindings[0].selector.serial is None


def test_defaults_are_valid():
    validate_config(Config())
