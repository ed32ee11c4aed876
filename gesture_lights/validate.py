"""
Structural and semantic validation of a merged configuration.

Checks run in a fixed order and the first failure wins; each failure is
raised as a ConfigError naming the offending field.
"""

from typing import Optional

from .config import (
    ACTION_SET_COLOR,
    FINGER_COUNT,
    HSBK,
    LOG_LEVELS,
    SELECTOR_ALL,
    SELECTOR_GROUP,
    SELECTOR_LABEL,
    SELECTOR_LOCATION,
    SELECTOR_SERIAL,
    SUPPORTED_ACTIONS,
    SUPPORTED_GESTURES,
    Binding,
    Config,
    ConfigError,
    Selector,
    TrackingConfig,
)

# (field, lower, upper) for each HSBK component
_HSBK_RANGES = (
    ("hue", 0, 360),
    ("saturation", 0, 100),
    ("brightness", 0, 100),
    ("kelvin", 1500, 9000),
)


def validate_config(cfg: Config) -> None:
    """
    Validate a configuration.

    Args:
        cfg: Configuration to check

    Raises:
        ConfigError: On the first violated constraint
    """
    if cfg.general.transition_ms <= 0:
        raise ConfigError("general.transition_ms must be > 0", "general.transition_ms")

    if cfg.logging.level not in LOG_LEVELS:
        raise ConfigError(
            f"logging.level must be one of {', '.join(LOG_LEVELS)}", "logging.level"
        )

    validate_tracking(cfg.tracking)

    for name, port in (("mqtt.port", cfg.mqtt.port), ("server.port", cfg.server.port)):
        if not 1 <= port <= 65535:
            raise ConfigError(f"{name} must be between 1 and 65535", name)

    for i, binding in enumerate(cfg.bindings):
        path = f"bindings[{i}]"
        try:
            validate_binding(binding)
        except ConfigError as e:
            field = f"{path}.{e.field}" if e.field else path
            raise ConfigError(f"{path}: {e}", field) from e


def validate_tracking(t: TrackingConfig) -> None:
    if t.frame_skip <= 0:
        raise ConfigError("tracking.frame_skip must be > 0", "tracking.frame_skip")
    if t.buffer_size <= 0:
        raise ConfigError("tracking.buffer_size must be > 0", "tracking.buffer_size")
    if not t.gesture_threshold > 0:
        raise ConfigError(
            "tracking.gesture_threshold must be > 0.0", "tracking.gesture_threshold"
        )
    elif t.gesture_threshold > 1:
        raise ConfigError(
            "tracking.gesture_threshold must be <= 1.0", "tracking.gesture_threshold"
        )


def validate_binding(b: Binding) -> None:
    """Validate a single binding. Field paths are relative to the binding."""
    if (b.gesture is None) == (b.pattern is None):
        raise ConfigError("exactly one of gesture or pattern must be set")

    if b.gesture is not None and b.gesture not in SUPPORTED_GESTURES:
        raise ConfigError(f"invalid gesture: {b.gesture}", "gesture")

    if b.pattern is not None:
        if len(b.pattern) != FINGER_COUNT:
            raise ConfigError(f"pattern must have {FINGER_COUNT} elements", "pattern")
        if any(p not in (0, 1) for p in b.pattern):
            raise ConfigError("pattern should only contain 0s & 1s", "pattern")

    validate_selector(b.selector)
    validate_action(b.action, b.hsbk)


def validate_selector(s: Selector) -> None:
    if s.type == SELECTOR_ALL:
        return
    if s.type in (SELECTOR_LABEL, SELECTOR_GROUP, SELECTOR_LOCATION):
        if not s.value:
            raise ConfigError(f'missing selector value for type "{s.type}"', "selector")
    elif s.type == SELECTOR_SERIAL:
        try:
            s.serial
        except ValueError as e:
            raise ConfigError(f"invalid serial value: {e}", "selector") from e
    else:
        raise ConfigError(f'unknown selector type "{s.type}"', "selector")


def validate_hsbk(hsbk: Optional[HSBK]) -> None:
    if hsbk is None:
        return
    for name, lo, hi in _HSBK_RANGES:
        v = getattr(hsbk, name)
        if v is not None and not lo <= v <= hi:
            raise ConfigError(
                f"invalid value for {name} [{v}], must be {lo}-{hi}", f"hsbk.{name}"
            )


def validate_action(action: str, hsbk: Optional[HSBK]) -> None:
    """
    Validate an action and its arguments.

    HSBK is range-checked whenever present and is required (non-empty) for
    set_color.
    """
    if not action:
        raise ConfigError("action is required", "action")
    if action not in SUPPORTED_ACTIONS:
        raise ConfigError(f"invalid action: {action}", "action")

    validate_hsbk(hsbk)

    if action == ACTION_SET_COLOR and (hsbk is None or hsbk.is_empty()):
        raise ConfigError(f"hsbk must be set for action {action}", "hsbk")
