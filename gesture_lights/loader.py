"""
Configuration loading and merging.

Handles:
- Creating the user config file from defaults on first run
- Parsing the user YAML file into a sparse overlay
- Field-by-field merge of the overlay onto the defaults
- Validation of the merged result
- Rewriting the user file when the merged config adds fields
"""

import dataclasses
import logging
import math
import os
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Union

import yaml

from .config import (
    HSBK,
    Binding,
    Config,
    ConfigError,
    default_config,
    Selector,
)
from .validate import validate_config

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "GESTURE_LIGHTS_CONFIG"

Parser = Callable[[Any, str], Any]


def default_config_path() -> Path:
    """Config path from $GESTURE_LIGHTS_CONFIG or ~/.gesture-lights/config.yaml."""
    env = os.environ.get(CONFIG_ENV_VAR)
    if env:
        return Path(env).expanduser()
    return Path.home() / ".gesture-lights" / "config.yaml"


def load_config(path: Union[str, Path]) -> Config:
    """
    Load the user configuration, layered over the compiled-in defaults.

    If the file does not exist it is created with the defaults so the user
    can edit it.

    Args:
        path: Location of the user YAML file

    Returns:
        Merged and validated configuration

    Raises:
        ConfigError: If the file cannot be read, parsed or validated
    """
    path = Path(path)
    base = default_config()

    if not path.exists():
        logger.info(f"No config found, writing defaults to {path}")
        write_config_file(base, path)
        return base

    overlay = read_config_file(path)
    cfg = merge(base, overlay)
    validate_config(cfg)

    # Upgrades can introduce new fields; persist them so the user sees them.
    if overlay != config_to_dict(cfg):
        logger.info("Updating user config...")
        write_config_file(cfg, path)

    return cfg


def read_config_file(path: Path) -> Optional[dict]:
    try:
        text = path.read_text()
    except OSError as e:
        raise ConfigError(f"failed to read config file {path}: {e}") from e

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(f"failed to parse config file {path}: {e}") from e

    if data is not None and not isinstance(data, dict):
        raise ConfigError(f"config file {path} must contain a mapping")
    return data


def write_config_file(cfg: Config, path: Path) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            yaml.safe_dump(config_to_dict(cfg), f, sort_keys=False)
    except OSError as e:
        raise ConfigError(f"failed to write config file {path}: {e}") from e


# ============================================================================
# Serialization
# ============================================================================

def config_to_dict(cfg: Config) -> dict:
    """Render a Config as plain YAML-compatible data."""
    return {
        "general": dataclasses.asdict(cfg.general),
        "logging": dataclasses.asdict(cfg.logging),
        "tracking": dataclasses.asdict(cfg.tracking),
        "mqtt": dataclasses.asdict(cfg.mqtt),
        "server": dataclasses.asdict(cfg.server),
        "bindings": [_binding_to_dict(b) for b in cfg.bindings],
    }


def _binding_to_dict(b: Binding) -> dict:
    d: Dict[str, Any] = {}
    if b.gesture is not None:
        d["gesture"] = b.gesture
    if b.pattern is not None:
        d["pattern"] = list(b.pattern)
    d["action"] = b.action
    d["selector"] = {"type": b.selector.type}
    if b.selector.value:
        d["selector"]["value"] = b.selector.value
    if b.hsbk is not None:
        d["hsbk"] = b.hsbk.to_dict()
    return d


# ============================================================================
# Field parsers
# ============================================================================

def _int(value: Any, path: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"{path} must be an integer", path)
    return value


def _float(value: Any, path: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"{path} must be a number", path)
    try:
        number = float(value)
    except OverflowError:
        number = math.inf
    if not math.isfinite(number):
        raise ConfigError(f"{path} must be a finite number", path)
    return number


def _str(value: Any, path: str) -> str:
    if not isinstance(value, str):
        raise ConfigError(f"{path} must be a string", path)
    return value


def _bool(value: Any, path: str) -> bool:
    if not isinstance(value, bool):
        raise ConfigError(f"{path} must be true or false", path)
    return value


def _pattern(value: Any, path: str) -> tuple:
    if not isinstance(value, list):
        raise ConfigError(f"{path} must be a list", path)
    return tuple(_int(v, f"{path}[{i}]") for i, v in enumerate(value))


_GENERAL_FIELDS = {"transition_ms": _int}
_LOGGING_FIELDS = {"level": _str, "file": _str}
_TRACKING_FIELDS = {
    "frame_skip": _int,
    "buffer_size": _int,
    "gesture_threshold": _float,
    "executable": _str,
}
_MQTT_FIELDS = {
    "host": _str,
    "port": _int,
    "topic_prefix": _str,
    "discovery_wait_s": _float,
}
_SERVER_FIELDS = {"enabled": _bool, "host": _str, "port": _int, "token": _str}
_SELECTOR_FIELDS = {"type": _str, "value": _str}
_HSBK_FIELDS = {"hue": _float, "saturation": _float, "brightness": _float, "kelvin": _int}


def _check_mapping(overlay: Any, path: str, parsers: Dict[str, Parser]) -> dict:
    if not isinstance(overlay, dict):
        raise ConfigError(f"{path} must be a mapping", path)
    for key in overlay:
        if key not in parsers:
            raise ConfigError(f"{path}.{key}: unknown field", f"{path}.{key}")
    return overlay


def _merge_fields(base: Any, overlay: Any, path: str, parsers: Dict[str, Parser]) -> Any:
    """
    Replace each field of base that is present (and not null) in overlay.

    Args:
        base: Frozen dataclass holding the current values
        overlay: Parsed YAML mapping, or None
        path: Dotted path used in error messages
        parsers: Field name -> parser for every field the section accepts

    Returns:
        New dataclass instance with the overlay applied
    """
    if overlay is None:
        return base
    overlay = _check_mapping(overlay, path, parsers)

    changes = {}
    for key, parse in parsers.items():
        value = overlay.get(key)
        if value is not None:
            changes[key] = parse(value, f"{path}.{key}")
    return dataclasses.replace(base, **changes)


def _parse_binding(data: Any, path: str) -> Binding:
    data = _check_mapping(
        data, path, {"gesture": _str, "pattern": _pattern, "action": _str,
                     "selector": None, "hsbk": None}
    )
    gesture = data.get("gesture")
    pattern = data.get("pattern")
    action = data.get("action")
    hsbk = data.get("hsbk")

    return Binding(
        gesture=_str(gesture, f"{path}.gesture") if gesture is not None else None,
        pattern=_pattern(pattern, f"{path}.pattern") if pattern is not None else None,
        action=_str(action, f"{path}.action") if action is not None else "",
        selector=_merge_fields(
            Selector(), data.get("selector"), f"{path}.selector", _SELECTOR_FIELDS
        ),
        hsbk=_merge_fields(HSBK(), hsbk, f"{path}.hsbk", _HSBK_FIELDS)
        if hsbk is not None else None,
    )


def merge(base: Config, overlay: Optional[dict]) -> Config:
    """
    Merge a sparse user overlay onto a base configuration.

    Present scalars replace the base value, nested sections merge field by
    field and a present bindings list replaces the base list wholesale.

    Raises:
        ConfigError: On unknown keys or wrongly typed values
    """
    if not overlay:
        return base
    overlay = _check_mapping(
        overlay,
        "config",
        {"general": None, "logging": None, "tracking": None,
         "mqtt": None, "server": None, "bindings": None},
    )

    bindings = base.bindings
    raw_bindings = overlay.get("bindings")
    if raw_bindings is not None:
        if not isinstance(raw_bindings, list):
            raise ConfigError("bindings must be a list", "bindings")
        bindings = tuple(
            _parse_binding(b, f"bindings[{i}]") for i, b in enumerate(raw_bindings)
        )

    return Config(
        general=_merge_fields(base.general, overlay.get("general"), "general", _GENERAL_FIELDS),
        logging=_merge_fields(base.logging, overlay.get("logging"), "logging", _LOGGING_FIELDS),
        tracking=_merge_fields(
            base.tracking, overlay.get("tracking"), "tracking", _TRACKING_FIELDS
        ),
        mqtt=_merge_fields(base.mqtt, overlay.get("mqtt"), "mqtt", _MQTT_FIELDS),
        server=_merge_fields(base.server, overlay.get("server"), "server", _SERVER_FIELDS),
        bindings=bindings,
    )
