"""
Configuration model for gesture driven light control.

Defines the typed configuration tree, the recognized gesture / action /
selector vocabulary and the compiled-in defaults. Loading and merging live
in loader.py, validation in validate.py.
"""

from dataclasses import dataclass, field
from functools import cached_property
from typing import Optional, Tuple

from .devices import Serial

# ============================================================================
# Defaults
# ============================================================================

DEFAULT_TRANSITION_MS = 1

DEFAULT_LOG_LEVEL = "info"

DEFAULT_FRAME_SKIP = 1
DEFAULT_BUFFER_SIZE = 5
DEFAULT_GESTURE_THRESHOLD = 0.1
DEFAULT_SENSOR_EXECUTABLE = "fingertrack"

DEFAULT_MQTT_HOST = "localhost"
DEFAULT_MQTT_PORT = 1883
DEFAULT_TOPIC_PREFIX = "lights"
DEFAULT_DISCOVERY_WAIT_S = 2.0

DEFAULT_SERVER_HOST = "127.0.0.1"
DEFAULT_SERVER_PORT = 8080

# ============================================================================
# Vocabulary
# ============================================================================

LOG_LEVELS = ("debug", "info", "warn", "error")

GESTURE_SWIPE_LEFT = "swipe_left"
GESTURE_SWIPE_RIGHT = "swipe_right"
GESTURE_SWIPE_UP = "swipe_up"
GESTURE_SWIPE_DOWN = "swipe_down"
# Compound gestures
GESTURE_EXPAND = "expand"
GESTURE_CONTRACT = "contract"
GESTURE_PULL_UP = "pull_up"
GESTURE_PUSH_DOWN = "push_down"

PRIMITIVE_GESTURES = (
    GESTURE_SWIPE_LEFT,
    GESTURE_SWIPE_RIGHT,
    GESTURE_SWIPE_UP,
    GESTURE_SWIPE_DOWN,
)
COMPOUND_GESTURES = (
    GESTURE_EXPAND,
    GESTURE_CONTRACT,
    GESTURE_PULL_UP,
    GESTURE_PUSH_DOWN,
)
SUPPORTED_GESTURES = PRIMITIVE_GESTURES + COMPOUND_GESTURES

ACTION_POWER_ON = "power_on"
ACTION_POWER_OFF = "power_off"
ACTION_SET_COLOR = "set_color"

SUPPORTED_ACTIONS = (ACTION_POWER_ON, ACTION_POWER_OFF, ACTION_SET_COLOR)

SELECTOR_ALL = "all"
SELECTOR_LABEL = "label"
SELECTOR_GROUP = "group"
SELECTOR_LOCATION = "location"
SELECTOR_SERIAL = "serial"

FINGER_COUNT = 5

FingerPattern = Tuple[int, ...]


class ConfigError(ValueError):
    """
    Configuration load, parse or validation failure.

    Attributes:
        field: Path of the offending field, e.g. "bindings[2].selector"
    """

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


# ============================================================================
# Model
# ============================================================================

@dataclass(frozen=True)
class GeneralConfig:
    """General settings."""
    transition_ms: int = DEFAULT_TRANSITION_MS


@dataclass(frozen=True)
class LoggingConfig:
    """Log level and optional log file (stdout when unset)."""
    level: str = DEFAULT_LOG_LEVEL
    file: Optional[str] = None


@dataclass(frozen=True)
class TrackingConfig:
    """Settings forwarded to the sensor process."""
    frame_skip: int = DEFAULT_FRAME_SKIP
    buffer_size: int = DEFAULT_BUFFER_SIZE
    gesture_threshold: float = DEFAULT_GESTURE_THRESHOLD
    executable: str = DEFAULT_SENSOR_EXECUTABLE


@dataclass(frozen=True)
class MQTTConfig:
    """MQTT broker connection used to reach the lights."""
    host: str = DEFAULT_MQTT_HOST
    port: int = DEFAULT_MQTT_PORT
    topic_prefix: str = DEFAULT_TOPIC_PREFIX
    discovery_wait_s: float = DEFAULT_DISCOVERY_WAIT_S


@dataclass(frozen=True)
class ServerConfig:
    """Optional HTTP / WebSocket surface for remote sensors and stats."""
    enabled: bool = False
    host: str = DEFAULT_SERVER_HOST
    port: int = DEFAULT_SERVER_PORT
    token: Optional[str] = None


@dataclass(frozen=True)
class HSBK:
    """
    Color parameters for a set_color command.

    Every field is optional; unset fields leave the device's current value
    untouched.

    Attributes:
        hue: 0-360 degrees
        saturation: 0-100 percent
        brightness: 0-100 percent
        kelvin: 1500-9000
    """
    hue: Optional[float] = None
    saturation: Optional[float] = None
    brightness: Optional[float] = None
    kelvin: Optional[int] = None

    def is_empty(self) -> bool:
        return (
            self.hue is None
            and self.saturation is None
            and self.brightness is None
            and self.kelvin is None
        )

    def to_dict(self) -> dict:
        """Return only the fields that are set."""
        d = {
            "hue": self.hue,
            "saturation": self.saturation,
            "brightness": self.brightness,
            "kelvin": self.kelvin,
        }
        return {k: v for k, v in d.items() if v is not None}


@dataclass(frozen=True)
class Selector:
    """Abstract device-targeting expression."""
    type: str = ""
    value: str = ""

    @cached_property
    def serial(self) -> Optional[Serial]:
        """
        Parsed serial for "serial" selectors, None for other types.

        Parsed once and cached on the instance; the validator touches this
        property so malformed serials surface at load time.

        Raises:
            ValueError: If the value is not a well-formed serial
        """
        if self.type != SELECTOR_SERIAL:
            return None
        return Serial.from_hex(self.value)


@dataclass(frozen=True)
class Binding:
    """
    Maps either a gesture or a finger pattern to an action.

    Exactly one of gesture / pattern is set; that discriminator decides which
    lookup table the binding populates.
    """
    gesture: Optional[str] = None
    pattern: Optional[FingerPattern] = None
    action: str = ""
    selector: Selector = field(default_factory=Selector)
    hsbk: Optional[HSBK] = None


@dataclass(frozen=True)
class Config:
    """Root configuration. Read-only once loaded."""
    general: GeneralConfig = field(default_factory=GeneralConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    tracking: TrackingConfig = field(default_factory=TrackingConfig)
    mqtt: MQTTConfig = field(default_factory=MQTTConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    bindings: Tuple[Binding, ...] = ()


def default_config() -> Config:
    """Return the compiled-in defaults."""
    return Config()
