"""
Light commands built from binding actions.
"""

import json
from dataclasses import dataclass
from typing import Optional

from .config import ACTION_POWER_OFF, ACTION_POWER_ON, ACTION_SET_COLOR, HSBK


@dataclass(frozen=True)
class Command:
    """
    Ready-to-send light command.

    Attributes:
        action: One of power_on, power_off, set_color
        hsbk: Color to apply (set_color only)
        duration_ms: Color transition duration (set_color only)
    """
    action: str
    hsbk: Optional[HSBK] = None
    duration_ms: int = 0

    def to_payload(self) -> dict:
        if self.action == ACTION_POWER_ON:
            return {"power": "on"}
        if self.action == ACTION_POWER_OFF:
            return {"power": "off"}
        return {
            "color": self.hsbk.to_dict() if self.hsbk else {},
            "duration_ms": self.duration_ms,
        }

    def to_json(self) -> str:
        """Serialize to JSON string."""
        return json.dumps(self.to_payload())


POWER_ON = Command(ACTION_POWER_ON)
POWER_OFF = Command(ACTION_POWER_OFF)


def build_command(action: str, hsbk: Optional[HSBK], transition_ms: int) -> Optional[Command]:
    """
    Build the command for a binding action.

    Args:
        action: Binding action
        hsbk: Binding color, used by set_color
        transition_ms: Default transition baked into set_color commands

    Returns:
        Command, or None for an unrecognized action
    """
    if action == ACTION_POWER_ON:
        return POWER_ON
    if action == ACTION_POWER_OFF:
        return POWER_OFF
    if action == ACTION_SET_COLOR:
        return Command(ACTION_SET_COLOR, hsbk=hsbk, duration_ms=transition_ms)
    return None
