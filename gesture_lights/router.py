"""
Event Router - turns hand-tracking events into light commands.

Each event is handled on its own (no state carries across events):
1. Compound two-hand gestures are checked first
2. Otherwise each hand is matched by gesture, then by finger pattern
3. The matched entry's command is sent to its target devices
"""

import json
import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .config import (
    GESTURE_CONTRACT,
    GESTURE_EXPAND,
    GESTURE_PULL_UP,
    GESTURE_PUSH_DOWN,
    GESTURE_SWIPE_DOWN,
    GESTURE_SWIPE_LEFT,
    GESTURE_SWIPE_RIGHT,
    GESTURE_SWIPE_UP,
)
from .devices import LightController, SendError
from .registry import DispatchEntry, RegistryHolder, dispatch

logger = logging.getLogger(__name__)

LEFT_HAND_LABEL = "left"
RIGHT_HAND_LABEL = "right"


@dataclass(frozen=True)
class Hand:
    """One tracked hand in a sensor sample."""
    label: str = ""
    fingers: Tuple[int, ...] = ()
    gesture: Optional[str] = None

    @classmethod
    def from_dict(cls, d: dict) -> "Hand":
        fingers = d.get("fingers") or []
        gesture = d.get("gesture")
        if not isinstance(fingers, list) or not all(
            isinstance(f, int) and not isinstance(f, bool) for f in fingers
        ):
            raise ValueError(f"invalid fingers: {fingers!r}")
        if gesture is not None and not isinstance(gesture, str):
            raise ValueError(f"invalid gesture: {gesture!r}")
        return cls(
            label=str(d.get("label") or ""),
            fingers=tuple(fingers),
            gesture=gesture or None,
        )


@dataclass(frozen=True)
class Event:
    """One sample from the sensor stream."""
    hands: Tuple[Hand, ...] = ()

    @classmethod
    def from_json(cls, data: str) -> "Event":
        """
        Parse one line of sensor output.

        Raises:
            ValueError: If the line is not a well-formed event
            RecursionError: If the JSON is nested too deeply to decode
        """
        d = json.loads(data)
        if not isinstance(d, dict):
            raise ValueError("event must be a JSON object")
        hands = d.get("hands") or []
        if not isinstance(hands, list) or not all(isinstance(h, dict) for h in hands):
            raise ValueError("hands must be a list of objects")
        return cls(hands=tuple(Hand.from_dict(h) for h in hands))


# ============================================================================
# Compound gestures
# ============================================================================

HandIndex = Dict[str, Hand]
CompoundPredicate = Callable[[HandIndex], bool]


def _pair(left_gesture: str, right_gesture: str) -> CompoundPredicate:
    def predicate(hands: HandIndex) -> bool:
        left = hands.get(LEFT_HAND_LABEL)
        right = hands.get(RIGHT_HAND_LABEL)
        return (
            left is not None
            and right is not None
            and left.gesture == left_gesture
            and right.gesture == right_gesture
        )
    return predicate


def default_compound_gestures() -> List[Tuple[str, CompoundPredicate]]:
    """
    Ordered (gesture, predicate) pairs for the two-hand gestures.

    The predicates are mutually exclusive: each requires a distinct pair of
    left/right primitives.
    """
    return [
        (GESTURE_EXPAND, _pair(GESTURE_SWIPE_LEFT, GESTURE_SWIPE_RIGHT)),
        (GESTURE_CONTRACT, _pair(GESTURE_SWIPE_RIGHT, GESTURE_SWIPE_LEFT)),
        (GESTURE_PULL_UP, _pair(GESTURE_SWIPE_UP, GESTURE_SWIPE_UP)),
        (GESTURE_PUSH_DOWN, _pair(GESTURE_SWIPE_DOWN, GESTURE_SWIPE_DOWN)),
    ]


class EventRouter:
    """
    Routes events to at most one command each.

    Events must be fed sequentially; handle_event completes every send for
    an event before returning.
    """

    def __init__(
        self,
        registry: RegistryHolder,
        controller: LightController,
        compound_gestures: Optional[Sequence[Tuple[str, CompoundPredicate]]] = None,
    ):
        """
        Initialize router.

        Args:
            registry: Holder of the current binding registry
            controller: Send capability
            compound_gestures: Ordered compound predicates (defaults to the
                four built-in two-hand gestures)
        """
        self.registry = registry
        self.controller = controller
        self.compound_gestures = list(
            compound_gestures if compound_gestures is not None else default_compound_gestures()
        )

        # Statistics
        self._events = 0
        self._dispatched = 0
        self._unmatched = 0
        self._send_failures = 0

    def handle_line(self, line: str) -> None:
        """Parse and route one line of sensor output, skipping malformed lines."""
        line = line.strip()
        if not line:
            return
        try:
            event = Event.from_json(line)
        except (ValueError, RecursionError) as e:
            logger.debug(f"Skipping malformed event: {e}")
            return
        self.handle_event(event)

    def handle_event(self, event: Event) -> None:
        """Route one event."""
        self._events += 1
        registry = self.registry.current

        hands = {h.label: h for h in event.hands}

        for gesture, predicate in self.compound_gestures:
            if not predicate(hands):
                continue
            entry = registry.gestures.get(gesture)
            if entry is not None:
                logger.debug(f"Compound gesture matched: {gesture}")
                self._dispatch(entry, gesture)
                return
            logger.warning(f"No binding for compound gesture: {gesture}")
            break

        for hand in event.hands:
            if hand.gesture:
                entry = registry.gestures.get(hand.gesture)
                if entry is not None:
                    self._dispatch(entry, hand.gesture)
                    continue

            entry = registry.fingers.get(hand.fingers)
            if entry is not None:
                self._dispatch(entry, f"pattern {list(hand.fingers)}")
                continue

            self._unmatched += 1
            if hand.gesture:
                logger.warning(f"No binding for gesture {hand.gesture} ({hand.label} hand)")
            else:
                logger.warning(
                    f"No binding for finger pattern {list(hand.fingers)} ({hand.label} hand)"
                )

    def _dispatch(self, entry: DispatchEntry, key: str) -> None:
        try:
            sent = dispatch(entry, self.controller)
        except SendError as e:
            self._send_failures += 1
            logger.warning(f"Dispatch for {key} aborted: {e}")
            return
        except Exception as e:
            self._send_failures += 1
            logger.error(f"Unexpected error dispatching {key}: {e}")
            return
        self._dispatched += 1
        logger.debug(f"Dispatched {key} to {sent} device(s)")

    def get_stats(self) -> dict:
        """Get routing statistics."""
        return {
            "events": self._events,
            "dispatched": self._dispatched,
            "unmatched": self._unmatched,
            "send_failures": self._send_failures,
        }
