"""
Binding Registry - compiles bindings into lookup tables.

Each binding is resolved once against the device roster into a dispatch
entry (target serials + pre-built command), keyed by gesture or by finger
pattern. Registries are immutable snapshots; a roster or config change
builds a new one which RegistryHolder swaps in atomically.
"""

import logging
import threading
from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Iterable, Mapping, Optional, Tuple

from .commands import Command, build_command
from .config import Config, FingerPattern
from .devices import Device, LightController, Serial
from .selector import resolve

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DispatchEntry:
    """
    Resolved binding.

    An entry with no targets (or no command) is still a registered binding;
    dispatching it is a no-op.
    """
    targets: Tuple[Serial, ...]
    command: Optional[Command]


@dataclass(frozen=True)
class BindingRegistry:
    """Gesture and finger-pattern lookup tables."""
    gestures: Mapping[str, DispatchEntry]
    fingers: Mapping[FingerPattern, DispatchEntry]

    @classmethod
    def empty(cls) -> "BindingRegistry":
        return cls(MappingProxyType({}), MappingProxyType({}))


def build_registry(cfg: Config, roster: Iterable[Device]) -> BindingRegistry:
    """
    Build lookup tables from the configured bindings.

    Bindings are processed in declaration order; a later binding for the same
    gesture or pattern replaces an earlier one.

    Args:
        cfg: Validated configuration
        roster: Devices known at build time

    Returns:
        New BindingRegistry
    """
    roster = list(roster)
    gestures = {}
    fingers = {}

    for binding in cfg.bindings:
        command = build_command(binding.action, binding.hsbk, cfg.general.transition_ms)
        targets: Tuple[Serial, ...] = ()
        if command is not None:
            targets = tuple(sorted(resolve(binding.selector, roster)))

        entry = DispatchEntry(targets=targets, command=command)
        if binding.gesture is not None:
            gestures[binding.gesture] = entry
        else:
            fingers[tuple(binding.pattern)] = entry

    logger.debug(
        f"Built registry: {len(gestures)} gesture(s), {len(fingers)} finger pattern(s), "
        f"{len(roster)} device(s)"
    )
    return BindingRegistry(MappingProxyType(gestures), MappingProxyType(fingers))


def dispatch(entry: DispatchEntry, controller: LightController) -> int:
    """
    Send an entry's command to each of its targets in order.

    Stops at the first failure; devices already commanded are not rolled back.

    Args:
        entry: Resolved binding
        controller: Send capability

    Returns:
        Number of devices the command was sent to

    Raises:
        SendError: From the first failing send
    """
    if entry.command is None:
        return 0
    sent = 0
    for serial in entry.targets:
        controller.send(serial, entry.command)
        sent += 1
    return sent


class RegistryHolder:
    """
    Holds the current registry and swaps in rebuilt ones.

    A single writer lock serializes rebuilds; readers take the `current`
    reference once and use that snapshot for a whole event. When a
    roster_source is given, the roster is read inside the lock, so the last
    rebuild to run always reflects the latest roster.
    """

    def __init__(
        self,
        cfg: Config,
        registry: Optional[BindingRegistry] = None,
        roster_source: Optional[Callable[[], Iterable[Device]]] = None,
    ):
        self.cfg = cfg
        self.roster_source = roster_source
        self._registry = registry if registry is not None else BindingRegistry.empty()
        self._lock = threading.Lock()
        self._builds = 0

    @property
    def current(self) -> BindingRegistry:
        return self._registry

    def rebuild(self, roster: Optional[Iterable[Device]] = None) -> BindingRegistry:
        """
        Build a registry and make it current.

        Args:
            roster: Devices to resolve against; read from roster_source
                under the writer lock when omitted

        Returns:
            The new registry
        """
        with self._lock:
            if roster is None:
                if self.roster_source is None:
                    raise ValueError("rebuild needs a roster or a roster_source")
                roster = self.roster_source()
            registry = build_registry(self.cfg, roster)
            self._registry = registry
            self._builds += 1
            builds = self._builds
        logger.info(f"Binding registry rebuilt (build #{builds})")
        return registry

    @property
    def builds(self) -> int:
        return self._builds
