"""
Device types shared by the routing engine and the light controller.

Defines the device serial, the read-only device snapshot used for selector
resolution and the capability interface the router sends commands through.
"""

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .commands import Command

SERIAL_BYTES = 6

_SERIAL_RE = re.compile(r"[0-9a-fA-F]{12}")


class SendError(RuntimeError):
    """Raised by a light controller when a command cannot be delivered."""


@dataclass(frozen=True, order=True)
class Serial:
    """6-byte device address."""
    value: bytes

    @classmethod
    def from_hex(cls, s: str) -> "Serial":
        """
        Parse a serial from its 12 character hex representation.

        Args:
            s: Hex string, e.g. "d073d5000000"

        Returns:
            Serial instance

        Raises:
            ValueError: If the string is not exactly 12 hex characters
        """
        if len(s) != SERIAL_BYTES * 2:
            raise ValueError(
                f"expected {SERIAL_BYTES * 2} hex chars ({SERIAL_BYTES} bytes), got {len(s)}"
            )
        if not _SERIAL_RE.fullmatch(s):
            raise ValueError(f'invalid hex in serial "{s}"')
        return cls(bytes.fromhex(s))

    def __str__(self) -> str:
        return self.value.hex()


@dataclass(frozen=True)
class Device:
    """Snapshot of a controllable device and its grouping attributes."""
    serial: Serial
    label: str = ""
    group: str = ""
    location: str = ""


@runtime_checkable
class LightController(Protocol):
    """Capability interface for sending commands to lights."""

    def send(self, serial: Serial, command: "Command") -> None:
        """Send a command to one device. Raises SendError on failure."""
        ...

    def list_devices(self) -> List[Device]:
        """Return the currently known devices."""
        ...
