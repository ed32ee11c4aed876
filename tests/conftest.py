"""Shared fixtures for gesture_lights tests."""

from collections import defaultdict
from typing import Optional

import pytest

from gesture_lights.config import Config
from gesture_lights.devices import Device, SendError, Serial
from gesture_lights.registry import RegistryHolder
from gesture_lights.router import EventRouter

SERIAL_0 = Serial.from_hex("d073d5000000")
SERIAL_1 = Serial.from_hex("d073d5000001")
SERIAL_2 = Serial.from_hex("d073d5000002")
SERIAL_3 = Serial.from_hex("d073d5000003")

LABEL_0 = "Desk light"
GROUP_1 = "Bedroom"
LOCATION_0 = "Home"

DEVICES = [
    Device(SERIAL_0, label=LABEL_0, group="Patio", location="Office"),
    Device(SERIAL_1, label="Night light", group=GROUP_1, location=LOCATION_0),
    Device(SERIAL_2, label="Kids light", group=GROUP_1, location=LOCATION_0),
    Device(SERIAL_3, label="Door light", group="Veranda", location=LOCATION_0),
]


class FakeController:
    """Records sends instead of talking to the network."""

    def __init__(self, devices=(), fail_on: Optional[Serial] = None):
        self.devices = list(devices)
        self.fail_on = fail_on
        self.sent = []

    def send(self, serial, command):
        if serial == self.fail_on:
            raise SendError(f"device {serial} unreachable")
        self.sent.append((serial, command))

    def list_devices(self):
        return list(self.devices)

    def messages(self) -> dict:
        out = defaultdict(list)
        for serial, command in self.sent:
            out[serial].append(command)
        return dict(out)


def make_router(cfg: Config, controller: FakeController) -> EventRouter:
    holder = RegistryHolder(cfg)
    holder.rebuild(controller.list_devices())
    return EventRouter(holder, controller)


@pytest.fixture
def controller():
    return FakeController(DEVICES)
