"""Tests for selector resolution."""

import pytest

from gesture_lights.config import Selector
from gesture_lights.devices import Device, Serial
from gesture_lights.selector import resolve

S0 = Serial.from_hex("d073d5000000")
S1 = Serial.from_hex("d073d5000001")

ROSTER = [
    Device(S0, label="label0", group="group0", location="locA"),
    Device(S1, label="label1", group="group1", location="locB"),
]


@pytest.mark.parametrize(
    "selector, want",
    [
        (Selector(type="all"), {S0, S1}),
        (Selector(type="label", value="label1"), {S1}),
        (Selector(type="group", value="group0"), {S0}),
        (Selector(type="location", value="locB"), {S1}),
        (Selector(type="group", value="Group0"), set()),
        (Selector(type="label", value="missing"), set()),
        (Selector(type="serial", value="d073d5000001"), {S1}),
    ],
)
def test_resolve(selector, want):
    assert resolve(selector, ROSTER) == want


def test_serial_ignores_roster():
    selector = Selector(type="serial", value="d073d5000001")
    assert resolve(selector, []) == {S1}
    assert resolve(selector, ROSTER[:1]) == {S1}


def test_all_with_empty_roster():
    assert resolve(Selector(type="all"), []) == frozenset()


def test_serial_round_trips_through_hex():
    assert str(Serial.from_hex("D073D50000AB")) == "d073d50000ab"


@pytest.mark.parametrize("value", ["d073d5 0000 ", " d073d50000 ", "d073d5\t00000", "d073d500000\n"])
def test_serial_rejects_whitespace(value):
    with pytest.raises(ValueError, match="invalid hex"):
        Serial.from_hex(value)
