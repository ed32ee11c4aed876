"""
Selector resolution against the current device roster.
"""

from typing import FrozenSet, Iterable

from .config import (
    SELECTOR_ALL,
    SELECTOR_GROUP,
    SELECTOR_LABEL,
    SELECTOR_LOCATION,
    SELECTOR_SERIAL,
    Selector,
)
from .devices import Device, Serial

_ATTRIBUTE_SELECTORS = {
    SELECTOR_LABEL: "label",
    SELECTOR_GROUP: "group",
    SELECTOR_LOCATION: "location",
}


def resolve(selector: Selector, roster: Iterable[Device]) -> FrozenSet[Serial]:
    """
    Resolve a selector to the serials it targets.

    Attribute matches are exact and case-sensitive. A serial selector
    resolves to its own serial whether or not the device is in the roster.
    No match yields an empty set.

    Args:
        selector: Validated selector
        roster: Known devices

    Returns:
        Set of target serials
    """
    if selector.type == SELECTOR_SERIAL:
        return frozenset([selector.serial])
    if selector.type == SELECTOR_ALL:
        return frozenset(d.serial for d in roster)

    attr = _ATTRIBUTE_SELECTORS.get(selector.type)
    if attr is None:
        return frozenset()
    return frozenset(d.serial for d in roster if getattr(d, attr) == selector.value)
