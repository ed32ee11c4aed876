"""
Gesture Lights - Hand gesture driven control of networked lights.

This package reads hand-tracking events from a sensor process and maps
gestures and finger patterns to light commands according to a
user-editable configuration:
- Loads and validates the layered configuration
- Compiles bindings into gesture / finger-pattern lookup tables
- Routes each event to at most one command and publishes it over MQTT
"""

__version__ = "1.0.0"
