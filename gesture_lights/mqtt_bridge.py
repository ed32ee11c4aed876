"""
MQTT Bridge for light control.

Handles:
- Publishing light commands to <prefix>/<serial>/set
- Subscribing to <prefix>/+/state to maintain the device roster
- Notifying the gateway when the roster changes
"""

import json
import logging
import threading
import time
from typing import Callable, Dict, List, Optional

import paho.mqtt.client as mqtt

from .commands import Command
from .devices import Device, SendError, Serial

logger = logging.getLogger(__name__)


class MQTTLightController:
    """
    MQTT light controller.

    Implements the LightController interface: commands are published as JSON
    to one topic per device, and the roster is built from the retained state
    each device (or its bridge) publishes.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 1883,
        topic_prefix: str = "lights",
        on_roster_change: Optional[Callable[[List[Device]], None]] = None,
    ):
        """
        Initialize MQTT light controller.

        Args:
            host: MQTT broker host
            port: MQTT broker port
            topic_prefix: Root of the per-device command/state topics
            on_roster_change: Callback invoked with the new roster whenever a
                device appears, disappears or changes attributes
        """
        self.host = host
        self.port = port
        self.topic_prefix = topic_prefix.rstrip("/")
        self.on_roster_change = on_roster_change

        # MQTT client
        self._client: Optional[mqtt.Client] = None
        self._connected = False
        self._running = False

        # Roster, written from the MQTT network thread
        self._devices: Dict[Serial, Device] = {}
        self._devices_lock = threading.Lock()

        # Statistics
        self._messages_sent = 0
        self._messages_received = 0
        self._send_failures = 0
        self._last_send_time: Optional[float] = None

    @property
    def state_topic(self) -> str:
        return f"{self.topic_prefix}/+/state"

    def command_topic(self, serial: Serial) -> str:
        return f"{self.topic_prefix}/{serial}/set"

    def start(self) -> bool:
        """
        Connect to the broker and start the network loop.

        Returns:
            True if connection successful, False otherwise
        """
        if self._running:
            return True

        try:
            client_id = f"gesture_lights_{int(time.time())}"
            self._client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2, client_id=client_id)

            self._client.on_connect = self._on_connect
            self._client.on_disconnect = self._on_disconnect
            self._client.on_message = self._on_message

            logger.info(f"Connecting to MQTT broker at {self.host}:{self.port}")
            self._client.connect(self.host, self.port, keepalive=60)

            self._running = True
            self._client.loop_start()

            for _ in range(50):  # 5 second timeout
                if self._connected:
                    break
                time.sleep(0.1)

            if not self._connected:
                logger.warning("MQTT connection timeout - commands will fail until connected")
                return False

            return True

        except Exception as e:
            logger.error(f"Failed to connect to MQTT broker: {e}")
            return False

    def stop(self) -> None:
        """Stop the network loop and disconnect."""
        if not self._running:
            return

        self._running = False

        if self._client:
            self._client.loop_stop()
            self._client.disconnect()
            self._client = None

        self._connected = False
        logger.info("MQTT light controller stopped")

    def _on_connect(self, client, userdata, flags, reason_code, properties=None):
        """MQTT connection callback."""
        if not reason_code.is_failure:
            self._connected = True
            logger.info("Connected to MQTT broker")
            client.subscribe(self.state_topic)
            logger.info(f"Subscribed to {self.state_topic}")
        else:
            logger.error(f"MQTT connection failed: {reason_code}")

    def _on_disconnect(self, client, userdata, flags, reason_code, properties=None):
        """MQTT disconnection callback."""
        self._connected = False
        if reason_code.is_failure:
            logger.warning(f"Unexpected MQTT disconnection: {reason_code}")
        else:
            logger.info("Disconnected from MQTT broker")

    def _on_message(self, client, userdata, msg):
        """MQTT message callback for device state."""
        self._messages_received += 1

        parts = msg.topic.split("/")
        if len(parts) < 3 or parts[-1] != "state":
            return
        try:
            serial = Serial.from_hex(parts[-2])
        except ValueError as e:
            logger.warning(f"Ignoring state for {msg.topic}: {e}")
            return

        if not msg.payload:
            self._update_roster(serial, None)
            return

        try:
            payload = json.loads(msg.payload.decode())
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning(f"Invalid device state JSON on {msg.topic}: {e}")
            return
        if not isinstance(payload, dict):
            logger.warning(f"Invalid device state on {msg.topic}: expected an object")
            return

        device = Device(
            serial=serial,
            label=str(payload.get("label") or ""),
            group=str(payload.get("group") or ""),
            location=str(payload.get("location") or ""),
        )
        self._update_roster(serial, device)

    def _update_roster(self, serial: Serial, device: Optional[Device]) -> None:
        with self._devices_lock:
            current = self._devices.get(serial)
            if current == device:
                return
            if device is None:
                del self._devices[serial]
                logger.info(f"Device removed: {serial}")
            else:
                self._devices[serial] = device
                logger.info(f"Device updated: {serial} label={device.label!r} group={device.group!r}")
            roster = list(self._devices.values())

        if self.on_roster_change:
            try:
                self.on_roster_change(roster)
            except Exception as e:
                logger.error(f"Error in roster change callback: {e}")

    def list_devices(self) -> List[Device]:
        """Return a snapshot of the known devices."""
        with self._devices_lock:
            return list(self._devices.values())

    def send(self, serial: Serial, command: Command) -> None:
        """
        Publish a command to one device.

        Args:
            serial: Target device
            command: Command to send

        Raises:
            SendError: If not connected or the publish is rejected
        """
        if not self._connected or not self._client:
            self._send_failures += 1
            raise SendError(f"cannot send to {serial}: not connected to MQTT broker")

        info = self._client.publish(self.command_topic(serial), command.to_json(), qos=1)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            self._send_failures += 1
            raise SendError(f"publish to {serial} failed: {mqtt.error_string(info.rc)}")

        self._messages_sent += 1
        self._last_send_time = time.time()
        logger.debug(f"Published {command.action} to {serial}")

    @property
    def connected(self) -> bool:
        """Check if connected to MQTT broker."""
        return self._connected

    def get_stats(self) -> dict:
        """Get controller statistics."""
        return {
            "connected": self._connected,
            "devices": len(self._devices),
            "messages_sent": self._messages_sent,
            "messages_received": self._messages_received,
            "send_failures": self._send_failures,
            "last_send_time": self._last_send_time,
        }
