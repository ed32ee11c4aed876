#!/usr/bin/env python3
"""
Gesture Lights - Main Entry Point

Loads the configuration, connects to the lights over MQTT, starts the
hand-tracking sensor and routes its events to light commands:
- Sensor stdout -> EventRouter -> MQTT (<prefix>/<serial>/set)
- Optional WebSocket /events ingress for remote sensors

Environment Variables:
    GESTURE_LIGHTS_CONFIG: Config file path (default: ~/.gesture-lights/config.yaml)

Usage:
    gesture-lights
    python -m gesture_lights.main --config ./config.yaml
"""

import argparse
import asyncio
import logging
import signal
import sys
from typing import List, Optional

import uvicorn

from . import __version__
from .config import Config, ConfigError
from .devices import Device, LightController
from .loader import default_config_path, load_config
from .logging_setup import LOG_FORMAT, setup_logging
from .mqtt_bridge import MQTTLightController
from .registry import RegistryHolder
from .router import EventRouter
from .sensor import SensorRunner, args_from_config
from .ws_server import EventServer

# Configure logging until the config file has been read
logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
logger = logging.getLogger(__name__)


class LightGateway:
    """
    Wires the routing engine to its collaborators.

    Architecture:
        Sensor -> EventRouter -> LightController (MQTT)
    """

    def __init__(self, cfg: Config, controller: Optional[LightController] = None):
        """
        Initialize light gateway.

        Args:
            cfg: Loaded configuration
            controller: Send capability (defaults to an MQTT controller built
                from cfg.mqtt)
        """
        self.cfg = cfg
        self.controller = controller or MQTTLightController(
            host=cfg.mqtt.host,
            port=cfg.mqtt.port,
            topic_prefix=cfg.mqtt.topic_prefix,
            on_roster_change=self._on_roster_change,
        )

        # Components
        self.registry = RegistryHolder(cfg, roster_source=self.controller.list_devices)
        self.router = EventRouter(self.registry, self.controller)
        self.sensor = SensorRunner(
            cfg.tracking.executable,
            args_from_config(cfg),
            on_line=self.router.handle_line,
        )
        self.event_server: Optional[EventServer] = None
        if cfg.server.enabled:
            self.event_server = EventServer(
                on_line=self.router.handle_line,
                get_stats=self.get_stats,
                token=cfg.server.token,
            )

        # State
        self._ready = False

    async def start(self) -> None:
        """Connect to the lights and build the initial registry."""
        logger.info("Starting Gesture Lights...")

        if isinstance(self.controller, MQTTLightController):
            loop = asyncio.get_running_loop()
            if not await loop.run_in_executor(None, self.controller.start):
                logger.warning("MQTT light controller failed to connect")

            # Let retained device state arrive so selectors can resolve.
            await asyncio.sleep(self.cfg.mqtt.discovery_wait_s)

        # Mark ready before the first build so a roster change that lands
        # mid-build triggers another rebuild instead of being dropped.
        self._ready = True
        self.registry.rebuild()
        logger.info("Gesture Lights started")

    async def stop(self) -> None:
        """Stop all components."""
        logger.info("Stopping Gesture Lights...")
        self._ready = False

        await self.sensor.stop()

        if isinstance(self.controller, MQTTLightController):
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, self.controller.stop)

        logger.info("Gesture Lights stopped")

    def _on_roster_change(self, roster: List[Device]) -> None:
        """
        Rebuild the registry when devices come and go.

        The roster is re-read under the registry lock rather than taken from
        the notification, so rebuilds never go back to an older roster.
        """
        if self._ready:
            self.registry.rebuild()

    async def run_sensor(self) -> None:
        try:
            await self.sensor.run()
        except OSError as e:
            logger.error(f"Failed to start sensor {self.cfg.tracking.executable}: {e}")
            if self.event_server is not None:
                # Keep serving remote sensors.
                await asyncio.Event().wait()

    async def run_server(self) -> None:
        """Run the event server with uvicorn."""
        config = uvicorn.Config(
            self.event_server.app,
            host=self.cfg.server.host,
            port=self.cfg.server.port,
            log_level=self.cfg.logging.level if self.cfg.logging.level != "warn" else "warning",
        )
        server = uvicorn.Server(config)
        await server.serve()

    def get_stats(self) -> dict:
        """Get gateway statistics."""
        stats = {
            "router": self.router.get_stats(),
            "sensor": self.sensor.get_stats(),
            "registry_builds": self.registry.builds,
        }
        if isinstance(self.controller, MQTTLightController):
            stats["controller"] = self.controller.get_stats()
        return stats


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="gesture-lights",
        description="Control networked lights with hand gestures",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Config file path (default: $GESTURE_LIGHTS_CONFIG or ~/.gesture-lights/config.yaml)",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


async def main_async(cfg: Config) -> None:
    """Async main entry point."""
    gateway = LightGateway(cfg)

    loop = asyncio.get_running_loop()
    shutdown_event = asyncio.Event()

    def signal_handler():
        logger.info("Shutdown signal received")
        shutdown_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    try:
        await gateway.start()

        tasks = [
            asyncio.create_task(gateway.run_sensor()),
            asyncio.create_task(shutdown_event.wait()),
        ]
        if gateway.event_server is not None:
            tasks.append(asyncio.create_task(gateway.run_server()))

        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)

        for task in pending:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

    finally:
        await gateway.stop()


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point."""
    args = parse_args(argv)
    path = args.config or default_config_path()

    try:
        cfg = load_config(path)
    except ConfigError as e:
        logger.error(f"Failed to load config file {path}: {e}")
        sys.exit(1)

    setup_logging(cfg.logging)
    logger.info(f"Starting gesture-lights {__version__}")

    try:
        asyncio.run(main_async(cfg))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(0)


if __name__ == "__main__":
    main()
