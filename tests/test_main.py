"""Tests for gateway wiring and the command line."""

import asyncio
import logging
import threading

import pytest

from gesture_lights import __version__
from gesture_lights.config import Binding, Config, LoggingConfig, Selector
from gesture_lights.logging_setup import setup_logging
from gesture_lights.main import LightGateway, main, parse_args

from .conftest import DEVICES, SERIAL_1, SERIAL_2, FakeController

BEDROOM_ON = Binding(
    gesture="pull_up", action="power_on", selector=Selector(type="group", value="Bedroom")
)


class LateJoinController(FakeController):
    """Announces one more device while the first registry build is running."""

    def __init__(self, devices, late_device):
        super().__init__(devices)
        self.late_device = late_device
        self.gateway = None
        self.notifier = None

    def list_devices(self):
        snapshot = super().list_devices()
        if self.notifier is None:
            self.devices.append(self.late_device)
            self.notifier = threading.Thread(
                target=self.gateway._on_roster_change, args=(list(self.devices),)
            )
            self.notifier.start()
        return snapshot


def test_gateway_builds_registry_on_start():
    controller = FakeController(DEVICES)
    gateway = LightGateway(Config(bindings=(BEDROOM_ON,)), controller=controller)

    asyncio.run(gateway.start())
    gateway.router.handle_line(
        '{"hands": [{"label": "left", "gesture": "swipe_up"}, {"label": "right", "gesture": "swipe_up"}]}'
    )

    assert [s for s, _ in controller.sent] == [SERIAL_1, SERIAL_2]
    assert gateway.get_stats()["registry_builds"] == 1
    assert gateway.event_server is None


def test_roster_changes_ignored_until_started():
    gateway = LightGateway(Config(), controller=FakeController())

    gateway._on_roster_change(DEVICES)
    assert gateway.registry.builds == 0

    asyncio.run(gateway.start())
    gateway._on_roster_change(DEVICES)
    assert gateway.registry.builds == 2


def test_roster_change_during_startup_build_is_kept():
    controller = LateJoinController([DEVICES[1]], late_device=DEVICES[2])
    gateway = LightGateway(Config(bindings=(BEDROOM_ON,)), controller=controller)
    controller.gateway = gateway

    asyncio.run(gateway.start())
    controller.notifier.join(timeout=5)

    assert not controller.notifier.is_alive()
    assert gateway.registry.builds == 2
    assert gateway.registry.current.gestures["pull_up"].targets == (SERIAL_1, SERIAL_2)


def test_version_flag(capsys):
    with pytest.raises(SystemExit) as exc_info:
        parse_args(["--version"])
    assert exc_info.value.code == 0
    assert __version__ in capsys.readouterr().out


def test_invalid_config_exits(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("logging:\n  level: loud\n")

    with pytest.raises(SystemExit) as exc_info:
        main(["--config", str(path)])
    assert exc_info.value.code == 1


def test_setup_logging_to_file(tmp_path):
    log_file = tmp_path / "gl.log"
    try:
        setup_logging(LoggingConfig(level="warn", file=str(log_file)))
        assert logging.getLogger().level == logging.WARNING

        logging.getLogger("gesture_lights.test").warning("hello")
        logging.getLogger("gesture_lights.test").info("hidden")
        for handler in logging.getLogger().handlers:
            handler.flush()

        text = log_file.read_text()
        assert "gesture_lights.test - WARNING - hello" in text
        assert "hidden" not in text
    finally:
        setup_logging(LoggingConfig(level="info"))
