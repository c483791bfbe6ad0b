"""Shared test fixtures for Solar Switch."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from pathlib import Path

import pytest

from solar_switch.config.manager import ConfigManager
from solar_switch.config.schema import AppConfig
from solar_switch.control.engine import DecisionEngine
from solar_switch.errors import ActuationError, MeterReadError
from solar_switch.notify.notifier import Notifier
from solar_switch.notify.templates import RenderedMessage
from solar_switch.resilience.gateway import GatewayRecovery


class FakeRelay:
    """SwitchActuator double recording every command."""

    def __init__(self, name: str) -> None:
        self._name = name
        self.commands: list[bool] = []
        self.fail_next: int = 0
        self.state: bool | None = None

    @property
    def name(self) -> str:
        return self._name

    async def set_state(self, on: bool) -> bool:
        self.commands.append(on)
        if self.fail_next:
            self.fail_next -= 1
            raise ActuationError(f"relay '{self._name}' unreachable")
        self.state = on
        return on

    async def close(self) -> None:
        pass


class FakeMeter:
    """MeterClient double.

    ``readings`` is consumed in order; exception instances are raised
    instead of returned. ``after_read`` runs after every read attempt.
    """

    def __init__(self, hardware_address: str = "0xd8d5b90000005a54") -> None:
        self.readings: list = []
        self._hardware_address = hardware_address
        self._last_demand_kw = 0.0
        self.read_count = 0
        self.discover_count = 0
        self.discover_errors: list[MeterReadError] = []
        self.after_read: Callable[[], None] | None = None

    @property
    def hardware_address(self) -> str | None:
        return self._hardware_address

    @property
    def last_demand_kw(self) -> float:
        return self._last_demand_kw

    async def discover(self) -> str:
        self.discover_count += 1
        if self.discover_errors:
            raise self.discover_errors.pop(0)
        return self._hardware_address

    async def read(self) -> float:
        self.read_count += 1
        self._last_demand_kw = 0.0
        try:
            value = self.readings.pop(0)
            if isinstance(value, MeterReadError):
                raise value
            self._last_demand_kw = value
            return value
        finally:
            if self.after_read is not None:
                self.after_read()

    async def close(self) -> None:
        pass


class RecordingTransport:
    """Mail transport double that records rendered messages."""

    def __init__(self) -> None:
        self.messages: list[RenderedMessage] = []

    @property
    def events(self) -> list:
        return [m.event for m in self.messages]

    async def send(self, message: RenderedMessage) -> None:
        self.messages.append(message)


class FixedClock:
    """Settable wall clock for the decision engine."""

    def __init__(self, hour: int = 12) -> None:
        self.now = datetime(2024, 6, 1, hour, 0)

    def set_hour(self, hour: int) -> None:
        self.now = self.now.replace(hour=hour)

    def __call__(self) -> datetime:
        return self.now


class RecordingSleep:
    """Replacement for asyncio.sleep that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def config() -> AppConfig:
    """Default configuration with negligible startup delays."""
    return AppConfig(
        startup={
            "gateway_boot_wait_seconds": 0,
            "retry_initial_seconds": 0.01,
            "retry_max_seconds": 0.02,
            "max_attempts": 3,
        },
    )


@pytest.fixture
def config_manager(tmp_path: Path) -> ConfigManager:
    """Provide a config manager with test paths."""
    defaults = tmp_path / "config.defaults.yaml"
    defaults.write_text("control:\n  interval_seconds: 60\n")
    user = tmp_path / "config.yaml"
    mgr = ConfigManager(defaults_path=defaults, user_path=user)
    mgr.load()
    return mgr


@pytest.fixture
def meter() -> FakeMeter:
    return FakeMeter()


@pytest.fixture
def load_relay() -> FakeRelay:
    return FakeRelay("load")


@pytest.fixture
def gateway_relay() -> FakeRelay:
    return FakeRelay("gateway")


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def clock() -> FixedClock:
    """Clock fixed at noon, outside the default 23-07 low-cost window."""
    return FixedClock(12)


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def recovery(config: AppConfig, gateway_relay: FakeRelay, sleep: RecordingSleep) -> GatewayRecovery:
    return GatewayRecovery(config.gateway, gateway_relay, sleep=sleep)


@pytest.fixture
def notifier(config: AppConfig, transport: RecordingTransport) -> Notifier:
    return Notifier(transport, load_name=config.control.load_name, threshold_kw=config.control.threshold_kw)


@pytest.fixture
def engine(
    config: AppConfig,
    meter: FakeMeter,
    load_relay: FakeRelay,
    recovery: GatewayRecovery,
    notifier: Notifier,
    clock: FixedClock,
) -> DecisionEngine:
    """Decision engine over the fake meter, load relay and recording notifier."""
    return DecisionEngine(config, meter, load_relay, recovery, notifier, clock=clock)
