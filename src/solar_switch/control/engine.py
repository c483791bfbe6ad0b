"""Decision engine: one evaluate-actuate-notify pass per control cycle."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from solar_switch.config.schema import AppConfig
from solar_switch.control.modes import (
    ControllerMode,
    NotificationEvent,
    failure_event,
    transition_event,
)
from solar_switch.control.policy import decide, in_value_window
from solar_switch.errors import (
    ActuationError,
    GatewayFault,
    GatewayFaultKind,
    MeterReadError,
)
from solar_switch.meter.base import MeterClient
from solar_switch.notify.notifier import Notifier
from solar_switch.resilience.gateway import GatewayRecovery
from solar_switch.resilience.health_check import HealthChecker
from solar_switch.switch.base import SwitchActuator
from solar_switch.timezone_utils import wall_clock

logger = logging.getLogger(__name__)

_REBOOT_EVENTS: dict[GatewayFaultKind, NotificationEvent] = {
    GatewayFaultKind.REQUEST_TIMEOUT: NotificationEvent.REBOOT_TIMEOUT,
    GatewayFaultKind.SERVICE_UNAVAILABLE: NotificationEvent.REBOOT_UNAVAILABLE,
}


@dataclass
class ControllerState:
    """Controller state carried between cycles."""

    mode: ControllerMode = ControllerMode.STARTUP
    cycle_count: int = 0


@dataclass
class CycleResult:
    """Outcome of a single control cycle."""

    previous: ControllerMode
    mode: ControllerMode
    outcome: str  # switched, unchanged, read_failed, gateway_rebooted, actuation_failed
    demand_kw: float | None = None
    event: NotificationEvent | None = None


class DecisionEngine:
    """Applies the rate-window and surplus policy and drives the load switch.

    Each cycle:
    1. Inside the low-cost window: switch on regardless of demand
    2. Otherwise: read demand and apply the surplus hysteresis
    3. Actuate the target state
    4. On a confirmed change, notify with the reason for it

    The stored mode only ever reflects a confirmed actuation. Meter failures
    abandon the cycle without touching the switch; actuation failures keep the
    previous mode and raise an error notification.
    """

    def __init__(
        self,
        config: AppConfig,
        meter: MeterClient,
        switch: SwitchActuator,
        recovery: GatewayRecovery,
        notifier: Notifier,
        health: HealthChecker | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._config = config
        self._meter = meter
        self._switch = switch
        self._recovery = recovery
        self._notifier = notifier
        self._health = health or HealthChecker(
            config.resilience.max_consecutive_failures,
            config.resilience.component_limits,
        )
        self._clock = clock or wall_clock(config.rate_window.timezone)
        self._state = ControllerState()
        self._last_read_rebooted = False

    @property
    def state(self) -> ControllerState:
        return self._state

    @property
    def health(self) -> HealthChecker:
        return self._health

    async def force_off(self) -> None:
        """Switch the load off and adopt OFF as the confirmed mode.

        Raises:
            ActuationError: the relay did not confirm.
        """
        await self._switch.set_state(False)
        self._state.mode = ControllerMode.OFF
        logger.info("Turned the %s switch off", self._config.control.load_name)

    async def run_cycle(self) -> CycleResult:
        """Execute one control cycle."""
        self._state.cycle_count += 1
        now = self._clock()

        window = self._config.rate_window
        if in_value_window(now.hour, window.start_hour, window.end_hour):
            return await self._value_window_cycle()
        return await self._standard_cycle()

    async def _value_window_cycle(self) -> CycleResult:
        previous = self._state.mode
        target = ControllerMode.ON_VALUE_WINDOW

        if not await self._actuate(target):
            return CycleResult(
                previous=previous, mode=previous, outcome="actuation_failed",
                event=failure_event(target),
            )
        self._state.mode = target

        # Informational only; the decision does not depend on it
        demand = await self._read_demand()
        if demand is not None:
            logger.info(
                "Meter reading: %.3f kW. %s switch is on (low-cost rate period)",
                demand, self._config.control.load_name,
            )

        return await self._confirm(previous, target, demand)

    async def _standard_cycle(self) -> CycleResult:
        previous = self._state.mode

        demand = await self._read_demand()
        if demand is None:
            outcome = "gateway_rebooted" if self._last_read_rebooted else "read_failed"
            return CycleResult(previous=previous, mode=previous, outcome=outcome)

        control = self._config.control
        target = decide(previous, demand, control.load_kw, control.threshold_kw)

        if not await self._actuate(target):
            return CycleResult(
                previous=previous, mode=previous, outcome="actuation_failed",
                demand_kw=demand, event=failure_event(target),
            )
        self._state.mode = target

        logger.info(
            "Meter reading: %.3f kW. %s switch is %s",
            demand, control.load_name, "on" if target.switch_on else "off",
        )
        return await self._confirm(previous, target, demand)

    async def _confirm(
        self,
        previous: ControllerMode,
        mode: ControllerMode,
        demand: float | None,
    ) -> CycleResult:
        event = transition_event(previous, mode)
        if event is not None:
            logger.info("Mode change %s -> %s", previous.value, mode.value)
            await self._notifier.notify(event, self._meter.last_demand_kw)
        return CycleResult(
            previous=previous,
            mode=mode,
            outcome="switched" if event is not None else "unchanged",
            demand_kw=demand,
            event=event,
        )

    async def _actuate(self, target: ControllerMode) -> bool:
        on = target.switch_on
        try:
            await self._switch.set_state(on)
        except ActuationError as e:
            self._health.record_failure("switch", str(e))
            logger.warning(
                "Could not turn the %s switch %s: %s",
                self._config.control.load_name, "on" if on else "off", e,
            )
            await self._notifier.notify(failure_event(target), self._meter.last_demand_kw)
            return False
        self._health.record_success("switch")
        return True

    async def _read_demand(self) -> float | None:
        """Read the meter, running gateway recovery for known fault signatures."""
        self._last_read_rebooted = False
        try:
            demand = await self._meter.read()
        except GatewayFault as e:
            self._health.record_failure("meter", str(e))
            logger.warning("Rebooting the gateway since a %s response was received", e.kind.value)
            await self._recovery.reboot()
            await self._notifier.notify(_REBOOT_EVENTS[e.kind], self._meter.last_demand_kw)
            self._last_read_rebooted = True
            return None
        except MeterReadError as e:
            self._health.record_failure("meter", str(e))
            logger.warning("Could not read the meter: %s", e)
            return None
        self._health.record_success("meter")
        return demand
