"""Async control loop: startup sequencing and the fixed-interval cycle cadence."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import TypeVar

from solar_switch.config.schema import AppConfig
from solar_switch.control.engine import DecisionEngine
from solar_switch.control.modes import NotificationEvent
from solar_switch.errors import ActuationError, MeterReadError, StartupError
from solar_switch.logging.context import cycle_context
from solar_switch.meter.base import MeterClient
from solar_switch.notify.notifier import Notifier
from solar_switch.resilience.gateway import GatewayRecovery

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ControlLoop:
    """Drives the decision engine once per sampling interval.

    Startup:
    1. Power the gateway on
    2. Switch the load off (retried with backoff; fatal when exhausted)
    3. Send the startup notification
    4. Wait for the gateway to boot
    5. Resolve the meter hardware address (retried with backoff)

    Cycles then run strictly one after another: the next cycle never starts
    before the previous one, including its notifications, recovery and sleep,
    has finished. Only ``stop()`` ends the loop.
    """

    def __init__(
        self,
        config: AppConfig,
        engine: DecisionEngine,
        meter: MeterClient,
        recovery: GatewayRecovery,
        notifier: Notifier,
    ) -> None:
        self._config = config
        self._engine = engine
        self._meter = meter
        self._recovery = recovery
        self._notifier = notifier
        self._stop_event = asyncio.Event()
        self._unhealthy: set[str] = set()
        self.is_running = False

    @property
    def engine(self) -> DecisionEngine:
        return self._engine

    def stop(self) -> None:
        """Signal the loop to stop."""
        self._stop_event.set()

    async def run(self) -> None:
        """Run startup, then cycles until stopped.

        Raises:
            StartupError: the initial state could not be established.
        """
        self.is_running = True
        self._stop_event.clear()
        try:
            if not await self.startup():
                return
            interval = self._config.control.interval_seconds
            logger.info("Control loop starting (interval: %ds)", interval)
            while not self._stop_event.is_set():
                await self.cycle_once()
                if await self._wait(interval):
                    break
        finally:
            self.is_running = False
            logger.info("Control loop stopped after %d cycles", self._engine.state.cycle_count)

    async def startup(self) -> bool:
        """Establish the initial OFF state. Returns False if stopped meanwhile."""
        load_name = self._config.control.load_name

        if await self._recovery.power_on():
            logger.info("Turned the gateway switch on at startup")

        if not await self._retry(f"turn the {load_name} switch off", self._engine.force_off):
            return False
        await self._notifier.notify(NotificationEvent.STARTUP, self._meter.last_demand_kw)

        boot_wait = self._config.startup.gateway_boot_wait_seconds
        logger.info("Waiting %.0f seconds before reading the meter to allow the gateway to boot", boot_wait)
        if await self._wait(boot_wait):
            return False

        return await self._retry("resolve the meter hardware address", self._meter.discover)

    async def cycle_once(self) -> None:
        """Run one engine cycle; unexpected errors are logged and the loop continues."""
        state = self._engine.state
        with cycle_context(state.cycle_count + 1, mode=state.mode.value):
            start = time.monotonic()
            try:
                result = await self._engine.run_cycle()
                logger.debug(
                    "Cycle finished: %s -> %s outcome=%s demand=%s elapsed=%dms",
                    result.previous.value, result.mode.value, result.outcome,
                    "n/a" if result.demand_kw is None else f"{result.demand_kw:.3f}kW",
                    int((time.monotonic() - start) * 1000),
                )
            except Exception:
                logger.exception("Control cycle error")
            self._report_health()

    def _report_health(self) -> None:
        """Log components that turned unhealthy or recovered since the last cycle."""
        health = self._engine.health
        unhealthy = set(health.unhealthy())
        for name in sorted(unhealthy - self._unhealthy):
            status = health.status(name)
            logger.error(
                "%s path unhealthy after %d consecutive failures: %s",
                name, status.consecutive_failures, status.last_error,
            )
        for name in sorted(self._unhealthy - unhealthy):
            logger.info("%s path recovered", name)
        self._unhealthy = unhealthy

    async def _retry(self, what: str, op: Callable[[], Awaitable[T]]) -> bool:
        """Call ``op`` until it succeeds, backing off exponentially between attempts."""
        cfg = self._config.startup
        delay = cfg.retry_initial_seconds
        attempt = 0
        while True:
            attempt += 1
            try:
                await op()
                return True
            except (ActuationError, MeterReadError) as e:
                if cfg.max_attempts and attempt >= cfg.max_attempts:
                    raise StartupError(f"Could not {what} at startup after {attempt} attempts") from e
                logger.warning(
                    "Could not %s at startup (attempt %d): %s; retrying in %.0fs",
                    what, attempt, e, delay,
                )
            if await self._wait(delay):
                return False
            delay = min(delay * 2, cfg.retry_max_seconds)

    async def _wait(self, seconds: float) -> bool:
        """Sleep for ``seconds``. Returns True if a stop was requested."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
            return True
        except asyncio.TimeoutError:
            return False
