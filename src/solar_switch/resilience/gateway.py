"""Gateway power-cycle recovery."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from solar_switch.config.schema import GatewayConfig
from solar_switch.errors import ActuationError
from solar_switch.switch.base import SwitchActuator

logger = logging.getLogger(__name__)

Sleeper = Callable[[float], Awaitable[None]]


class GatewayRecovery:
    """Hard-reboots the meter gateway through the relay that powers it.

    Sequence: off, short settle delay, on, long boot delay. Relay failures are
    logged and the sequence continues; the next control cycle simply tries the
    gateway again.
    """

    def __init__(
        self,
        config: GatewayConfig,
        power_switch: SwitchActuator,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self._config = config
        self._power_switch = power_switch
        self._sleep = sleep
        self.reboot_count = 0

    async def reboot(self) -> None:
        self.reboot_count += 1
        await self.power_off()
        logger.info(
            "Waiting %.0f seconds before turning the gateway back on",
            self._config.off_delay_seconds,
        )
        await self._sleep(self._config.off_delay_seconds)
        await self.power_on()
        logger.info(
            "Waiting %.0f seconds for the gateway to boot",
            self._config.boot_delay_seconds,
        )
        await self._sleep(self._config.boot_delay_seconds)

    async def power_on(self) -> bool:
        return await self._switch(True)

    async def power_off(self) -> bool:
        return await self._switch(False)

    async def _switch(self, on: bool) -> bool:
        try:
            await self._power_switch.set_state(on)
        except ActuationError as e:
            logger.warning("Could not switch gateway power %s: %s", "on" if on else "off", e)
            return False
        logger.info("Turned the gateway power %s", "on" if on else "off")
        return True
