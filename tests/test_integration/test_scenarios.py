"""Day-in-the-life scenarios with real clients over mocked HTTP."""

from __future__ import annotations

import httpx
import pytest

from solar_switch.config.schema import AppConfig
from solar_switch.control.engine import DecisionEngine
from solar_switch.control.loop import ControlLoop
from solar_switch.control.modes import ControllerMode, NotificationEvent
from solar_switch.meter.eagle import EagleMeterClient
from solar_switch.notify.notifier import Notifier
from solar_switch.resilience.gateway import GatewayRecovery
from solar_switch.switch.http_relay import HttpRelay

LOAD_ON = "http://hub.local/load/on"
LOAD_OFF = "http://hub.local/load/off"
GW_ON = "http://hub.local/gateway/on"
GW_OFF = "http://hub.local/gateway/off"


def _demand_body(watts: int) -> str:
    """Cloud response for a demand in watts; negative means export."""
    token = f"0x{0xFFFFFFFF + watts:08x}" if watts < 0 else f"0x{watts:06x}"
    return (
        "<InstantaneousDemand>"
        f"<Demand>{token}</Demand><Multiplier>0x00000001</Multiplier><Divisor>0x000003e8</Divisor>"
        "</InstantaneousDemand>"
    )


class Site:
    """A controller wired to mocked meter and hub endpoints."""

    def __init__(self, meter_responses: list, clock, sleep, transport) -> None:
        self.meter_responses = list(meter_responses)
        self.relay_calls: list[str] = []
        self.clock = clock
        self.sleep = sleep
        self.transport = transport

        self.config = AppConfig(
            meter={
                "protocol": "cloud",
                "url": "https://cloud.example/cgi-bin/post_manager",
                "cloud_id": "12345",
                "hardware_address": "0xd8d5b90000005a54",
            },
            switch={"primary": {"name": "load", "on_url": LOAD_ON, "off_url": LOAD_OFF}},
            gateway={"power_switch": {"name": "gateway", "on_url": GW_ON, "off_url": GW_OFF}},
            startup={"gateway_boot_wait_seconds": 0, "retry_initial_seconds": 0.01},
        )

        self.meter = EagleMeterClient(
            self.config.meter,
            client=httpx.AsyncClient(transport=httpx.MockTransport(self._meter_handler)),
        )
        hub = httpx.AsyncClient(transport=httpx.MockTransport(self._hub_handler))
        self.load = HttpRelay(self.config.switch.primary, client=hub)
        self.gateway = HttpRelay(self.config.gateway.power_switch, client=hub)
        self.recovery = GatewayRecovery(self.config.gateway, self.gateway, sleep=self.sleep)
        self.notifier = Notifier(self.transport)
        self.engine = DecisionEngine(
            self.config, self.meter, self.load, self.recovery, self.notifier, clock=self.clock,
        )
        self.loop = ControlLoop(self.config, self.engine, self.meter, self.recovery, self.notifier)

    def _meter_handler(self, request: httpx.Request) -> httpx.Response:
        item = self.meter_responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def _hub_handler(self, request: httpx.Request) -> httpx.Response:
        self.relay_calls.append(str(request.url))
        return httpx.Response(200)

    async def cycle(self, hour: int) -> None:
        self.clock.set_hour(hour)
        await self.loop.cycle_once()

    @property
    def events(self) -> list[NotificationEvent]:
        return [m.event for m in self.transport.messages]


@pytest.mark.asyncio
async def test_full_day(clock, sleep, transport) -> None:
    site = Site([
        httpx.Response(200, text=_demand_body(-2000)),
        httpx.Response(200, text=_demand_body(-500)),
        httpx.Response(408, text="<html><body>Request Timeout</body></html>"),
        httpx.Response(200, text=_demand_body(300)),
        httpx.ConnectError("network unreachable"),
        httpx.Response(200, text=_demand_body(1200)),
        httpx.Response(200, text=_demand_body(-100)),
    ], clock, sleep, transport)

    assert await site.loop.startup() is True
    assert site.relay_calls == [GW_ON, LOAD_OFF]
    site.relay_calls.clear()

    await site.cycle(12)  # export 2.0 kW: room for the load
    assert site.engine.state.mode == ControllerMode.ON
    await site.cycle(13)  # export 0.5 kW with the load running: keep going
    assert site.engine.state.mode == ControllerMode.ON
    await site.cycle(14)  # gateway distressed: reboot, mode untouched
    assert site.engine.state.mode == ControllerMode.ON
    await site.cycle(15)  # importing 0.3 kW: stop
    assert site.engine.state.mode == ControllerMode.OFF
    await site.cycle(16)  # unreachable: skip
    assert site.engine.state.mode == ControllerMode.OFF
    assert site.meter.last_demand_kw == 0.0
    await site.cycle(23)  # low-cost window
    assert site.engine.state.mode == ControllerMode.ON_VALUE_WINDOW
    await site.cycle(7)  # window over
    assert site.engine.state.mode == ControllerMode.OFF

    assert site.relay_calls == [
        LOAD_ON,
        LOAD_ON,
        GW_OFF,
        GW_ON,
        LOAD_OFF,
        LOAD_ON,
        LOAD_OFF,
    ]
    assert site.sleep.delays == [5.0, 60.0]
    assert site.events == [
        NotificationEvent.STARTUP,
        NotificationEvent.ON,
        NotificationEvent.REBOOT_TIMEOUT,
        NotificationEvent.OFF_USAGE,
        NotificationEvent.ON_VALUE_WINDOW,
        NotificationEvent.OFF_VALUE_WINDOW,
    ]
    assert site.transport.messages[1].body.endswith("Meter reading: -2.000 kW.")
    assert site.transport.messages[4].body.endswith("Meter reading: 1.200 kW.")
    assert site.engine.state.cycle_count == 7
    assert site.recovery.reboot_count == 1


@pytest.mark.asyncio
async def test_relay_hub_outage_keeps_mode_and_reports(clock, sleep, transport) -> None:
    site = Site([
        httpx.Response(200, text=_demand_body(-3000)),
        httpx.Response(200, text=_demand_body(-3000)),
    ], clock, sleep, transport)
    site.engine.state.mode = ControllerMode.OFF

    def offline(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("hub offline", request=request)

    site.load._client = httpx.AsyncClient(transport=httpx.MockTransport(offline))
    await site.cycle(12)
    assert site.engine.state.mode == ControllerMode.OFF
    assert site.events == [NotificationEvent.ON_ERROR]

    site.load._client = httpx.AsyncClient(transport=httpx.MockTransport(site._hub_handler))
    await site.cycle(12)
    assert site.engine.state.mode == ControllerMode.ON
    assert site.events == [NotificationEvent.ON_ERROR, NotificationEvent.ON]


@pytest.mark.asyncio
async def test_service_unavailable_reboots_once_per_cycle(clock, sleep, transport) -> None:
    site = Site([
        httpx.Response(503, text="503 Service Unavailable"),
        httpx.Response(503, text="503 Service Unavailable"),
    ], clock, sleep, transport)
    site.engine.state.mode = ControllerMode.OFF

    await site.cycle(10)
    await site.cycle(11)

    assert site.relay_calls == [GW_OFF, GW_ON, GW_OFF, GW_ON]
    assert site.events == [NotificationEvent.REBOOT_UNAVAILABLE] * 2
    assert site.engine.health.is_healthy("meter") is True


@pytest.mark.asyncio
async def test_server_error_without_fault_signature_skips_cycle(clock, sleep, transport) -> None:
    site = Site([
        httpx.Response(500, text="Internal Server Error"),
        httpx.Response(200, text=_demand_body(-2000)),
    ], clock, sleep, transport)
    site.engine.state.mode = ControllerMode.OFF

    await site.cycle(12)
    assert site.engine.state.mode == ControllerMode.OFF
    assert site.relay_calls == []
    assert site.events == []
    assert "HTTP 500" in site.engine.health.status("meter").last_error

    await site.cycle(13)
    assert site.engine.state.mode == ControllerMode.ON
    assert site.events == [NotificationEvent.ON]
