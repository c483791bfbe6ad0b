"""Rainforest EAGLE gateway demand reader (cloud REST 1.1 and local API)."""

from __future__ import annotations

import logging

import httpx

from solar_switch.config.schema import MeterConfig
from solar_switch.errors import TransportError
from solar_switch.meter.parser import (
    build_cloud_demand_query,
    build_device_list_query,
    build_local_demand_query,
    detect_gateway_fault,
    parse_cloud_demand,
    parse_hardware_address,
    parse_local_demand,
)

logger = logging.getLogger(__name__)


class EagleMeterClient:
    """Reads instantaneous demand from an EAGLE gateway over HTTP.

    The hardware address is resolved once (configured for the cloud API,
    discovered with ``device_list`` for the local API) and reused for every
    query. It is never rediscovered.
    """

    def __init__(self, config: MeterConfig, client: httpx.AsyncClient | None = None) -> None:
        self._config = config
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(config.timeout_seconds, connect=config.connect_timeout_seconds),
            auth=self._basic_auth(config),
        )
        self._owns_client = client is None
        self._hardware_address: str | None = config.hardware_address or None
        self._last_demand_kw = 0.0

    @staticmethod
    def _basic_auth(config: MeterConfig) -> httpx.BasicAuth | None:
        if config.protocol == "local" and config.cloud_id:
            return httpx.BasicAuth(config.cloud_id, config.install_code)
        return None

    @property
    def hardware_address(self) -> str | None:
        return self._hardware_address

    @property
    def last_demand_kw(self) -> float:
        return self._last_demand_kw

    async def discover(self) -> str:
        """Resolve the meter address, querying the gateway only when not yet known."""
        if self._hardware_address:
            return self._hardware_address
        text = await self._post(build_device_list_query())
        self._hardware_address = parse_hardware_address(text)
        logger.info("Discovered meter hardware address %s", self._hardware_address)
        return self._hardware_address

    async def read(self) -> float:
        """Read instantaneous demand in kW.

        The cached reading is zeroed before the request so a failed read never
        leaves a stale value behind.
        """
        self._last_demand_kw = 0.0
        address = await self.discover()

        if self._config.protocol == "cloud":
            text = await self._post(build_cloud_demand_query(address))
            decoded = parse_cloud_demand(text)
            logger.debug(
                "Demand raw=%.0f multiplier=%.0f divisor=%.0f",
                decoded.raw, decoded.multiplier, decoded.divisor,
            )
            demand = decoded.demand_kw
        else:
            text = await self._post(build_local_demand_query(address))
            demand = parse_local_demand(text)

        self._last_demand_kw = demand
        return demand

    async def _post(self, body: str) -> str:
        """POST an XML command and return the body text.

        An error status whose body carries a gateway distress signature is
        returned for the parsers to turn into a GatewayFault. Any other error
        status is a transport failure.
        """
        try:
            resp = await self._client.post(
                self._config.url,
                content=body,
                headers=self._headers(),
            )
        except httpx.HTTPError as e:
            raise TransportError(f"Meter request to {self._config.url} failed: {e}") from e
        logger.debug("Meter response (%d): %s", resp.status_code, resp.text)
        if resp.is_error and detect_gateway_fault(resp.text) is None:
            raise TransportError(f"Meter request to {self._config.url} returned HTTP {resp.status_code}")
        return resp.text

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "text/xml"}
        if self._config.protocol == "cloud":
            headers.update({
                "Cloud-Id": self._config.cloud_id,
                "User": self._config.user,
                "Password": self._config.password,
            })
        return headers

    async def close(self) -> None:
        """Close the HTTP client if we own it."""
        if self._owns_client:
            await self._client.aclose()
