"""Relay output controlled by fixed HTTP GET command URLs.

Covers hubs that expose one idempotent URL per on/off action, such as the
Insteon Hub direct-command interface or Shelly Gen1 ``/relay/0?turn=on``.
"""

from __future__ import annotations

import logging

import httpx

from solar_switch.config.schema import RelayEndpointConfig
from solar_switch.errors import ActuationError

logger = logging.getLogger(__name__)


class HttpRelay:
    """Switches one relay output by issuing its configured on or off URL."""

    def __init__(self, config: RelayEndpointConfig, client: httpx.AsyncClient | None = None) -> None:
        self._config = config
        auth = httpx.BasicAuth(config.username, config.password) if config.username else None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(config.timeout_seconds),
            auth=auth,
            limits=httpx.Limits(max_connections=1, max_keepalive_connections=0),
        )
        self._owns_client = client is None

    @property
    def name(self) -> str:
        return self._config.name

    async def set_state(self, on: bool) -> bool:
        url = self._config.on_url if on else self._config.off_url
        label = "ON" if on else "OFF"
        try:
            resp = await self._client.get(url)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("Failed to turn %s relay '%s': %s", label, self._config.name, e)
            raise ActuationError(f"Relay '{self._config.name}' did not turn {label}: {e}") from e
        logger.info("Relay '%s' turned %s", self._config.name, label)
        return on

    async def close(self) -> None:
        """Close the HTTP client if we own it."""
        if self._owns_client:
            await self._client.aclose()
