"""Protocol for demand meter clients."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class MeterClient(Protocol):
    """Protocol for instantaneous-demand meter clients.

    Implementations: EagleMeterClient.
    """

    @property
    def hardware_address(self) -> str | None:
        """Cached meter device address (None until discovered)."""
        ...

    @property
    def last_demand_kw(self) -> float:
        """Most recent successful reading in kW; 0 after a failed read."""
        ...

    async def discover(self) -> str:
        """Resolve and cache the meter's hardware address."""
        ...

    async def read(self) -> float:
        """Read instantaneous demand in kW (positive = importing).

        Raises:
            MeterReadError: TransportError, GatewayFault or UnparsableResponse.
        """
        ...

    async def close(self) -> None:
        ...
