"""Protocol for remote relay actuators."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class SwitchActuator(Protocol):
    """Protocol for relay outputs driven over the network.

    Implementations: HttpRelay.
    """

    @property
    def name(self) -> str:
        """Human-readable name used in logs."""
        ...

    async def set_state(self, on: bool) -> bool:
        """Command the relay on or off and return the achieved state.

        No retry is attempted.

        Raises:
            ActuationError: the command did not complete.
        """
        ...

    async def close(self) -> None:
        ...
