"""Exception hierarchy for controller device I/O."""

from __future__ import annotations

from enum import Enum


class SolarSwitchError(Exception):
    """Base exception for all controller errors."""


class MeterReadError(SolarSwitchError):
    """Raised when a demand reading could not be obtained."""


class TransportError(MeterReadError):
    """Raised when the meter gateway could not be reached or returned an HTTP error."""


class UnparsableResponse(MeterReadError):
    """Raised when the gateway replied but the expected demand field is absent."""


class GatewayFaultKind(str, Enum):
    """Response signatures that indicate the gateway itself needs a power cycle."""

    REQUEST_TIMEOUT = "Request Timeout"
    SERVICE_UNAVAILABLE = "Service Unavailable"


class GatewayFault(MeterReadError):
    """Raised when the gateway reports one of the known distressed signatures."""

    def __init__(self, kind: GatewayFaultKind) -> None:
        super().__init__(f"Gateway fault: {kind.value}")
        self.kind = kind


class ActuationError(SolarSwitchError):
    """Raised when a relay command did not complete."""


class NotificationError(SolarSwitchError):
    """Raised when a notification could not be dispatched."""


class StartupError(SolarSwitchError):
    """Raised when the controller cannot establish its initial state."""
