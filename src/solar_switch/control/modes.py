"""Controller modes and the notification events raised on transitions."""

from __future__ import annotations

from enum import Enum


class ControllerMode(str, Enum):
    """Persistent switch state held between cycles."""

    STARTUP = "startup"
    OFF = "off"
    ON = "on"
    ON_VALUE_WINDOW = "on_value_window"  # Forced on inside the low-cost rate window

    @property
    def switch_on(self) -> bool:
        return self in (ControllerMode.ON, ControllerMode.ON_VALUE_WINDOW)


class NotificationEvent(str, Enum):
    """Events that produce a user notification. Never held as state."""

    ON = "on"
    OFF_USAGE = "off_usage"
    OFF_VALUE_WINDOW = "off_value_window"
    ON_VALUE_WINDOW = "on_value_window"
    ON_ERROR = "on_error"
    OFF_ERROR = "off_error"
    ON_VALUE_WINDOW_ERROR = "on_value_window_error"
    STARTUP = "startup"
    REBOOT_TIMEOUT = "reboot_timeout"
    REBOOT_UNAVAILABLE = "reboot_unavailable"


def transition_event(previous: ControllerMode, current: ControllerMode) -> NotificationEvent | None:
    """Return the event explaining a confirmed mode change, or None when nothing changed."""
    if previous == current:
        return None
    if current == ControllerMode.ON_VALUE_WINDOW:
        return NotificationEvent.ON_VALUE_WINDOW
    if current == ControllerMode.ON:
        return NotificationEvent.ON
    if current == ControllerMode.OFF:
        if previous == ControllerMode.ON_VALUE_WINDOW:
            return NotificationEvent.OFF_VALUE_WINDOW
        if previous == ControllerMode.ON:
            return NotificationEvent.OFF_USAGE
    return None


def failure_event(target: ControllerMode) -> NotificationEvent:
    """Return the error event for a failed actuation towards ``target``."""
    if target == ControllerMode.ON_VALUE_WINDOW:
        return NotificationEvent.ON_VALUE_WINDOW_ERROR
    if target == ControllerMode.ON:
        return NotificationEvent.ON_ERROR
    return NotificationEvent.OFF_ERROR
