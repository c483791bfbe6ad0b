"""Notification message templates, one per event kind."""

from __future__ import annotations

from dataclasses import dataclass

from solar_switch.control.modes import NotificationEvent


@dataclass(frozen=True)
class MessageTemplate:
    subject: str
    body: str
    include_reading: bool = True


@dataclass(frozen=True)
class RenderedMessage:
    event: NotificationEvent
    subject: str
    body: str


# Placeholders: {load} (configured load name), {threshold} (kW)
TEMPLATES: dict[NotificationEvent, MessageTemplate] = {
    NotificationEvent.ON: MessageTemplate(
        subject="{Load} Switch Turned On",
        body=(
            "Turned the {load} switch on as the solar panels are generating more "
            "than the house usage plus the {load} usage."
        ),
    ),
    NotificationEvent.OFF_USAGE: MessageTemplate(
        subject="{Load} Switch Turned Off",
        body=(
            "Turned the {load} switch off as the combined current usage plus the "
            "{load} usage is more than {threshold:g} kW."
        ),
    ),
    NotificationEvent.OFF_VALUE_WINDOW: MessageTemplate(
        subject="{Load} Switch Turned Off",
        body="Turned the {load} switch off as it is no longer in the lowest cost rate period.",
    ),
    NotificationEvent.ON_VALUE_WINDOW: MessageTemplate(
        subject="{Load} Turned On",
        body="Turned the {load} switch on as it is now in the lowest cost rate period.",
    ),
    NotificationEvent.ON_ERROR: MessageTemplate(
        subject="{Load} Error Turning On",
        body="Could not turn the {load} switch on.",
    ),
    NotificationEvent.OFF_ERROR: MessageTemplate(
        subject="{Load} Error Turning Off",
        body="Could not turn the {load} switch off.",
    ),
    NotificationEvent.ON_VALUE_WINDOW_ERROR: MessageTemplate(
        subject="{Load} Error Turning On",
        body="Could not turn the {load} switch on during the lowest cost rate period.",
        # Actuation precedes the meter read in this period, so no current reading exists
        include_reading=False,
    ),
    NotificationEvent.STARTUP: MessageTemplate(
        subject="{Load} Controller Starting",
        body=(
            "Turned the gateway switch on and the {load} switch off at startup. "
            "Waiting before the first meter reading to allow the gateway to boot up."
        ),
        include_reading=False,
    ),
    NotificationEvent.REBOOT_TIMEOUT: MessageTemplate(
        subject="{Load} Controller Rebooted Gateway - Request Timeout",
        body="Rebooted the gateway since a Request Timeout response was received.",
        include_reading=False,
    ),
    NotificationEvent.REBOOT_UNAVAILABLE: MessageTemplate(
        subject="{Load} Controller Rebooted Gateway - Service Unavailable",
        body="Rebooted the gateway since a Service Unavailable response was received.",
        include_reading=False,
    ),
}


def render(
    event: NotificationEvent,
    demand_kw: float,
    load_name: str = "EV charger",
    threshold_kw: float = 0.0,
) -> RenderedMessage:
    """Render the template for ``event``, appending the meter reading where meaningful."""
    template = TEMPLATES[event]
    fields = {
        "load": load_name,
        "Load": _title(load_name),
        "threshold": threshold_kw,
    }
    body = template.body.format(**fields)
    if template.include_reading:
        body = f"{body} Meter reading: {demand_kw:.3f} kW."
    return RenderedMessage(
        event=event,
        subject=template.subject.format(**fields),
        body=body,
    )


def _title(name: str) -> str:
    # "EV charger" -> "EV Charger"; keeps acronyms intact
    return " ".join(word[:1].upper() + word[1:] for word in name.split())
