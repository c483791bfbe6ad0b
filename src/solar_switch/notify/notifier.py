"""Event notifier: renders a template and dispatches it through the mailer."""

from __future__ import annotations

import logging
from typing import Protocol

from solar_switch.control.modes import NotificationEvent
from solar_switch.errors import NotificationError
from solar_switch.notify.templates import RenderedMessage, render
from solar_switch.resilience.health_check import HealthChecker

logger = logging.getLogger(__name__)


class MailTransport(Protocol):
    async def send(self, message: RenderedMessage) -> None:
        ...


class Notifier:
    """Sends one message per event. Dispatch failures are logged and dropped."""

    def __init__(
        self,
        transport: MailTransport | None,
        load_name: str = "EV charger",
        threshold_kw: float = 0.0,
        health: HealthChecker | None = None,
    ) -> None:
        self._transport = transport
        self._load_name = load_name
        self._threshold_kw = threshold_kw
        self._health = health
        self.sent_count = 0

    async def notify(self, event: NotificationEvent, demand_kw: float) -> bool:
        """Render and send the message for ``event``. Returns True if it was delivered."""
        message = render(event, demand_kw, self._load_name, self._threshold_kw)
        if self._transport is None:
            logger.info("Notification (not sent, disabled): %s - %s", message.subject, message.body)
            return False
        try:
            await self._transport.send(message)
        except NotificationError as e:
            logger.error("Failed to send '%s' notification: %s", event.value, e)
            if self._health:
                self._health.record_failure("notifier", str(e))
            return False
        logger.info("Notification sent: %s", message.subject)
        self.sent_count += 1
        if self._health:
            self._health.record_success("notifier")
        return True
