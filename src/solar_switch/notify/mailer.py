"""SMTP mail transport for notifications."""

from __future__ import annotations

import asyncio
import logging
import smtplib
import ssl
from email.message import EmailMessage
from email.utils import formataddr

from solar_switch.config.schema import NotificationConfig
from solar_switch.errors import NotificationError
from solar_switch.notify.templates import RenderedMessage

logger = logging.getLogger(__name__)


class SMTPMailer:
    """Sends rendered messages over SMTP (implicit TLS, STARTTLS or plain).

    smtplib blocks, so each send runs in a worker thread and is awaited.
    """

    def __init__(self, config: NotificationConfig) -> None:
        self._config = config

    @property
    def sender(self) -> str:
        return self._config.sender or self._config.username

    def build_message(self, message: RenderedMessage) -> EmailMessage:
        msg = EmailMessage()
        msg["To"] = ", ".join(self._config.recipients)
        msg["From"] = formataddr((self._config.sender_name, self.sender))
        msg["Subject"] = message.subject
        msg.set_content(message.body)
        return msg

    async def send(self, message: RenderedMessage) -> None:
        """Send ``message`` to all configured recipients.

        Raises:
            NotificationError: the message could not be handed to the server.
        """
        if not self._config.recipients:
            raise NotificationError("No notification recipients configured")
        msg = self.build_message(message)
        try:
            await asyncio.to_thread(self._send_sync, msg)
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationError(f"SMTP send to {self._config.smtp_host} failed: {e}") from e

    def _send_sync(self, msg: EmailMessage) -> None:
        cfg = self._config
        if cfg.security == "ssl":
            server: smtplib.SMTP = smtplib.SMTP_SSL(
                cfg.smtp_host, cfg.smtp_port,
                timeout=cfg.timeout_seconds,
                context=ssl.create_default_context(),
            )
        else:
            server = smtplib.SMTP(cfg.smtp_host, cfg.smtp_port, timeout=cfg.timeout_seconds)
        with server:
            if cfg.security == "starttls":
                server.starttls(context=ssl.create_default_context())
            if cfg.username:
                server.login(cfg.username, cfg.password)
            server.send_message(msg, from_addr=self.sender, to_addrs=cfg.recipients)
