"""Outbound email.

The core depends only on the EmailSender protocol. SmtpEmailSender is
the default implementation: it builds a MIME message and hands it to
smtplib in a worker thread so the event loop is not blocked.
"""

import asyncio
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Protocol

from eventreg.config import Settings, get_settings
from eventreg.errors import TransportError

logger = logging.getLogger(__name__)


class EmailSender(Protocol):
    """Anything that can deliver one email."""

    async def send_email(
        self,
        to: str,
        subject: str,
        body: str,
        is_html: bool = False,
        from_address: str | None = None,
    ) -> None:
        ...


class SmtpEmailSender:
    """EmailSender backed by an SMTP relay."""

    def __init__(self, settings: Settings | None = None):
        self._settings = settings or get_settings()

    def _build_message(
        self, to: str, subject: str, body: str, is_html: bool, from_address: str
    ) -> MIMEMultipart:
        message = MIMEMultipart("alternative")
        message["From"] = from_address
        message["To"] = to
        message["Subject"] = subject
        message.attach(MIMEText(body, "html" if is_html else "plain", "utf-8"))
        return message

    def _deliver(self, message: MIMEMultipart) -> None:
        settings = self._settings
        with smtplib.SMTP(
            settings.SMTP_HOST, settings.SMTP_PORT, timeout=settings.SMTP_TIMEOUT_SECONDS
        ) as server:
            if settings.SMTP_USE_TLS:
                server.starttls()
            if settings.SENDER_PASSWORD:
                server.login(settings.SENDER_EMAIL, settings.SENDER_PASSWORD)
            server.send_message(message)

    async def send_email(
        self,
        to: str,
        subject: str,
        body: str,
        is_html: bool = False,
        from_address: str | None = None,
    ) -> None:
        """Send one message.

        Raises:
            TransportError: If the relay rejects the message or cannot be reached.
        """
        message = self._build_message(
            to, subject, body, is_html, from_address or self._settings.SENDER_EMAIL
        )
        try:
            await asyncio.to_thread(self._deliver, message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {to}: {e}")
            raise TransportError(f"Could not send email to {to}") from e

        logger.info(f"Email sent to {to}")
