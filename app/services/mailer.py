"""Outbound mail over SMTP (password reset links)."""

from __future__ import annotations

import logging
from email.message import EmailMessage
from typing import TYPE_CHECKING

import aiosmtplib

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)


class MailError(Exception):
    """Raised when a message cannot be handed to the SMTP server."""

    status_code = 500

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class SmtpMailer:
    """Sends plain-text mail through the SMTP server configured in settings."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    def _build_message(self, to: str, subject: str, text: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self._settings.MAIL_FROM
        message["To"] = to
        message["Subject"] = subject
        message.set_content(text)
        return message

    async def send_mail(self, to: str, subject: str, text: str) -> None:
        """Deliver one message. Raises MailError on any transport failure."""
        settings = self._settings
        if not settings.SMTP_HOST:
            raise MailError("Mail transport is not configured (SMTP_HOST is not set).")

        password = (
            settings.SMTP_PASSWORD.get_secret_value() if settings.SMTP_PASSWORD else None
        )
        message = self._build_message(to, subject, text)
        try:
            await aiosmtplib.send(
                message,
                hostname=settings.SMTP_HOST,
                port=settings.SMTP_PORT,
                username=settings.SMTP_USERNAME or None,
                password=password,
                use_tls=settings.SMTP_USE_TLS,
                start_tls=settings.SMTP_START_TLS,
                timeout=settings.SMTP_TIMEOUT_SEC,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error(
                "Mail delivery failed",
                extra={"smtp_host": settings.SMTP_HOST, "reason": str(e)[:500]},
            )
            raise MailError("Error sending email") from e

        logger.info("Mail sent", extra={"recipient": to, "subject": subject})
