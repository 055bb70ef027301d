"""SMTP email delivery.

Implements the Delivery protocol for digests and sends welcome emails.
smtplib is blocking, so each send runs in a worker thread.
"""

from __future__ import annotations

import asyncio
import html
import smtplib
import ssl
from email.message import EmailMessage
from typing import TYPE_CHECKING, Literal

from signalist.core.constants import DEFAULT_EXTERNAL_TIMEOUT_SECONDS
from signalist.core.exceptions import ConfigurationError
from signalist.core.logging import get_logger
from signalist.notifications.templates import (
    NEWS_SUMMARY_EMAIL_SUBJECT,
    NEWS_SUMMARY_EMAIL_TEMPLATE,
    WELCOME_EMAIL_SUBJECT,
    WELCOME_EMAIL_TEMPLATE,
    WELCOME_EMAIL_TEXT,
    render,
)

if TYPE_CHECKING:
    from signalist.config import Settings

logger = get_logger(__name__)

SmtpSecurity = Literal["starttls", "ssl", "none"]


class EmailDelivery:
    """Sends digest and welcome emails over SMTP.

    Usage:
        delivery = EmailDelivery.from_settings(settings)
        ok = await delivery.deliver("user@example.com", "Monday, October 19, 2026", body)
    """

    def __init__(
        self,
        host: str,
        from_email: str,
        port: int = 587,
        user: str | None = None,
        password: str | None = None,
        security: SmtpSecurity = "starttls",
        timeout: float = DEFAULT_EXTERNAL_TIMEOUT_SECONDS,
    ) -> None:
        self._host = host
        self._port = port
        self._from = from_email
        self._user = user
        self._password = password
        self._security = security
        self._timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> EmailDelivery:
        """Build from settings.

        Raises:
            ConfigurationError: If the SMTP host or sender address is missing
        """
        missing = []
        if not settings.smtp_host:
            missing.append("SMTP_HOST")
        if not settings.smtp_from:
            missing.append("SMTP_FROM")
        if missing:
            raise ConfigurationError(
                f"Email delivery not configured, missing: {', '.join(missing)}"
            )

        return cls(
            host=settings.smtp_host or "",
            from_email=settings.smtp_from or "",
            port=settings.smtp_port,
            user=settings.smtp_user,
            password=settings.smtp_password.get_secret_value() if settings.smtp_password else None,
            security=settings.smtp_security,
            timeout=settings.external_timeout_seconds,
        )

    async def deliver(self, recipient: str, context_date: str, body: str) -> bool:
        """Send a digest email. Returns False on any SMTP failure."""
        subject = render(NEWS_SUMMARY_EMAIL_SUBJECT, date=context_date)
        html_body = render(
            NEWS_SUMMARY_EMAIL_TEMPLATE,
            date=html.escape(context_date),
            newsContent=body,
        )
        text_body = (
            f"Market News Summary - {context_date}\n\n"
            "Open this email in an HTML-capable client to read today's summary."
        )
        return await self._send(recipient, subject, text_body, html_body)

    async def send_welcome(self, recipient: str, name: str, intro: str) -> bool:
        """Send the welcome email with a personalized intro."""
        html_body = render(
            WELCOME_EMAIL_TEMPLATE,
            name=html.escape(name),
            intro=html.escape(intro),
        )
        return await self._send(recipient, WELCOME_EMAIL_SUBJECT, WELCOME_EMAIL_TEXT, html_body)

    async def _send(self, recipient: str, subject: str, text_body: str, html_body: str) -> bool:
        if not recipient:
            logger.warning("No recipient address, email not sent", subject=subject)
            return False

        msg = self._build_message(recipient, subject, text_body, html_body)
        try:
            await asyncio.to_thread(self._send_sync, msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Email send failed", recipient=recipient, subject=subject, error=str(e))
            return False

        logger.debug("Email sent", recipient=recipient, subject=subject)
        return True

    def _build_message(
        self, recipient: str, subject: str, text_body: str, html_body: str
    ) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self._from
        msg["To"] = recipient
        msg.set_content(text_body)
        msg.add_alternative(html_body, subtype="html")
        return msg

    def _send_sync(self, msg: EmailMessage) -> None:
        if self._security == "ssl":
            with smtplib.SMTP_SSL(
                self._host, self._port, timeout=self._timeout, context=ssl.create_default_context()
            ) as server:
                if self._user:
                    server.login(self._user, self._password or "")
                server.send_message(msg)
            return

        with smtplib.SMTP(self._host, self._port, timeout=self._timeout) as server:
            server.ehlo()
            if self._security == "starttls":
                server.starttls(context=ssl.create_default_context())
                server.ehlo()
            if self._user:
                server.login(self._user, self._password or "")
            server.send_message(msg)
