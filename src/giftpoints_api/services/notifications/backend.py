"""Email backends used for member verification mail."""

from __future__ import annotations

import asyncio
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from typing import List, Optional, Protocol

from loguru import logger

from giftpoints_api.core.settings import Settings


class EmailBackend(Protocol):
    """Minimal protocol for sending transactional emails."""

    async def send_email(
        self,
        recipient: str,
        subject: str,
        body_text: str,
        *,
        body_html: str | None = None,
    ) -> None:
        ...


def _build_message(
    sender: str | None,
    recipient: str,
    subject: str,
    body_text: str,
    body_html: str | None,
) -> EmailMessage:
    message = EmailMessage()
    if sender:
        message["From"] = sender
    message["To"] = recipient
    message["Subject"] = subject
    message.set_content(body_text)
    if body_html:
        message.add_alternative(body_html, subtype="html")
    return message


class SMTPEmailBackend:
    """SMTP backend; the blocking client runs in a worker thread."""

    def __init__(
        self,
        *,
        host: str,
        port: int,
        username: Optional[str],
        password: Optional[str],
        use_tls: bool,
        sender_email: str,
    ) -> None:
        self._host = host
        self._port = port
        self._username = username
        self._password = password
        self._use_tls = use_tls
        self._sender_email = sender_email

    async def send_email(
        self,
        recipient: str,
        subject: str,
        body_text: str,
        *,
        body_html: str | None = None,
    ) -> None:
        message = _build_message(self._sender_email, recipient, subject, body_text, body_html)
        await asyncio.to_thread(self._send, message)

    def _send(self, message: EmailMessage) -> None:
        smtp = smtplib.SMTP(self._host, self._port, timeout=10)
        try:
            if self._use_tls:
                smtp.starttls()
            if self._username and self._password:
                smtp.login(self._username, self._password)
            smtp.send_message(message)
        finally:
            smtp.quit()


class LoggingEmailBackend:
    """Development backend that logs outbound mail instead of sending it."""

    async def send_email(
        self,
        recipient: str,
        subject: str,
        body_text: str,
        *,
        body_html: str | None = None,
    ) -> None:
        logger.info("Email delivery skipped (SMTP not configured)", recipient=recipient, subject=subject)


@dataclass
class InMemoryEmailBackend:
    """Test backend storing outbound messages in memory."""

    sent_messages: List[EmailMessage]
    fail_with: Exception | None

    def __init__(self, *, fail_with: Exception | None = None) -> None:
        self.sent_messages = []
        self.fail_with = fail_with

    async def send_email(
        self,
        recipient: str,
        subject: str,
        body_text: str,
        *,
        body_html: str | None = None,
    ) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.sent_messages.append(_build_message(None, recipient, subject, body_text, body_html))


def build_email_backend(config: Settings) -> EmailBackend:
    """Pick SMTP when a host and sender are configured, else log-only delivery."""

    if config.smtp_host and config.smtp_sender_email:
        return SMTPEmailBackend(
            host=config.smtp_host,
            port=config.smtp_port,
            username=config.smtp_username,
            password=config.smtp_password,
            use_tls=config.smtp_use_tls,
            sender_email=config.smtp_sender_email,
        )
    return LoggingEmailBackend()


__all__ = [
    "EmailBackend",
    "InMemoryEmailBackend",
    "LoggingEmailBackend",
    "SMTPEmailBackend",
    "build_email_backend",
]
