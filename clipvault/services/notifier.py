# clipvault/services/notifier.py
"""
Notification transports: "send this message to these people".

  LogNotifier      default; writes the message to the log only
  WebhookNotifier  POSTs {subject, body, recipients} as JSON (NOTIFY_WEBHOOK_URL)
  EmailNotifier    plain-text mail through SMTP_HOST

Callers treat sending as fire-and-forget: failures are raised here and the
caller decides whether to log or escalate.
"""

import asyncio
import smtplib
from email.message import EmailMessage

import httpx

from clipvault.config import settings
from clipvault.utils.logger import get_logger

logger = get_logger(__name__)


class Notifier:
    async def send(self, subject: str, body: str, recipients: list):
        raise NotImplementedError


class LogNotifier(Notifier):
    async def send(self, subject: str, body: str, recipients: list):
        logger.info(f"[NOTIFY] {subject} → {', '.join(recipients) or '(no recipients)'}\n{body}")


class WebhookNotifier(Notifier):
    def __init__(self, url: str, timeout: float = 10):
        self.url = url
        self.timeout = timeout

    async def send(self, subject: str, body: str, recipients: list):
        payload = {"subject": subject, "body": body, "recipients": list(recipients)}
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(self.url, json=payload)
            response.raise_for_status()
        logger.info(f"[NOTIFY] Webhook accepted '{subject}' (HTTP {response.status_code})")


class EmailNotifier(Notifier):
    def __init__(self, host: str, port: int = 25, sender: str = settings.NOTIFY_SENDER, timeout: float = 10):
        self.host = host
        self.port = port
        self.sender = sender
        self.timeout = timeout

    def _send(self, msg: EmailMessage):
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            smtp.send_message(msg)

    async def send(self, subject: str, body: str, recipients: list):
        if not recipients:
            raise ValueError("No recipients configured for email notification")
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = ", ".join(recipients)
        msg["Subject"] = subject
        msg.set_content(body)
        await asyncio.to_thread(self._send, msg)
        logger.info(f"[NOTIFY] Mailed '{subject}' to {len(recipients)} recipient(s)")


def get_notifier() -> Notifier:
    if settings.NOTIFY_WEBHOOK_URL:
        return WebhookNotifier(settings.NOTIFY_WEBHOOK_URL)
    if settings.SMTP_HOST:
        return EmailNotifier(settings.SMTP_HOST, settings.SMTP_PORT)
    return LogNotifier()
