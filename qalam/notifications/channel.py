"""Delivery channels.

A channel takes rendered content and a destination and reports success or
failure. Channels never raise for delivery problems; they return a
SendResult so the processor can write the audit row either way.
"""

from abc import ABC, abstractmethod
from email.message import EmailMessage
from email.utils import formatdate, make_msgid

from email_validator import EmailNotValidError, validate_email

from qalam.domain.models import EMAIL_CHANNEL
from qalam.logging import get_logger

from .models import SendResult, SMTPDeliveryError
from .smtp_client import SMTPClient

logger = get_logger(__name__, component="delivery")


class DeliveryChannel(ABC):
    """Abstract outbound channel."""

    @property
    @abstractmethod
    def channel_name(self) -> str:
        """Value stored in NotificationDelivery.channel."""

    @abstractmethod
    def send(self, to: str, subject: str, text: str, html: str) -> SendResult:
        """Attempt one delivery. No retries at this layer."""


class EmailChannel(DeliveryChannel):
    """Multipart (text + HTML) email over SMTP."""

    def __init__(self, smtp_client: SMTPClient, sender: str):
        if not sender:
            raise ValueError("sender cannot be empty")
        self.smtp_client = smtp_client
        self.sender = sender

    @property
    def channel_name(self) -> str:
        return EMAIL_CHANNEL

    def send(self, to: str, subject: str, text: str, html: str) -> SendResult:
        try:
            recipient = validate_email(to, check_deliverability=False).normalized
        except EmailNotValidError as e:
            logger.warning(
                f"Invalid recipient address: {e}",
                extra={"event": "delivery.failed", "reason": "invalid_address"},
            )
            return SendResult.failure(f"invalid_recipient: {e}")

        message = self._build_message(recipient, subject, text, html)

        try:
            self.smtp_client.send(message)
        except SMTPDeliveryError as e:
            logger.warning(
                f"Email delivery failed: {e}",
                extra={"event": "delivery.failed", "channel": self.channel_name},
            )
            return SendResult.failure(str(e) or None)

        logger.info(
            "Email delivered",
            extra={"event": "delivery.sent", "channel": self.channel_name},
        )
        return SendResult.ok()

    def _build_message(self, to: str, subject: str, text: str, html: str) -> EmailMessage:
        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = self.sender
        message["To"] = to
        message["Date"] = formatdate(localtime=False)
        message["Message-ID"] = make_msgid(domain=self.sender.rpartition("@")[2].strip(">") or None)
        message.set_content(text, charset="utf-8")
        message.add_alternative(html, subtype="html", charset="utf-8")
        return message
