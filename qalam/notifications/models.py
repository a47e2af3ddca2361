"""Result types and exceptions for rendering and delivery."""

from dataclasses import dataclass
from typing import Optional


class NotificationError(Exception):
    """Base exception for notification errors."""

    pass


class NotificationTemplateError(NotificationError):
    """Raised when a template is missing or fails to render."""

    pass


class SMTPDeliveryError(NotificationError):
    """Raised by SMTPClient when a message could not be handed to the server."""

    pass


@dataclass(frozen=True)
class RenderedContent:
    """Subject and both bodies of one notification."""

    subject: str
    text: str
    html: str


@dataclass(frozen=True)
class SendResult:
    """Outcome of one delivery attempt.

    Attributes:
        success: True when the channel accepted the message
        error: Failure description, None on success (may also be None on an
            unexplained failure)
    """

    success: bool
    error: Optional[str] = None

    @classmethod
    def ok(cls) -> "SendResult":
        return cls(success=True)

    @classmethod
    def failure(cls, error: Optional[str]) -> "SendResult":
        return cls(success=False, error=error)
