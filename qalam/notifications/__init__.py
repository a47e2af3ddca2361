"""Everything between a pending event and an outgoing email.

- PreferenceResolver / is_event_enabled: should this recipient hear about it
- NotificationSettingsService: owner-scoped settings page operations
- ContactResolver / ContactCache: who is the recipient, who is the actor
- ContentRenderer: subject, text and HTML from Jinja2 templates
- DeliveryChannel / EmailChannel / SMTPClient: hand the message to SMTP
- EditorialMailer: approval, rejection and reviewer submission emails
"""

from .channel import DeliveryChannel, EmailChannel
from .contacts import ContactCache, ContactResolver
from .editorial import AUTHOR_NAME_FALLBACK, EditorialMailer
from .models import (
    NotificationError,
    NotificationTemplateError,
    RenderedContent,
    SendResult,
    SMTPDeliveryError,
)
from .payloads import build_render_context
from .preferences import (
    NotificationSettingsService,
    PreferenceResolver,
    SettingsAccessError,
    is_event_enabled,
)
from .smtp_client import SMTPClient, SMTPSettings, build_sender_address
from .templates import ContentRenderer

__all__ = [
    "ContentRenderer",
    "ContactCache",
    "ContactResolver",
    "DeliveryChannel",
    "EmailChannel",
    "EditorialMailer",
    "AUTHOR_NAME_FALLBACK",
    "NotificationSettingsService",
    "PreferenceResolver",
    "SettingsAccessError",
    "is_event_enabled",
    "SMTPClient",
    "SMTPSettings",
    "build_sender_address",
    "build_render_context",
    "RenderedContent",
    "SendResult",
    "NotificationError",
    "NotificationTemplateError",
    "SMTPDeliveryError",
]
