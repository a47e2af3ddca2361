"""Domain models for the Qalam notification pipeline."""

from .models import (
    ArticleRef,
    Contact,
    DeliveryStatus,
    EventOutcome,
    EventStatus,
    EventType,
    NotificationDelivery,
    NotificationEvent,
    NotificationEventInput,
    NotificationPreferenceSettings,
)

__all__ = [
    "ArticleRef",
    "Contact",
    "DeliveryStatus",
    "EventOutcome",
    "EventStatus",
    "EventType",
    "NotificationDelivery",
    "NotificationEvent",
    "NotificationEventInput",
    "NotificationPreferenceSettings",
]
