"""Batch processing of pending notification events."""

from .exceptions import EventFetchError, ProcessingError
from .models import NO_PENDING_EVENTS, BatchResult, FailedEvent
from .processor import NotificationEventProcessor

__all__ = [
    "NotificationEventProcessor",
    "BatchResult",
    "FailedEvent",
    "NO_PENDING_EVENTS",
    "ProcessingError",
    "EventFetchError",
]
