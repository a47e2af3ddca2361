"""Core domain models for notification events, deliveries, and preferences.

This module defines the data structures used throughout the pipeline:
- NotificationEventInput: what a producer appends to the event store
- NotificationEvent: a stored event with its processing state
- EventOutcome: the terminal state an event moves to (closed variant)
- NotificationDelivery: one audit row per delivery attempt
- NotificationPreferenceSettings: per-recipient channel and event opt-ins
- Contact: resolved recipient address and display name
- ArticleRef: the article fields copied into events and editorial mail
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator

from qalam.utils.timestamps import ensure_utc


class EventType(str, Enum):
    """Event types the pipeline knows how to render and gate.

    Stored events keep ``event_type`` as a plain string so that producers can
    introduce new types before the pipeline learns about them.
    """

    PUBLISH = "publish"
    COMMENT = "comment"
    LIKE = "like"
    FOLLOW = "follow"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["EventType"]:
        """Return the matching member, or None for unknown types."""
        if not value:
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


class EventStatus(str, Enum):
    """Lifecycle states of a notification event."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"

    @property
    def is_terminal(self) -> bool:
        return self is not EventStatus.PENDING


class DeliveryStatus(str, Enum):
    """Outcome of a single delivery attempt."""

    SENT = "sent"
    FAILED = "failed"


# Reason codes written to NotificationEvent.error / NotificationDelivery.error
REASON_EVENT_DISABLED = "event_disabled"
REASON_EMAIL_DISABLED = "email_disabled"
REASON_NO_EMAIL = "no_email_on_file"
REASON_EMAIL_FAILED = "email_failed"
REASON_UNKNOWN = "unknown"

EMAIL_CHANNEL = "email"


@dataclass(frozen=True)
class EventOutcome:
    """Terminal state for a processed event.

    Only three shapes are legal: Completed (no reason), Failed(reason) and
    Skipped(reason). Use the constructors rather than instantiating directly.

    Attributes:
        status: Terminal EventStatus (never PENDING)
        reason: Reason code or error message (None only for COMPLETED)
    """

    status: EventStatus
    reason: Optional[str] = None

    def __post_init__(self):
        if self.status is EventStatus.PENDING:
            raise ValueError("pending is not a terminal outcome")
        if self.status is EventStatus.COMPLETED and self.reason is not None:
            raise ValueError("completed outcome cannot carry a reason")
        if self.status is not EventStatus.COMPLETED and not self.reason:
            raise ValueError(f"{self.status.value} outcome requires a reason")

    @classmethod
    def completed(cls) -> "EventOutcome":
        return cls(EventStatus.COMPLETED)

    @classmethod
    def failed(cls, reason: str) -> "EventOutcome":
        return cls(EventStatus.FAILED, reason)

    @classmethod
    def skipped(cls, reason: str) -> "EventOutcome":
        return cls(EventStatus.SKIPPED, reason)


class NotificationEventInput(BaseModel):
    """Event data supplied by a producer before it is stored."""

    event_type: str = Field(..., description="publish, comment, like, follow, ...")
    recipient_id: str = Field(..., description="Profile that should be notified")
    actor_id: Optional[str] = Field(None, description="Profile that triggered the event")
    article_id: Optional[int] = Field(None, description="Related article, if any")
    payload: Dict[str, Any] = Field(default_factory=dict, description="Event-specific context")

    @field_validator("event_type")
    @classmethod
    def normalize_event_type(cls, v: str) -> str:
        """Lower-case and strip the event type."""
        stripped = v.strip().lower()
        if not stripped:
            raise ValueError("event_type cannot be empty")
        return stripped

    @field_validator("recipient_id")
    @classmethod
    def require_recipient(cls, v: str) -> str:
        """Reject blank recipient identifiers."""
        if not v or not v.strip():
            raise ValueError("recipient_id cannot be empty")
        return v.strip()


class NotificationEvent(BaseModel):
    """A stored notification event.

    ``processed_at`` is set exactly once, when the processor finishes with the
    event regardless of outcome. ``error`` holds the reason code for failed and
    skipped events.
    """

    id: int
    event_type: str
    recipient_id: str
    actor_id: Optional[str] = None
    article_id: Optional[int] = None
    payload: Dict[str, Any] = Field(default_factory=dict)
    status: EventStatus = EventStatus.PENDING
    created_at: datetime
    processed_at: Optional[datetime] = None
    error: Optional[str] = None

    @field_validator("created_at", "processed_at")
    @classmethod
    def ensure_timestamps_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Ensure datetimes are timezone-aware UTC."""
        return ensure_utc(v)

    @property
    def known_type(self) -> Optional[EventType]:
        return EventType.parse(self.event_type)

    def payload_value(self, key: str) -> Optional[Any]:
        """Return a payload field, treating blank strings as missing."""
        value = (self.payload or {}).get(key)
        if isinstance(value, str) and not value.strip():
            return None
        return value


class NotificationDelivery(BaseModel):
    """Append-only audit row for one delivery attempt."""

    id: Optional[int] = None
    event_id: int
    channel: str = EMAIL_CHANNEL
    destination: Optional[str] = None
    status: DeliveryStatus
    error: Optional[str] = None
    sent_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @field_validator("sent_at", "created_at")
    @classmethod
    def ensure_timestamps_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Ensure datetimes are timezone-aware UTC."""
        return ensure_utc(v)


class NotificationPreferenceSettings(BaseModel):
    """Per-recipient notification settings.

    ``pref_email`` is the master switch for the email channel. The per-type
    flags may be None for rows written before a flag existed; the resolver then
    falls back to the per-type default.
    """

    profile_id: str
    pref_email: bool = False
    on_publish: Optional[bool] = True
    on_comment: Optional[bool] = True
    on_like: Optional[bool] = False
    on_follow: Optional[bool] = True

    @classmethod
    def defaults(cls, profile_id: str) -> "NotificationPreferenceSettings":
        """Settings used for recipients who never saved a settings row."""
        return cls(
            profile_id=profile_id,
            pref_email=False,
            on_publish=True,
            on_comment=True,
            on_like=False,
            on_follow=True,
        )


@dataclass(frozen=True)
class Contact:
    """Resolved contact details for a profile."""

    email: Optional[str]
    display_name: Optional[str]


@dataclass(frozen=True)
class ArticleRef:
    """The article fields producers and editorial mail copy into messages."""

    id: int
    author_id: str
    title: str
    slug: str
    excerpt: Optional[str] = None

    def base_payload(self) -> dict:
        return {"article_title": self.title, "article_slug": self.slug}
