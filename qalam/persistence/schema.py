"""ORM models for the notification tables.

Timestamps are stored as ISO 8601 UTC strings with microseconds and a ``Z``
suffix, so ordering by the column is chronological.
"""

import logging

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    inspect,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base

from qalam.domain.models import (
    DeliveryStatus,
    EventStatus,
    NotificationDelivery,
    NotificationEvent,
    NotificationPreferenceSettings,
)
from qalam.utils.timestamps import format_timestamp, parse_iso_datetime

logger = logging.getLogger(__name__)

Base = declarative_base()


class NotificationEventModel(Base):
    """Queue row written by producers and drained by the processor."""

    __tablename__ = "notification_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    event_type = Column(String(50), nullable=False)
    recipient_id = Column(String(64), nullable=False)
    actor_id = Column(String(64), nullable=True)
    article_id = Column(Integer, nullable=True)
    payload = Column(JSON, nullable=False, default=dict)
    status = Column(String(20), nullable=False, default=EventStatus.PENDING.value)
    created_at = Column(String(50), nullable=False)
    processed_at = Column(String(50), nullable=True)
    error = Column(Text, nullable=True)

    __table_args__ = (
        Index("idx_notification_events_pending", "status", "created_at", "id"),
        Index("idx_notification_events_recipient", "recipient_id"),
    )

    def to_domain(self) -> NotificationEvent:
        return NotificationEvent(
            id=self.id,
            event_type=self.event_type,
            recipient_id=self.recipient_id,
            actor_id=self.actor_id,
            article_id=self.article_id,
            payload=dict(self.payload or {}),
            status=EventStatus(self.status),
            created_at=parse_iso_datetime(self.created_at),
            processed_at=parse_iso_datetime(self.processed_at),
            error=self.error,
        )


class NotificationDeliveryModel(Base):
    """Append-only audit row, one per delivery attempt."""

    __tablename__ = "notification_deliveries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    event_id = Column(
        Integer, ForeignKey("notification_events.id", ondelete="CASCADE"), nullable=False
    )
    channel = Column(String(20), nullable=False)
    destination = Column(String(320), nullable=True)
    status = Column(String(20), nullable=False)
    error = Column(Text, nullable=True)
    sent_at = Column(String(50), nullable=True)
    created_at = Column(String(50), nullable=False)

    __table_args__ = (Index("idx_notification_deliveries_event", "event_id"),)

    def to_domain(self) -> NotificationDelivery:
        return NotificationDelivery(
            id=self.id,
            event_id=self.event_id,
            channel=self.channel,
            destination=self.destination,
            status=DeliveryStatus(self.status),
            error=self.error,
            sent_at=parse_iso_datetime(self.sent_at),
            created_at=parse_iso_datetime(self.created_at),
        )

    @classmethod
    def from_domain(cls, delivery: NotificationDelivery) -> "NotificationDeliveryModel":
        return cls(
            event_id=delivery.event_id,
            channel=delivery.channel,
            destination=delivery.destination,
            status=DeliveryStatus(delivery.status).value,
            error=delivery.error,
            sent_at=format_timestamp(delivery.sent_at),
            created_at=format_timestamp(delivery.created_at),
        )


class NotificationSettingsModel(Base):
    """Per-profile notification preferences.

    Event flags are nullable; a null flag means "use the default for that type".
    """

    __tablename__ = "profile_notification_settings"

    profile_id = Column(String(64), primary_key=True)
    pref_email = Column(Boolean, nullable=False, default=False)
    on_publish = Column(Boolean, nullable=True)
    on_comment = Column(Boolean, nullable=True)
    on_like = Column(Boolean, nullable=True)
    on_follow = Column(Boolean, nullable=True)
    updated_at = Column(String(50), nullable=True)

    def to_domain(self) -> NotificationPreferenceSettings:
        return NotificationPreferenceSettings(
            profile_id=self.profile_id,
            pref_email=bool(self.pref_email),
            on_publish=self.on_publish,
            on_comment=self.on_comment,
            on_like=self.on_like,
            on_follow=self.on_follow,
        )


class ProfileModel(Base):
    """Public profile data; only the display name matters here."""

    __tablename__ = "profiles"

    id = Column(String(64), primary_key=True)
    display_name = Column(String(255), nullable=True)
    created_at = Column(String(50), nullable=True)


class ProfileFollowModel(Base):
    """Follower -> author edge."""

    __tablename__ = "profile_follows"

    follower_id = Column(String(64), primary_key=True)
    author_id = Column(String(64), primary_key=True)
    notify_on_publish = Column(Boolean, nullable=False, default=True)
    created_at = Column(String(50), nullable=True)

    __table_args__ = (Index("idx_profile_follows_author", "author_id"),)


def create_schema(engine: Engine) -> None:
    """Create all tables and indexes that do not exist yet (idempotent)."""
    try:
        Base.metadata.create_all(engine, checkfirst=True)
        tables = inspect(engine).get_table_names()
        logger.info(
            f"Database schema ready. Tables: {', '.join(sorted(tables))}",
            extra={"event": "database.schema.ready", "component": "database"},
        )
    except Exception as e:
        logger.error(f"Failed to create database schema: {e}", exc_info=True)
        raise
