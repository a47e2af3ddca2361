"""Repositories for the notification tables.

Repositories take a session owned by the caller (see ``get_session``) and
never commit; they flush so that generated ids are available. All of them
return domain models, never ORM rows.
"""

import logging
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from qalam.domain.models import (
    EventOutcome,
    EventStatus,
    NotificationDelivery,
    NotificationEvent,
    NotificationEventInput,
    NotificationPreferenceSettings,
)
from qalam.utils.timestamps import format_timestamp, utc_now

from .exceptions import DataIntegrityError, PersistenceError, RecordNotFoundError
from .schema import (
    NotificationDeliveryModel,
    NotificationEventModel,
    NotificationSettingsModel,
    ProfileFollowModel,
    ProfileModel,
)

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 50


class EventRepository:
    """Append and drain the notification event queue."""

    def __init__(self, session: Session):
        self.session = session

    def enqueue(
        self, event_input: NotificationEventInput, created_at: Optional[datetime] = None
    ) -> int:
        """Insert a pending event and return its id.

        Raises:
            DataIntegrityError: On constraint violations
            PersistenceError: On any other database error
        """
        return self.enqueue_many([event_input], created_at=created_at)[0]

    def enqueue_many(
        self, inputs: Iterable[NotificationEventInput], created_at: Optional[datetime] = None
    ) -> List[int]:
        """Insert several pending events in one flush (publish fan-out)."""
        timestamp = format_timestamp(created_at or utc_now())
        models = [
            NotificationEventModel(
                event_type=item.event_type,
                recipient_id=item.recipient_id,
                actor_id=item.actor_id,
                article_id=item.article_id,
                payload=dict(item.payload),
                status=EventStatus.PENDING.value,
                created_at=timestamp,
            )
            for item in inputs
        ]
        if not models:
            return []

        try:
            self.session.add_all(models)
            self.session.flush()
        except IntegrityError as e:
            logger.error(f"Integrity error enqueueing events: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to enqueue events: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error enqueueing events: {e}", exc_info=True)
            raise PersistenceError(f"Failed to enqueue events: {e}") from e

        return [model.id for model in models]

    def fetch_pending_batch(self, limit: int = DEFAULT_BATCH_SIZE) -> List[NotificationEvent]:
        """Oldest pending events first, ties broken by id.

        Raises:
            PersistenceError: If the query fails
        """
        try:
            stmt = (
                select(NotificationEventModel)
                .where(NotificationEventModel.status == EventStatus.PENDING.value)
                .order_by(NotificationEventModel.created_at.asc(), NotificationEventModel.id.asc())
                .limit(limit)
            )
            rows = self.session.execute(stmt).scalars().all()
            return [row.to_domain() for row in rows]
        except SQLAlchemyError as e:
            logger.error(f"Error fetching pending events: {e}", exc_info=True)
            raise PersistenceError(f"Failed to fetch pending events: {e}") from e

    def mark_outcome(
        self,
        event_id: int,
        outcome: EventOutcome,
        processed_at: Optional[datetime] = None,
    ) -> bool:
        """Move a pending event to its terminal state.

        The UPDATE only matches rows that are still pending, so an event leaves
        ``pending`` at most once. Returns False when the event was already
        terminal.

        Raises:
            RecordNotFoundError: If the event does not exist
            PersistenceError: On database errors
        """
        try:
            stmt = (
                update(NotificationEventModel)
                .where(
                    NotificationEventModel.id == event_id,
                    NotificationEventModel.status == EventStatus.PENDING.value,
                )
                .values(
                    status=outcome.status.value,
                    processed_at=format_timestamp(processed_at or utc_now()),
                    error=outcome.reason,
                )
                .execution_options(synchronize_session=False)
            )
            result = self.session.execute(stmt)
            self.session.flush()
        except SQLAlchemyError as e:
            logger.error(f"Error updating event {event_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to update event {event_id}: {e}") from e

        if result.rowcount:
            return True

        if self.session.get(NotificationEventModel, event_id) is None:
            raise RecordNotFoundError(f"Notification event {event_id} not found")

        logger.warning(
            f"Event {event_id} already left pending; outcome {outcome.status.value} ignored",
            extra={"event": "database.event.already_terminal", "event_id": event_id},
        )
        return False

    def get(self, event_id: int) -> Optional[NotificationEvent]:
        try:
            model = self.session.get(NotificationEventModel, event_id, populate_existing=True)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load event {event_id}: {e}") from e
        return model.to_domain() if model else None

    def count_by_status(self, status: EventStatus) -> int:
        stmt = select(NotificationEventModel.id).where(
            NotificationEventModel.status == status.value
        )
        try:
            return len(self.session.execute(stmt).all())
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to count events: {e}") from e


class DeliveryRepository:
    """Write-once audit log of delivery attempts."""

    def __init__(self, session: Session):
        self.session = session

    def record(self, delivery: NotificationDelivery) -> NotificationDelivery:
        """Insert a delivery row. Rows are never updated afterwards.

        Raises:
            DataIntegrityError: If the referenced event does not exist
            PersistenceError: On other database errors
        """
        if delivery.created_at is None:
            delivery = delivery.model_copy(update={"created_at": utc_now()})

        model = NotificationDeliveryModel.from_domain(delivery)
        try:
            self.session.add(model)
            self.session.flush()
        except IntegrityError as e:
            logger.error(
                f"Integrity error recording delivery for event {delivery.event_id}: {e}",
                exc_info=True,
            )
            raise DataIntegrityError(f"Failed to record delivery: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error recording delivery: {e}", exc_info=True)
            raise PersistenceError(f"Failed to record delivery: {e}") from e
        return model.to_domain()

    def list_for_event(self, event_id: int) -> List[NotificationDelivery]:
        stmt = (
            select(NotificationDeliveryModel)
            .where(NotificationDeliveryModel.event_id == event_id)
            .order_by(NotificationDeliveryModel.id.asc())
        )
        try:
            return [row.to_domain() for row in self.session.execute(stmt).scalars().all()]
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to list deliveries: {e}") from e


class PreferenceRepository:
    """Read and write profile_notification_settings rows."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, profile_id: str) -> Optional[NotificationPreferenceSettings]:
        """Stored settings, or None when the profile never saved any."""
        try:
            model = self.session.get(NotificationSettingsModel, profile_id)
        except SQLAlchemyError as e:
            logger.error(f"Error loading settings for {profile_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to load notification settings: {e}") from e
        return model.to_domain() if model else None

    def upsert(self, settings: NotificationPreferenceSettings) -> NotificationPreferenceSettings:
        try:
            model = self.session.get(NotificationSettingsModel, settings.profile_id)
            if model is None:
                model = NotificationSettingsModel(profile_id=settings.profile_id)
                self.session.add(model)
            model.pref_email = settings.pref_email
            model.on_publish = settings.on_publish
            model.on_comment = settings.on_comment
            model.on_like = settings.on_like
            model.on_follow = settings.on_follow
            model.updated_at = format_timestamp(utc_now())
            self.session.flush()
        except IntegrityError as e:
            raise DataIntegrityError(f"Failed to save notification settings: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error saving settings for {settings.profile_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to save notification settings: {e}") from e
        return model.to_domain()


class ProfileRepository:
    """Profile display names."""

    def __init__(self, session: Session):
        self.session = session

    def get_display_name(self, profile_id: str) -> Optional[str]:
        try:
            model = self.session.get(ProfileModel, profile_id)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load profile {profile_id}: {e}") from e
        if model is None or not model.display_name or not model.display_name.strip():
            return None
        return model.display_name.strip()

    def upsert(self, profile_id: str, display_name: Optional[str]) -> None:
        try:
            model = self.session.get(ProfileModel, profile_id)
            if model is None:
                model = ProfileModel(id=profile_id, created_at=format_timestamp(utc_now()))
                self.session.add(model)
            model.display_name = display_name
            self.session.flush()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to save profile {profile_id}: {e}") from e


class FollowRepository:
    """Follower edges used by the publish fan-out."""

    def __init__(self, session: Session):
        self.session = session

    def follow(self, follower_id: str, author_id: str, notify_on_publish: bool = True) -> None:
        try:
            model = self.session.get(ProfileFollowModel, (follower_id, author_id))
            if model is None:
                model = ProfileFollowModel(
                    follower_id=follower_id,
                    author_id=author_id,
                    created_at=format_timestamp(utc_now()),
                )
                self.session.add(model)
            model.notify_on_publish = notify_on_publish
            self.session.flush()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to save follow edge: {e}") from e

    def list_publish_subscribers(self, author_id: str) -> List[str]:
        """Followers of ``author_id`` that asked to hear about new articles."""
        stmt = (
            select(ProfileFollowModel.follower_id)
            .where(
                ProfileFollowModel.author_id == author_id,
                ProfileFollowModel.notify_on_publish.is_(True),
            )
            .order_by(ProfileFollowModel.follower_id.asc())
        )
        try:
            return list(self.session.execute(stmt).scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Error listing followers of {author_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list followers: {e}") from e
