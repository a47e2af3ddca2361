"""Drains pending notification events into deliveries.

One invocation fetches up to 50 pending events and walks them in order:

    preferences -> event gate -> email gate -> contacts -> render
        -> (no address: failed delivery row) | send -> delivery row
        -> terminal status

Each event runs in its own transaction. An exception anywhere in that chain
rolls the event's transaction back and marks the event failed in a fresh
transaction, then the loop moves on.
"""

from typing import Callable, ContextManager, List, Optional
from uuid import uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from qalam.domain.models import (
    REASON_EMAIL_DISABLED,
    REASON_EMAIL_FAILED,
    REASON_EVENT_DISABLED,
    REASON_NO_EMAIL,
    REASON_UNKNOWN,
    DeliveryStatus,
    EventOutcome,
    EventStatus,
    NotificationDelivery,
    NotificationEvent,
)
from qalam.identity import IdentityProvider
from qalam.logging import get_logger
from qalam.logging.context import log_context
from qalam.notifications.channel import DeliveryChannel
from qalam.notifications.contacts import ContactCache, ContactResolver
from qalam.notifications.preferences import PreferenceResolver, is_event_enabled
from qalam.notifications.templates import ContentRenderer
from qalam.persistence import (
    DEFAULT_BATCH_SIZE,
    DeliveryRepository,
    EventRepository,
    PersistenceError,
    get_session,
)
from qalam.utils.timestamps import utc_now

from .exceptions import EventFetchError
from .models import NO_PENDING_EVENTS, BatchResult, FailedEvent

logger = get_logger(__name__, component="processor")

SessionFactory = Callable[[], ContextManager[Session]]


class NotificationEventProcessor:
    """Processes one batch of pending events per call.

    Runs are sequential internally and hold no lock: two overlapping runs can
    both pick up the same pending event and send it twice. ``mark_outcome``
    only updates rows that are still pending, so the status still changes
    once.
    """

    def __init__(
        self,
        identity_provider: IdentityProvider,
        renderer: ContentRenderer,
        channel: DeliveryChannel,
        session_factory: SessionFactory = get_session,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ):
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got: {batch_size}")
        self.identity_provider = identity_provider
        self.renderer = renderer
        self.channel = channel
        self.session_factory = session_factory
        self.batch_size = batch_size

    def process_pending(self) -> BatchResult:
        """Process the oldest pending events.

        Returns:
            BatchResult; ``message`` is ``no_pending_events`` for an empty batch

        Raises:
            EventFetchError: If the batch could not be read
        """
        run_id = uuid4().hex
        started_at = utc_now()

        with log_context(run_id=run_id):
            batch = self._fetch_batch()

            if not batch:
                logger.debug(
                    "No pending notification events",
                    extra={"event": "processor.run.empty"},
                )
                return BatchResult(
                    message=NO_PENDING_EVENTS,
                    run_id=run_id,
                    started_at=started_at,
                    finished_at=utc_now(),
                )

            logger.info(
                f"Processing {len(batch)} pending notification events",
                extra={"event": "processor.run.started", "batch_size": len(batch)},
            )

            cache = ContactCache()
            result = BatchResult(total=len(batch), run_id=run_id, started_at=started_at)

            for event in batch:
                with log_context(event_id=event.id, event_type=event.event_type):
                    outcome = self._process_event(event, cache)

                if outcome.status is EventStatus.COMPLETED:
                    result.processed += 1
                elif outcome.status is EventStatus.SKIPPED:
                    result.skipped += 1
                else:
                    result.failed.append(FailedEvent(id=event.id, reason=outcome.reason))

            result.finished_at = utc_now()
            logger.info(
                "Notification run completed",
                extra={
                    "event": "processor.run.completed",
                    "processed": result.processed,
                    "failed": len(result.failed),
                    "skipped": result.skipped,
                    "total": result.total,
                    "duration_ms": int(result.duration_seconds * 1000),
                },
            )
            return result

    def _fetch_batch(self) -> List[NotificationEvent]:
        try:
            with self.session_factory() as session:
                return EventRepository(session).fetch_pending_batch(self.batch_size)
        except (PersistenceError, SQLAlchemyError) as e:
            logger.error(
                f"Failed to fetch pending events: {e}",
                exc_info=True,
                extra={"event": "processor.fetch.failed"},
            )
            raise EventFetchError() from e

    def _process_event(self, event: NotificationEvent, cache: ContactCache) -> EventOutcome:
        try:
            with self.session_factory() as session:
                return self._handle_event(session, event, cache)
        except Exception as e:
            # Per-event catch-all: one bad event never aborts the batch
            reason = str(e) or REASON_UNKNOWN
            logger.error(
                f"Error processing notification event {event.id}: {reason}",
                exc_info=True,
                extra={
                    "event": "processor.event.failed",
                    "reason": reason,
                    "error_type": type(e).__name__,
                },
            )
            self._mark_failed_after_error(event.id, reason)
            return EventOutcome.failed(reason)

    def _handle_event(
        self, session: Session, event: NotificationEvent, cache: ContactCache
    ) -> EventOutcome:
        events = EventRepository(session)

        settings = PreferenceResolver(session).get_settings(event.recipient_id)

        if not is_event_enabled(settings, event.event_type):
            return self._finish(events, event, EventOutcome.skipped(REASON_EVENT_DISABLED))

        if not settings.pref_email:
            return self._finish(events, event, EventOutcome.skipped(REASON_EMAIL_DISABLED))

        contacts = ContactResolver(session, self.identity_provider, cache)
        recipient = contacts.resolve_contact(event.recipient_id)
        actor_name = contacts.resolve_display_name(event.actor_id)

        # Rendered even without an address so the failure is audited after a full attempt
        content = self.renderer.render(event, recipient, actor_name)

        deliveries = DeliveryRepository(session)

        if not recipient.email:
            deliveries.record(
                NotificationDelivery(
                    event_id=event.id,
                    channel=self.channel.channel_name,
                    destination=None,
                    status=DeliveryStatus.FAILED,
                    error=REASON_NO_EMAIL,
                )
            )
            return self._finish(events, event, EventOutcome.failed(REASON_NO_EMAIL))

        send_result = self.channel.send(
            to=recipient.email,
            subject=content.subject,
            text=content.text,
            html=content.html,
        )

        if send_result.success:
            deliveries.record(
                NotificationDelivery(
                    event_id=event.id,
                    channel=self.channel.channel_name,
                    destination=recipient.email,
                    status=DeliveryStatus.SENT,
                    sent_at=utc_now(),
                )
            )
            return self._finish(events, event, EventOutcome.completed())

        reason = send_result.error or REASON_EMAIL_FAILED
        deliveries.record(
            NotificationDelivery(
                event_id=event.id,
                channel=self.channel.channel_name,
                destination=recipient.email,
                status=DeliveryStatus.FAILED,
                error=reason,
            )
        )
        return self._finish(events, event, EventOutcome.failed(reason))

    def _finish(
        self, events: EventRepository, event: NotificationEvent, outcome: EventOutcome
    ) -> EventOutcome:
        events.mark_outcome(event.id, outcome, processed_at=utc_now())

        if outcome.status is EventStatus.COMPLETED:
            logger.info("Notification delivered", extra={"event": "processor.event.completed"})
        elif outcome.status is EventStatus.SKIPPED:
            logger.info(
                f"Notification skipped: {outcome.reason}",
                extra={"event": "processor.event.skipped", "reason": outcome.reason},
            )
        else:
            logger.warning(
                f"Notification failed: {outcome.reason}",
                extra={"event": "processor.event.failed", "reason": outcome.reason},
            )
        return outcome

    def _mark_failed_after_error(self, event_id: int, reason: str) -> Optional[bool]:
        try:
            with self.session_factory() as session:
                return EventRepository(session).mark_outcome(
                    event_id, EventOutcome.failed(reason), processed_at=utc_now()
                )
        except Exception as e:
            # The event stays pending and is picked up again by the next run
            logger.error(
                f"Could not mark event {event_id} as failed: {e}",
                exc_info=True,
                extra={"event": "processor.event.mark_failed_error"},
            )
            return None
