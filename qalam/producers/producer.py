"""Enqueue notification events from user and editorial actions."""

from typing import Optional

from sqlalchemy.orm import Session

from qalam.domain.models import ArticleRef, EventType, NotificationEventInput
from qalam.logging import get_logger
from qalam.persistence import EventRepository, FollowRepository
from qalam.utils.text import COMMENT_EXCERPT_LENGTH, excerpt

logger = get_logger(__name__, component="producer")


class NotificationProducer:
    """Appends events to the queue inside the caller's transaction.

    Actions on your own work (liking or commenting on your own article,
    following yourself) enqueue nothing and return None.
    """

    def __init__(self, session: Session):
        self.events = EventRepository(session)
        self.follows = FollowRepository(session)

    def enqueue_like(self, actor_id: Optional[str], article: ArticleRef) -> Optional[int]:
        if self._is_self_action(actor_id, article.author_id):
            return None
        return self._enqueue(
            NotificationEventInput(
                event_type=EventType.LIKE.value,
                recipient_id=article.author_id,
                actor_id=actor_id,
                article_id=article.id,
                payload=article.base_payload(),
            )
        )

    def enqueue_comment(
        self, actor_id: Optional[str], article: ArticleRef, comment_text: str
    ) -> Optional[int]:
        if self._is_self_action(actor_id, article.author_id):
            return None
        payload = article.base_payload()
        payload["comment_excerpt"] = excerpt(comment_text, COMMENT_EXCERPT_LENGTH)
        return self._enqueue(
            NotificationEventInput(
                event_type=EventType.COMMENT.value,
                recipient_id=article.author_id,
                actor_id=actor_id,
                article_id=article.id,
                payload=payload,
            )
        )

    def enqueue_follow(self, actor_id: Optional[str], author_id: str) -> Optional[int]:
        if self._is_self_action(actor_id, author_id):
            return None
        return self._enqueue(
            NotificationEventInput(
                event_type=EventType.FOLLOW.value,
                recipient_id=author_id,
                actor_id=actor_id,
                payload={},
            )
        )

    def queue_publish_notifications(self, article: ArticleRef) -> int:
        """One publish event per follower subscribed to the author's new articles.

        Returns:
            Number of events enqueued
        """
        followers = self.follows.list_publish_subscribers(article.author_id)
        if not followers:
            logger.debug(
                "Author has no publish subscribers",
                extra={"event": "producer.publish.no_followers", "article_id": article.id},
            )
            return 0

        payload = article.base_payload()
        if article.excerpt:
            payload["excerpt"] = article.excerpt

        inputs = [
            NotificationEventInput(
                event_type=EventType.PUBLISH.value,
                recipient_id=follower_id,
                actor_id=article.author_id,
                article_id=article.id,
                payload=dict(payload),
            )
            for follower_id in followers
        ]
        ids = self.events.enqueue_many(inputs)

        logger.info(
            f"Queued {len(ids)} publish notifications",
            extra={
                "event": "producer.enqueued",
                "event_type": EventType.PUBLISH.value,
                "article_id": article.id,
                "count": len(ids),
            },
        )
        return len(ids)

    def _enqueue(self, event_input: NotificationEventInput) -> int:
        event_id = self.events.enqueue(event_input)
        logger.info(
            "Notification event queued",
            extra={
                "event": "producer.enqueued",
                "event_type": event_input.event_type,
                "queued_event_id": event_id,
            },
        )
        return event_id

    @staticmethod
    def _is_self_action(actor_id: Optional[str], recipient_id: str) -> bool:
        return not actor_id or actor_id == recipient_id


def approve_and_notify(
    article: ArticleRef,
    processor,
    session_factory=None,
    mailer=None,
    review_notes: Optional[str] = None,
) -> int:
    """Post-approval hook: queue publish events, email the author, then drain the queue.

    The fan-out is committed before anything is sent. Errors from the
    approval email and from the processor, including a failed batch fetch,
    are logged and swallowed so the approval itself never fails because of
    notifications.

    Returns:
        Number of publish events queued
    """
    if session_factory is None:
        from qalam.persistence import get_session

        session_factory = get_session

    with session_factory() as session:
        queued = NotificationProducer(session).queue_publish_notifications(article)

    if mailer is not None:
        _send_editorial(
            lambda: mailer.send_approval(article, review_notes),
            "approval",
            article,
        )

    try:
        processor.process_pending()
    except Exception as e:
        logger.error(
            f"Inline notification processing failed after approval: {e}",
            exc_info=True,
            extra={"event": "producer.inline_process.failed", "article_id": article.id},
        )

    return queued


def reject_and_notify(article: ArticleRef, mailer, review_notes: str):
    """Post-rejection hook: email the author the editor's notes.

    Raises:
        ValueError: If ``review_notes`` is blank; rejections require notes
    """
    if not review_notes or not review_notes.strip():
        raise ValueError("review_notes are required to reject an article")
    return _send_editorial(
        lambda: mailer.send_rejection(article, review_notes),
        "rejection",
        article,
    )


def notify_submission(article: ArticleRef, mailer, submitted_at=None) -> int:
    """Post-submission hook: alert the reviewers.

    Returns:
        Number of reviewer emails accepted by the channel
    """
    results = _send_editorial(
        lambda: mailer.send_submission_alerts(article, submitted_at),
        "submission",
        article,
    )
    return sum(1 for result in results or [] if result.success)


def _send_editorial(send, kind: str, article: ArticleRef):
    try:
        return send()
    except Exception as e:
        logger.error(
            f"Editorial {kind} email failed: {e}",
            exc_info=True,
            extra={"event": "producer.editorial.failed", "kind": kind, "article_id": article.id},
        )
        return None
