"""Tests for event producers and the editorial workflow hooks."""

from contextlib import contextmanager
from unittest.mock import Mock

import pytest

from qalam.domain.models import EventStatus
from qalam.identity import IdentityTimeoutError
from qalam.notifications.models import SendResult
from qalam.persistence import (
    EventRepository,
    FollowRepository,
    close_database,
    get_session,
    init_database,
)
from qalam.processing import EventFetchError
from qalam.producers import (
    ArticleRef,
    NotificationProducer,
    approve_and_notify,
    notify_submission,
    reject_and_notify,
)

ARTICLE = ArticleRef(
    id=10,
    author_id="author-1",
    title="عن الكتابة",
    slug="on-writing",
    excerpt="مقدمة قصيرة",
)


@pytest.fixture
def database():
    init_database("sqlite:///:memory:")
    yield
    close_database()


def pending_events():
    with get_session() as session:
        return EventRepository(session).fetch_pending_batch()


class TestInteractionEvents:
    """Like, comment and follow producers."""

    def test_enqueue_like(self, database):
        with get_session() as session:
            event_id = NotificationProducer(session).enqueue_like("reader-1", ARTICLE)

        [event] = pending_events()
        assert event.id == event_id
        assert event.event_type == "like"
        assert event.recipient_id == "author-1"
        assert event.actor_id == "reader-1"
        assert event.article_id == 10
        assert event.payload == {"article_title": "عن الكتابة", "article_slug": "on-writing"}
        assert event.status is EventStatus.PENDING

    def test_enqueue_comment_truncates_excerpt(self, database):
        with get_session() as session:
            NotificationProducer(session).enqueue_comment("reader-1", ARTICLE, "  " + "ك" * 300)

        [event] = pending_events()
        assert event.event_type == "comment"
        assert event.payload["comment_excerpt"] == "ك" * 180
        assert event.payload["article_slug"] == "on-writing"

    def test_enqueue_follow(self, database):
        with get_session() as session:
            NotificationProducer(session).enqueue_follow("reader-1", "author-1")

        [event] = pending_events()
        assert event.event_type == "follow"
        assert event.recipient_id == "author-1"
        assert event.article_id is None
        assert event.payload == {}

    def test_self_actions_enqueue_nothing(self, database):
        with get_session() as session:
            producer = NotificationProducer(session)
            assert producer.enqueue_like("author-1", ARTICLE) is None
            assert producer.enqueue_comment("author-1", ARTICLE, "شكرا") is None
            assert producer.enqueue_follow("author-1", "author-1") is None
            assert producer.enqueue_like(None, ARTICLE) is None

        assert pending_events() == []


class TestPublishFanOut:
    """One publish event per subscribed follower."""

    def test_queue_publish_notifications(self, database):
        with get_session() as session:
            follows = FollowRepository(session)
            follows.follow("reader-b", "author-1")
            follows.follow("reader-a", "author-1")
            follows.follow("reader-c", "author-1", notify_on_publish=False)

        with get_session() as session:
            count = NotificationProducer(session).queue_publish_notifications(ARTICLE)

        assert count == 2
        events = pending_events()
        assert sorted(e.recipient_id for e in events) == ["reader-a", "reader-b"]
        for event in events:
            assert event.event_type == "publish"
            assert event.actor_id == "author-1"
            assert event.payload == {
                "article_title": "عن الكتابة",
                "article_slug": "on-writing",
                "excerpt": "مقدمة قصيرة",
            }

    def test_no_followers(self, database):
        with get_session() as session:
            assert NotificationProducer(session).queue_publish_notifications(ARTICLE) == 0

    def test_excerpt_omitted_when_missing(self, database):
        article = ArticleRef(id=11, author_id="author-1", title="T", slug="t")
        with get_session() as session:
            FollowRepository(session).follow("reader-a", "author-1")
            NotificationProducer(session).queue_publish_notifications(article)

        [event] = pending_events()
        assert "excerpt" not in event.payload


class TestApproveAndNotify:
    """Post-approval hook."""

    def test_queues_then_processes(self, database):
        with get_session() as session:
            FollowRepository(session).follow("reader-a", "author-1")

        seen = {}
        processor = Mock()
        processor.process_pending.side_effect = lambda: seen.setdefault(
            "pending", len(pending_events())
        )

        assert approve_and_notify(ARTICLE, processor) == 1
        # The fan-out is committed before the processor runs
        assert seen["pending"] == 1

    def test_processor_errors_swallowed(self, database):
        with get_session() as session:
            FollowRepository(session).follow("reader-a", "author-1")

        processor = Mock()
        processor.process_pending.side_effect = EventFetchError()

        assert approve_and_notify(ARTICLE, processor) == 1
        assert len(pending_events()) == 1

    def test_custom_session_factory(self):
        session = Mock()
        producer_session_calls = []

        @contextmanager
        def session_factory():
            producer_session_calls.append(True)
            yield session

        processor = Mock()
        with pytest.MonkeyPatch.context() as mp:
            mp.setattr(
                NotificationProducer,
                "queue_publish_notifications",
                lambda self, article: 3,
            )
            assert approve_and_notify(ARTICLE, processor, session_factory=session_factory) == 3

        assert producer_session_calls == [True]
        processor.process_pending.assert_called_once()

    def test_approval_email_sent_after_fan_out_and_before_processing(self, database):
        with get_session() as session:
            FollowRepository(session).follow("reader-a", "author-1")

        calls = []
        mailer = Mock()
        mailer.send_approval.side_effect = lambda article, notes: calls.append(
            ("email", len(pending_events()), notes)
        )
        processor = Mock()
        processor.process_pending.side_effect = lambda: calls.append(("process",))

        approve_and_notify(ARTICLE, processor, mailer=mailer, review_notes="أحسنت")

        assert calls == [("email", 1, "أحسنت"), ("process",)]

    def test_approval_email_errors_swallowed(self, database):
        mailer = Mock()
        mailer.send_approval.side_effect = IdentityTimeoutError("timed out", url="https://id")
        processor = Mock()

        assert approve_and_notify(ARTICLE, processor, mailer=mailer) == 0
        processor.process_pending.assert_called_once()


class TestEditorialHooks:
    """Rejection and submission hooks."""

    def test_reject_sends_notes(self):
        mailer = Mock()
        mailer.send_rejection.return_value = SendResult.ok()

        result = reject_and_notify(ARTICLE, mailer, "يحتاج إلى خاتمة")

        assert result.success
        mailer.send_rejection.assert_called_once_with(ARTICLE, "يحتاج إلى خاتمة")

    @pytest.mark.parametrize("notes", ["", "  ", None])
    def test_reject_requires_notes(self, notes):
        mailer = Mock()
        with pytest.raises(ValueError, match="review_notes"):
            reject_and_notify(ARTICLE, mailer, notes)
        mailer.send_rejection.assert_not_called()

    def test_reject_mail_errors_swallowed(self):
        mailer = Mock()
        mailer.send_rejection.side_effect = RuntimeError("template broke")

        assert reject_and_notify(ARTICLE, mailer, "يحتاج إلى خاتمة") is None

    def test_notify_submission_counts_accepted(self):
        mailer = Mock()
        mailer.send_submission_alerts.return_value = [
            SendResult.ok(),
            SendResult.failure("mailbox full"),
            SendResult.ok(),
        ]

        assert notify_submission(ARTICLE, mailer) == 2
        mailer.send_submission_alerts.assert_called_once_with(ARTICLE, None)

    def test_notify_submission_errors_swallowed(self):
        mailer = Mock()
        mailer.send_submission_alerts.side_effect = IdentityTimeoutError("timed out", url="https://id")

        assert notify_submission(ARTICLE, mailer) == 0
