"""Tests for editorial workflow emails."""

from datetime import datetime, timezone
from unittest.mock import Mock

import pytest

from qalam.domain.models import ArticleRef
from qalam.identity import IdentityTimeoutError, IdentityUser
from qalam.notifications.editorial import (
    APPROVED_TEMPLATE,
    AUTHOR_NAME_FALLBACK,
    EditorialMailer,
    clean_review_notes,
    format_submitted_at,
)
from qalam.notifications.models import NotificationTemplateError, SendResult
from qalam.notifications.templates import ContentRenderer
from qalam.persistence import ProfileRepository, close_database, get_session, init_database

BASE_URL = "https://qalam.blog"
ARTICLE = ArticleRef(id=42, author_id="author-1", title="رحلة إلى الصحراء", slug="desert-trip")


@pytest.fixture
def database():
    init_database("sqlite:///:memory:")
    yield
    close_database()


@pytest.fixture
def identity_provider():
    provider = Mock()
    provider.get_user.return_value = IdentityUser(id="author-1", email="author@qalam.blog")
    return provider


@pytest.fixture
def channel():
    mock_channel = Mock()
    mock_channel.send.return_value = SendResult.ok()
    return mock_channel


@pytest.fixture
def mailer(database, identity_provider, channel):
    return EditorialMailer(
        identity_provider=identity_provider,
        renderer=ContentRenderer(BASE_URL),
        channel=channel,
        reviewer_emails=["editor@qalam.blog", " chief@qalam.blog ", ""],
    )


def sent_messages(channel):
    """(to, subject, text, html) for every channel.send call."""
    return [c.args for c in channel.send.call_args_list]


class TestApprovalEmail:
    def test_sent_to_author_with_article_link(self, mailer, channel):
        with get_session() as session:
            ProfileRepository(session).upsert("author-1", "سارة")

        result = mailer.send_approval(ARTICLE)

        assert result.success
        [(to, subject, text, html)] = sent_messages(channel)
        assert to == "author@qalam.blog"
        assert subject == "تم نشر مقالتك على قَلَم"
        assert "سارة" in text
        assert "رحلة إلى الصحراء" in text
        assert f"{BASE_URL}/article/desert-trip" in text
        assert f'href="{BASE_URL}/article/desert-trip"' in html
        assert "ملاحظات المحرر" not in text
        assert "ملاحظات المحرر" not in html

    def test_includes_review_notes(self, mailer, channel):
        mailer.send_approval(ARTICLE, review_notes="  مقال رائع\nننتظر المزيد  ")

        [(_, _, text, html)] = sent_messages(channel)
        assert "ملاحظات المحرر" in text
        assert "مقال رائع\nننتظر المزيد" in text
        assert "مقال رائع<br />ننتظر المزيد" in html

    def test_greeting_falls_back_when_author_has_no_name(self, mailer, channel):
        mailer.send_approval(ARTICLE)

        [(_, _, text, html)] = sent_messages(channel)
        assert text.startswith(AUTHOR_NAME_FALLBACK)
        assert AUTHOR_NAME_FALLBACK in html

    def test_skipped_without_author_email(self, mailer, channel, identity_provider):
        identity_provider.get_user.return_value = None

        assert mailer.send_approval(ARTICLE) is None
        channel.send.assert_not_called()

    def test_channel_failure_returned(self, mailer, channel):
        channel.send.return_value = SendResult.failure("smtp down")

        result = mailer.send_approval(ARTICLE)

        assert not result.success
        assert result.error == "smtp down"


class TestRejectionEmail:
    def test_notes_are_escaped_and_kept(self, mailer, channel):
        result = mailer.send_rejection(ARTICLE, "<b>العنوان</b> يحتاج تعديلاً\nوالخاتمة أيضاً")

        assert result.success
        [(to, subject, text, html)] = sent_messages(channel)
        assert to == "author@qalam.blog"
        assert subject == "حالة مقالتك على قَلَم"
        assert "<b>العنوان</b> يحتاج تعديلاً" in text
        assert "&lt;b&gt;العنوان&lt;/b&gt;" in html
        assert "<br />والخاتمة أيضاً" in html
        assert f"{BASE_URL}/dashboard" in text

    @pytest.mark.parametrize("notes", ["", "   ", None])
    def test_notes_required(self, mailer, channel, notes):
        with pytest.raises(ValueError, match="review_notes"):
            mailer.send_rejection(ARTICLE, notes)
        channel.send.assert_not_called()

    def test_skipped_without_author_email(self, mailer, channel, identity_provider):
        identity_provider.get_user.return_value = IdentityUser(id="author-1", email=None)

        assert mailer.send_rejection(ARTICLE, "يحتاج تعديلاً") is None
        channel.send.assert_not_called()


class TestSubmissionAlerts:
    def test_every_reviewer_alerted(self, mailer, channel):
        with get_session() as session:
            ProfileRepository(session).upsert("author-1", "سارة")

        results = mailer.send_submission_alerts(
            ARTICLE, submitted_at=datetime(2026, 10, 18, 9, 30, tzinfo=timezone.utc)
        )

        assert [r.success for r in results] == [True, True]
        messages = sent_messages(channel)
        assert [m[0] for m in messages] == ["editor@qalam.blog", "chief@qalam.blog"]
        _, subject, text, html = messages[0]
        assert subject == "مقال جديد بانتظار المراجعة: رحلة إلى الصحراء"
        assert "الكاتب: سارة" in text
        assert "رقم المقال: 42" in text
        assert "2026-10-18 09:30 UTC" in text
        assert f'href="{BASE_URL}/dashboard"' in html

    def test_no_reviewers_sends_nothing(self, database, identity_provider, channel):
        mailer = EditorialMailer(identity_provider, ContentRenderer(BASE_URL), channel)

        assert mailer.send_submission_alerts(ARTICLE) == []
        identity_provider.get_user.assert_not_called()
        channel.send.assert_not_called()

    def test_one_failure_does_not_stop_the_rest(self, mailer, channel):
        channel.send.side_effect = [SendResult.failure("mailbox full"), SendResult.ok()]

        results = mailer.send_submission_alerts(ARTICLE)

        assert [r.success for r in results] == [False, True]
        assert channel.send.call_count == 2


class TestErrors:
    def test_identity_error_propagates(self, mailer, channel, identity_provider):
        identity_provider.get_user.side_effect = IdentityTimeoutError("timed out", url="https://id")

        with pytest.raises(IdentityTimeoutError):
            mailer.send_approval(ARTICLE)
        channel.send.assert_not_called()

    def test_missing_template_variable_raises(self, mailer):
        with pytest.raises(NotificationTemplateError):
            mailer.renderer.render_editorial(APPROVED_TEMPLATE, {"author_name": "سارة"})


class TestHelpers:
    def test_clean_review_notes(self):
        assert clean_review_notes(None) is None
        assert clean_review_notes("  ") is None
        assert clean_review_notes(" ملاحظة ") == "ملاحظة"

    def test_format_submitted_at_uses_utc(self):
        naive = datetime(2026, 1, 2, 3, 4)
        assert format_submitted_at(naive) == "2026-01-02 03:04 UTC"
