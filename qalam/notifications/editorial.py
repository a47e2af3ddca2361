"""Editorial workflow mail.

Authors hear when an editor approves or rejects their article, and the
reviewer list hears when an article is submitted for review. These messages
go straight through the delivery channel: they are not queued as
notification events, do not consult recipient preferences and leave no
delivery rows.
"""

from datetime import datetime
from typing import Callable, ContextManager, Iterable, List, Optional

from sqlalchemy.orm import Session

from qalam.domain.models import ArticleRef, Contact
from qalam.identity import IdentityProvider
from qalam.logging import get_logger
from qalam.persistence import get_session
from qalam.utils.timestamps import ensure_utc, utc_now

from .channel import DeliveryChannel
from .contacts import ContactResolver
from .models import RenderedContent, SendResult
from .payloads import article_url
from .templates import ContentRenderer

logger = get_logger(__name__, component="editorial")

AUTHOR_NAME_FALLBACK = "كاتبنا العزيز"

APPROVED_TEMPLATE = "editorial_approved"
REJECTED_TEMPLATE = "editorial_rejected"
SUBMITTED_TEMPLATE = "editorial_submitted"

SessionFactory = Callable[[], ContextManager[Session]]


def clean_review_notes(review_notes: Optional[str]) -> Optional[str]:
    """Stripped notes, or None when there is nothing to show."""
    if review_notes is None:
        return None
    stripped = review_notes.strip()
    return stripped or None


def format_submitted_at(submitted_at: datetime) -> str:
    return ensure_utc(submitted_at).strftime("%Y-%m-%d %H:%M UTC")


class EditorialMailer:
    """Sends approval, rejection and submission emails.

    Contact lookups (database or identity provider) are not caught here;
    the editorial hooks in ``qalam.producers`` decide what to do with them.
    """

    def __init__(
        self,
        identity_provider: IdentityProvider,
        renderer: ContentRenderer,
        channel: DeliveryChannel,
        reviewer_emails: Iterable[str] = (),
        session_factory: SessionFactory = get_session,
    ):
        self.identity_provider = identity_provider
        self.renderer = renderer
        self.channel = channel
        self.reviewer_emails: List[str] = [
            email.strip() for email in reviewer_emails if email and email.strip()
        ]
        self.session_factory = session_factory

    def author_contact(self, author_id: str) -> Contact:
        """Author email and display name, with the editorial greeting fallback."""
        with self.session_factory() as session:
            contact = ContactResolver(session, self.identity_provider).resolve_contact(author_id)
        return Contact(
            email=contact.email,
            display_name=contact.display_name or AUTHOR_NAME_FALLBACK,
        )

    def send_approval(
        self, article: ArticleRef, review_notes: Optional[str] = None
    ) -> Optional[SendResult]:
        """Tell the author their article is live.

        Returns:
            The send result, or None when the author has no email on file
        """
        contact = self.author_contact(article.author_id)
        if not contact.email:
            self._log_no_email(APPROVED_TEMPLATE, article)
            return None

        content = self.renderer.render_editorial(
            APPROVED_TEMPLATE,
            {
                "author_name": contact.display_name,
                "article_title": article.title,
                "article_url": article_url(self.renderer.base_url, article.slug),
                "review_notes": clean_review_notes(review_notes),
            },
        )
        return self._send(contact.email, content, APPROVED_TEMPLATE, article)

    def send_rejection(self, article: ArticleRef, review_notes: str) -> Optional[SendResult]:
        """Tell the author the article needs changes.

        Raises:
            ValueError: If ``review_notes`` is blank
        """
        notes = clean_review_notes(review_notes)
        if notes is None:
            raise ValueError("review_notes are required to reject an article")

        contact = self.author_contact(article.author_id)
        if not contact.email:
            self._log_no_email(REJECTED_TEMPLATE, article)
            return None

        content = self.renderer.render_editorial(
            REJECTED_TEMPLATE,
            {
                "author_name": contact.display_name,
                "article_title": article.title,
                "review_notes": notes,
            },
        )
        return self._send(contact.email, content, REJECTED_TEMPLATE, article)

    def send_submission_alerts(
        self, article: ArticleRef, submitted_at: Optional[datetime] = None
    ) -> List[SendResult]:
        """Alert every configured reviewer that ``article`` awaits review.

        Returns:
            One result per reviewer, in configuration order; empty when no
            reviewers are configured
        """
        if not self.reviewer_emails:
            return []

        author_name = self.author_contact(article.author_id).display_name
        content = self.renderer.render_editorial(
            SUBMITTED_TEMPLATE,
            {
                "article_id": article.id,
                "article_title": article.title,
                "author_name": author_name,
                "submitted_at": format_submitted_at(submitted_at or utc_now()),
            },
        )
        return [
            self._send(email, content, SUBMITTED_TEMPLATE, article)
            for email in self.reviewer_emails
        ]

    def _send(
        self, to: str, content: RenderedContent, template: str, article: ArticleRef
    ) -> SendResult:
        result = self.channel.send(to, content.subject, content.text, content.html)
        extra = {"template": template, "article_id": article.id}
        if result.success:
            logger.info("Editorial email sent", extra={"event": "editorial.sent", **extra})
        else:
            logger.warning(
                f"Editorial email failed: {result.error}",
                extra={"event": "editorial.failed", **extra},
            )
        return result

    @staticmethod
    def _log_no_email(template: str, article: ArticleRef) -> None:
        logger.warning(
            "Author email not found, skipping editorial email",
            extra={"event": "editorial.no_email", "template": template, "article_id": article.id},
        )
