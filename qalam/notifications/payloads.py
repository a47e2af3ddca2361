"""Template context for each event type.

Fallback copy is applied here so templates never see missing values.
"""

from typing import Any, Dict, Optional

from qalam.domain.models import Contact, EventType, NotificationEvent

RECIPIENT_PLACEHOLDER = "عزيزي القارئ"
ACTOR_PLACEHOLDER = "مستخدم"

PUBLISH_TITLE_FALLBACK = "مقال جديد"
PUBLISH_EXCERPT_FALLBACK = "اكتشف هذا المقال الجديد."
ARTICLE_TITLE_FALLBACK = "مقالك"
COMMENT_EXCERPT_FALLBACK = "تم إضافة تعليق جديد."


def template_key(event: NotificationEvent) -> str:
    """Template family for an event; unknown types render as publish."""
    known = event.known_type
    return known.value if known is not None else EventType.PUBLISH.value


def article_url(base_url: str, slug: Optional[str]) -> str:
    """``{base}/article/{slug}``, or the bare base URL when there is no slug."""
    return f"{base_url}/article/{slug}" if slug else base_url


def build_render_context(
    event: NotificationEvent,
    recipient: Contact,
    actor_name: Optional[str],
    base_url: str,
) -> Dict[str, Any]:
    """Build the Jinja context for ``event``.

    Args:
        event: Event being rendered
        recipient: Resolved recipient contact
        actor_name: Display name of the actor, None when unknown
        base_url: Site root without trailing slash

    Returns:
        Dictionary with every variable the event's templates reference
    """
    actor = actor_name or ACTOR_PLACEHOLDER
    context: Dict[str, Any] = {
        "base_url": base_url,
        "settings_url": f"{base_url}/settings/notifications",
        "recipient_name": recipient.display_name or RECIPIENT_PLACEHOLDER,
        "actor_name": actor,
        "actor_initial": actor[:1],
    }

    key = template_key(event)
    slug = event.payload_value("article_slug")

    if key == EventType.COMMENT.value:
        context.update(
            article_title=event.payload_value("article_title") or ARTICLE_TITLE_FALLBACK,
            comment_excerpt=event.payload_value("comment_excerpt") or COMMENT_EXCERPT_FALLBACK,
            article_url=article_url(base_url, slug),
        )
    elif key == EventType.LIKE.value:
        context.update(
            article_title=event.payload_value("article_title") or ARTICLE_TITLE_FALLBACK,
            article_url=article_url(base_url, slug),
        )
    elif key == EventType.FOLLOW.value:
        context["profile_url"] = f"{base_url}/author/{event.actor_id or ''}"
    else:
        context.update(
            article_title=event.payload_value("article_title") or PUBLISH_TITLE_FALLBACK,
            excerpt=event.payload_value("excerpt") or PUBLISH_EXCERPT_FALLBACK,
            article_url=article_url(base_url, slug),
        )

    return context
