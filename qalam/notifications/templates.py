"""Email content rendering with Jinja2.

Each event type has three templates in ``email_templates``:
``<type>.subject.j2``, ``<type>.txt.j2`` and ``<type>.html.j2``. HTML
templates extend ``base.html.j2`` and are autoescaped; subject and text
templates are not. Editorial mail uses the same layout under the
``editorial_approved``, ``editorial_rejected`` and ``editorial_submitted``
names.
"""

import logging
from typing import Any, Dict, Optional

from jinja2 import Environment, PackageLoader, StrictUndefined, TemplateError, select_autoescape

from qalam.domain.models import Contact, NotificationEvent

from .models import NotificationTemplateError, RenderedContent
from .payloads import build_render_context, template_key

logger = logging.getLogger(__name__)


class ContentRenderer:
    """Turns an event into subject, plain text and HTML.

    Rendering is pure: the output depends only on the arguments and the
    configured base URL.
    """

    def __init__(self, base_url: str, template_dir: str = "email_templates"):
        if not base_url or not base_url.strip():
            raise ValueError("base_url cannot be empty")
        self.base_url = base_url.strip().rstrip("/")

        self.env = Environment(
            loader=PackageLoader("qalam.notifications", template_dir),
            autoescape=select_autoescape(
                enabled_extensions=("html.j2",),
                default_for_string=False,
                default=False,
            ),
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=False,
        )

    def render(
        self,
        event: NotificationEvent,
        recipient: Contact,
        actor_name: Optional[str],
    ) -> RenderedContent:
        """Render the notification for ``event``.

        Raises:
            NotificationTemplateError: If any template fails to load or render
        """
        key = template_key(event)
        context = build_render_context(event, recipient, actor_name, self.base_url)
        return self._render_family(key, context)

    def render_editorial(self, key: str, context: Dict[str, Any]) -> RenderedContent:
        """Render one of the ``editorial_*`` template families.

        Raises:
            NotificationTemplateError: If any template fails to load or render
        """
        full_context = {
            "base_url": self.base_url,
            "settings_url": f"{self.base_url}/settings/notifications",
            "dashboard_url": f"{self.base_url}/dashboard",
            **context,
        }
        return self._render_family(key, full_context)

    def _render_family(self, key: str, context: Dict[str, Any]) -> RenderedContent:
        try:
            subject = self.env.get_template(f"{key}.subject.j2").render(context)
            text = self.env.get_template(f"{key}.txt.j2").render(context)
            html = self.env.get_template(f"{key}.html.j2").render(context)
        except TemplateError as e:
            logger.error(
                f"Template rendering failed for {key}: {e}",
                exc_info=True,
                extra={"event": "notification.template.failed", "template": key},
            )
            raise NotificationTemplateError(f"Template rendering failed: {e}") from e

        return RenderedContent(
            subject=" ".join(subject.split()),
            text=text.strip(),
            html=html,
        )
