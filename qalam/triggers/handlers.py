"""Authorised entry points that run the processor.

Both triggers return a TriggerResponse (HTTP status plus JSON-ready body)
that any web layer can relay unchanged. Rejected calls return before the
processor is touched.
"""

import hmac
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from qalam.identity import IdentityProvider, IdentityProviderError
from qalam.logging import get_logger
from qalam.logging.context import log_context
from qalam.processing import EventFetchError, NotificationEventProcessor

logger = get_logger(__name__, component="trigger")

BEARER_PREFIX = "Bearer "

ERROR_UNAUTHORIZED = "unauthorized"
ERROR_AUTH = "auth_error"
ERROR_SECRET_NOT_SET = "cron_secret_not_set"
ERROR_FETCH = EventFetchError.code
ERROR_UNHANDLED = "unhandled_error"


@dataclass(frozen=True)
class TriggerResponse:
    status: int
    body: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @classmethod
    def error(cls, status: int, code: str) -> "TriggerResponse":
        return cls(status=status, body={"error": code})


def extract_bearer_token(authorization_header: Optional[str]) -> Optional[str]:
    """Token from ``Authorization: Bearer <token>``, or None."""
    if not authorization_header or not authorization_header.startswith(BEARER_PREFIX):
        return None
    token = authorization_header[len(BEARER_PREFIX):].strip()
    return token or None


def _run_processor(processor: NotificationEventProcessor, trigger: str, compact_empty: bool):
    try:
        result = processor.process_pending()
    except EventFetchError:
        return TriggerResponse.error(500, ERROR_FETCH)
    except Exception as e:
        logger.error(
            f"Unhandled error processing notification events: {e}",
            exc_info=True,
            extra={"event": "trigger.unhandled_error", "trigger": trigger},
        )
        return TriggerResponse.error(500, ERROR_UNHANDLED)

    if compact_empty and result.is_empty:
        return TriggerResponse(200, {"processed": 0, "message": result.message})
    return TriggerResponse(200, result.to_dict())


def _reject(trigger: str, status: int, code: str) -> TriggerResponse:
    logger.warning(
        f"Rejected {trigger} trigger: {code}",
        extra={"event": "trigger.rejected", "trigger": trigger, "reason": code},
    )
    return TriggerResponse.error(status, code)


class ScheduledTrigger:
    """Shared-secret trigger for the external scheduler.

    The secret is accepted either as ``Authorization: Bearer <secret>`` or as
    a ``secret`` query parameter.
    """

    name = "scheduled"

    def __init__(self, processor: NotificationEventProcessor, cron_secret: Optional[str]):
        self.processor = processor
        self.cron_secret = cron_secret or None

    def invoke(
        self,
        authorization_header: Optional[str] = None,
        query_secret: Optional[str] = None,
    ) -> TriggerResponse:
        with log_context(trigger=self.name):
            if not self.cron_secret:
                logger.error(
                    "NOTIFICATION_CRON_SECRET is not configured",
                    extra={"event": "trigger.rejected", "reason": ERROR_SECRET_NOT_SET},
                )
                return TriggerResponse.error(500, ERROR_SECRET_NOT_SET)

            if not self._is_authorized(authorization_header, query_secret):
                return _reject(self.name, 401, ERROR_UNAUTHORIZED)

            return _run_processor(self.processor, self.name, compact_empty=False)

    def _is_authorized(self, authorization_header: Optional[str], query_secret: Optional[str]) -> bool:
        expected = self.cron_secret.encode("utf-8")
        header_token = extract_bearer_token(authorization_header)
        candidates = [c for c in (header_token, query_secret) if c]
        # Compare every candidate so timing does not reveal which one matched
        matched = False
        for candidate in candidates:
            if hmac.compare_digest(candidate.encode("utf-8"), expected):
                matched = True
        return matched


class AdminTrigger:
    """Manual trigger for a signed-in user holding a valid access token."""

    name = "admin"

    def __init__(self, processor: NotificationEventProcessor, identity_provider: IdentityProvider):
        self.processor = processor
        self.identity_provider = identity_provider

    def invoke(self, authorization_header: Optional[str] = None) -> TriggerResponse:
        with log_context(trigger=self.name):
            token = extract_bearer_token(authorization_header)
            if token is None:
                return _reject(self.name, 401, ERROR_UNAUTHORIZED)

            try:
                user = self.identity_provider.verify_token(token)
            except IdentityProviderError as e:
                logger.error(
                    f"Error verifying user for notification processing: {e}",
                    extra={"event": "trigger.rejected", "reason": ERROR_AUTH},
                )
                return TriggerResponse.error(401, ERROR_AUTH)

            if user is None:
                return _reject(self.name, 401, ERROR_UNAUTHORIZED)

            with log_context(requested_by=user.id):
                return _run_processor(self.processor, self.name, compact_empty=True)
