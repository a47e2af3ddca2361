"""Recipient preferences: read-only resolution and owner-scoped editing."""

from typing import Dict, Optional

from sqlalchemy.orm import Session

from qalam.domain.models import EventType, NotificationPreferenceSettings
from qalam.logging import get_logger
from qalam.persistence import PreferenceRepository

logger = get_logger(__name__, component="preferences")

# Flag consulted for each known event type, and its value when the flag is null
EVENT_FLAGS: Dict[EventType, str] = {
    EventType.PUBLISH: "on_publish",
    EventType.COMMENT: "on_comment",
    EventType.LIKE: "on_like",
    EventType.FOLLOW: "on_follow",
}
EVENT_DEFAULTS: Dict[EventType, bool] = {
    EventType.PUBLISH: True,
    EventType.COMMENT: True,
    EventType.LIKE: False,
    EventType.FOLLOW: True,
}

EDITABLE_FLAGS = frozenset({"pref_email", *EVENT_FLAGS.values()})


class SettingsAccessError(PermissionError):
    """A caller tried to read or change another profile's settings."""

    pass


def is_event_enabled(settings: NotificationPreferenceSettings, event_type: str) -> bool:
    """Whether the recipient wants this kind of event.

    Known types use their flag, falling back to the type default when the
    flag is null. Unknown types are enabled; the email master switch is
    checked separately.
    """
    known = EventType.parse(event_type)
    if known is None:
        return True

    value = getattr(settings, EVENT_FLAGS[known])
    return EVENT_DEFAULTS[known] if value is None else bool(value)


class PreferenceResolver:
    """Read-only settings lookup used by the processor. Never writes."""

    def __init__(self, session: Session):
        self.repository = PreferenceRepository(session)

    def get_settings(self, profile_id: str) -> NotificationPreferenceSettings:
        stored = self.repository.get(profile_id)
        if stored is None:
            return NotificationPreferenceSettings.defaults(profile_id)
        return stored


class NotificationSettingsService:
    """Settings page operations, restricted to the profile owner."""

    def __init__(self, session: Session):
        self.repository = PreferenceRepository(session)

    def get_for_owner(self, owner_id: str, requested_by: str) -> NotificationPreferenceSettings:
        """Return the owner's settings, creating the default row on first visit.

        Raises:
            SettingsAccessError: If ``requested_by`` is not the owner
        """
        self._check_owner(owner_id, requested_by)

        stored = self.repository.get(owner_id)
        if stored is not None:
            return stored

        logger.info(
            "Seeding default notification settings",
            extra={"event": "preferences.seeded", "profile_id": owner_id},
        )
        return self.repository.upsert(NotificationPreferenceSettings.defaults(owner_id))

    def update_for_owner(self, owner_id: str, requested_by: str, **flags) -> NotificationPreferenceSettings:
        """Save the master switch and event flags for ``owner_id``.

        Flags not passed keep their current (or default) value.

        Raises:
            SettingsAccessError: If ``requested_by`` is not the owner
            ValueError: For unknown flag names
        """
        self._check_owner(owner_id, requested_by)

        unknown = sorted(set(flags) - EDITABLE_FLAGS)
        if unknown:
            raise ValueError(f"Unknown notification settings: {', '.join(unknown)}")

        current = self.repository.get(owner_id) or NotificationPreferenceSettings.defaults(owner_id)
        updated = current.model_copy(
            update={key: bool(value) for key, value in flags.items()}
        )
        saved = self.repository.upsert(updated)

        logger.info(
            "Notification settings updated",
            extra={
                "event": "preferences.updated",
                "profile_id": owner_id,
                "fields": sorted(flags),
            },
        )
        return saved

    @staticmethod
    def _check_owner(owner_id: str, requested_by: Optional[str]) -> None:
        if not requested_by or requested_by != owner_id:
            logger.warning(
                "Rejected settings access for another profile",
                extra={"event": "preferences.access_denied", "profile_id": owner_id},
            )
            raise SettingsAccessError(f"Profile {requested_by} cannot access settings of {owner_id}")
