"""Recipient and actor lookups with a per-run cache."""

from dataclasses import dataclass, field
from typing import Dict, Optional

from sqlalchemy.orm import Session

from qalam.domain.models import Contact
from qalam.identity import IdentityProvider
from qalam.logging import get_logger
from qalam.persistence import ProfileRepository

logger = get_logger(__name__, component="contacts")


@dataclass
class ContactCache:
    """Memoised lookups for a single processor invocation.

    Contacts and actor display names are kept in separate maps. A new cache
    is created for every run, so nothing outlives the batch.
    """

    contacts: Dict[str, Contact] = field(default_factory=dict)
    display_names: Dict[str, Optional[str]] = field(default_factory=dict)


class ContactResolver:
    """Resolves email address and display name for profiles.

    Lookup failures (database or identity provider) are not caught here.
    """

    def __init__(
        self,
        session: Session,
        identity_provider: IdentityProvider,
        cache: Optional[ContactCache] = None,
    ):
        self.profiles = ProfileRepository(session)
        self.identity_provider = identity_provider
        self.cache = cache if cache is not None else ContactCache()

    def resolve_contact(self, profile_id: str) -> Contact:
        """Email and display name for ``profile_id``.

        The display name comes from the profile, falling back to the identity
        provider's ``full_name``. ``email`` is None when the provider has no
        address or does not know the user.
        """
        cached = self.cache.contacts.get(profile_id)
        if cached is not None:
            return cached

        display_name = self.profiles.get_display_name(profile_id)
        user = self.identity_provider.get_user(profile_id)

        contact = Contact(
            email=user.email if user else None,
            display_name=display_name or (user.full_name if user else None),
        )
        if user is None:
            logger.debug(
                "Identity provider has no user for profile",
                extra={"event": "contacts.user_not_found", "profile_id": profile_id},
            )

        self.cache.contacts[profile_id] = contact
        return contact

    def resolve_display_name(self, profile_id: Optional[str]) -> Optional[str]:
        """Profile display name only; None for a null actor."""
        if not profile_id:
            return None
        if profile_id in self.cache.display_names:
            return self.cache.display_names[profile_id]

        name = self.profiles.get_display_name(profile_id)
        self.cache.display_names[profile_id] = name
        return name
