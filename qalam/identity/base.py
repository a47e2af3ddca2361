"""Identity provider interface."""

from abc import ABC, abstractmethod
from typing import Optional

from .models import IdentityUser


class IdentityProvider(ABC):
    """Looks up auth users and validates caller tokens.

    Implementations return None for unknown users or tokens and raise
    IdentityProviderError for transport or protocol failures.
    """

    @abstractmethod
    def get_user(self, user_id: str) -> Optional[IdentityUser]:
        """Fetch a user by id with service privileges."""

    @abstractmethod
    def verify_token(self, token: str) -> Optional[IdentityUser]:
        """Resolve a caller's bearer token to the user it belongs to."""
