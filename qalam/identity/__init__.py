"""Identity provider access (auth users and token verification)."""

from .base import IdentityProvider
from .client import HTTPIdentityProvider
from .exceptions import (
    IdentityHTTPError,
    IdentityProviderError,
    IdentityResponseError,
    IdentityTimeoutError,
)
from .models import IdentityUser

__all__ = [
    "IdentityProvider",
    "HTTPIdentityProvider",
    "IdentityUser",
    "IdentityProviderError",
    "IdentityHTTPError",
    "IdentityTimeoutError",
    "IdentityResponseError",
]
