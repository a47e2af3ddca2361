"""Identity provider errors."""

from typing import Optional


class IdentityProviderError(Exception):
    """Base class for every failure talking to the identity provider.

    "User not found" and "token not recognised" are not errors; lookups return
    None for those.
    """

    pass


class IdentityHTTPError(IdentityProviderError):
    """The provider answered with an unexpected status code."""

    def __init__(self, message: str, status_code: int, url: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class IdentityTimeoutError(IdentityProviderError):
    """The request did not complete within the configured timeout."""

    def __init__(self, message: str, url: str) -> None:
        super().__init__(message)
        self.url = url


class IdentityResponseError(IdentityProviderError):
    """The body could not be parsed or lacked required fields."""

    def __init__(self, message: str, url: Optional[str] = None) -> None:
        super().__init__(message)
        self.url = url
