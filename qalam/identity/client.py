"""HTTP client for the hosted auth admin API."""

from typing import Any, Dict, Optional

import requests

from qalam.logging import get_logger

from .base import IdentityProvider
from .exceptions import (
    IdentityHTTPError,
    IdentityProviderError,
    IdentityResponseError,
    IdentityTimeoutError,
)
from .models import IdentityUser

logger = get_logger(__name__, component="identity")


class HTTPIdentityProvider(IdentityProvider):
    """requests-based identity provider.

    ``get_user`` calls ``GET {base_url}/auth/v1/admin/users/{id}`` with the
    service key; ``verify_token`` calls ``GET {base_url}/auth/v1/user`` with
    the caller's token. Every request carries ``timeout``.

    Attributes:
        base_url: Provider root URL without trailing slash
        timeout: Per-request timeout in seconds
    """

    def __init__(
        self,
        base_url: str,
        service_key: str,
        timeout: int = 10,
        user_agent: str = "QalamNotifications/1.0",
        session: Optional[requests.Session] = None,
    ) -> None:
        if not base_url or not base_url.strip():
            raise ValueError("base_url cannot be empty")
        if not service_key:
            raise ValueError("service_key cannot be empty")
        if timeout <= 0:
            raise ValueError(f"timeout must be positive, got: {timeout}")

        self.base_url = base_url.strip().rstrip("/")
        self.timeout = timeout
        self._service_key = service_key
        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": user_agent, "apikey": service_key})

    def get_user(self, user_id: str) -> Optional[IdentityUser]:
        if not user_id:
            return None
        url = f"{self.base_url}/auth/v1/admin/users/{user_id}"
        data = self._make_request(
            url,
            headers={"Authorization": f"Bearer {self._service_key}"},
            none_on_status=(404,),
        )
        if data is None:
            return None
        # Some deployments wrap the user object
        if isinstance(data, dict) and isinstance(data.get("user"), dict):
            data = data["user"]
        return self._parse_user(data, url)

    def verify_token(self, token: str) -> Optional[IdentityUser]:
        if not token:
            return None
        url = f"{self.base_url}/auth/v1/user"
        data = self._make_request(
            url,
            headers={"Authorization": f"Bearer {token}"},
            none_on_status=(401, 403),
        )
        if data is None:
            return None
        return self._parse_user(data, url)

    def _parse_user(self, data: Any, url: str) -> IdentityUser:
        if not isinstance(data, dict):
            raise IdentityResponseError(f"Expected a user object from {url}", url=url)
        try:
            return IdentityUser.from_payload(data)
        except ValueError as e:
            raise IdentityResponseError(f"Malformed user object from {url}: {e}", url=url) from e

    def _make_request(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        none_on_status=(),
    ) -> Optional[Any]:
        """GET ``url`` and return parsed JSON.

        Returns None when the status is in ``none_on_status``.

        Raises:
            IdentityTimeoutError: On timeout
            IdentityHTTPError: On other 4xx/5xx responses
            IdentityResponseError: On invalid JSON
            IdentityProviderError: On connection failures
        """
        try:
            response = self._session.get(url, headers=headers, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            logger.warning(
                f"Identity request timed out after {self.timeout}s",
                extra={"event": "identity.request.timeout", "url": url},
            )
            raise IdentityTimeoutError(f"Request to {url} timed out: {e}", url=url) from e
        except requests.exceptions.RequestException as e:
            logger.warning(
                f"Identity request failed: {e}",
                extra={"event": "identity.request.failed", "url": url},
            )
            raise IdentityProviderError(f"Request to {url} failed: {e}") from e

        if response.status_code in none_on_status:
            logger.debug(
                f"Identity lookup returned {response.status_code}",
                extra={"event": "identity.request.not_found", "status_code": response.status_code},
            )
            return None

        if response.status_code >= 400:
            logger.warning(
                f"HTTP {response.status_code} from identity provider",
                extra={
                    "event": "identity.request.http_error",
                    "status_code": response.status_code,
                    "url": url,
                },
            )
            raise IdentityHTTPError(
                f"HTTP {response.status_code}: {response.reason}",
                status_code=response.status_code,
                url=url,
            )

        try:
            return response.json()
        except ValueError as e:
            raise IdentityResponseError(f"Failed to parse JSON response from {url}: {e}", url=url) from e
