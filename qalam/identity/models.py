"""Identity provider user records."""

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class IdentityUser:
    """The subset of an auth user the pipeline cares about.

    Attributes:
        id: Auth user id (same value as the profile id)
        email: Primary email, None when the account has none
        full_name: ``user_metadata.full_name`` if set
    """

    id: str
    email: Optional[str] = None
    full_name: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "IdentityUser":
        """Build from an auth API user object.

        Raises:
            ValueError: If the payload has no id
        """
        user_id = payload.get("id")
        if not user_id:
            raise ValueError("user payload has no id")

        metadata = payload.get("user_metadata") or {}
        return cls(
            id=str(user_id),
            email=_clean(payload.get("email")),
            full_name=_clean(metadata.get("full_name")) if isinstance(metadata, dict) else None,
        )


def _clean(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    stripped = value.strip()
    return stripped or None
