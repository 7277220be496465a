"""User domain entity."""

from datetime import datetime
from typing import Any

from pydantic import Field

from src.authlink.entities.core._base import Entity, new_id, utc_now


class User(Entity):
    """Canonical identity record.

    The profile is opaque to the linking core. Credentials reference the user,
    never the other way round.
    """

    uid: str = Field(default_factory=new_id, description="Opaque user identity")
    profile: dict[str, Any] | None = Field(
        default=None, description="Unstructured optional profile metadata"
    )
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def __eq__(self, other: Any) -> bool:
        """Compare users by identity and profile, ignoring timestamps."""
        if not isinstance(other, User):
            return False

        return self.uid == other.uid and self.profile == other.profile

    def __hash__(self) -> int:
        return hash(self.uid)
