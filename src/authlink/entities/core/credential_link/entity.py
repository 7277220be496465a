"""Credential link domain entity."""

from datetime import datetime

from pydantic import Field

from src.authlink.entities.core._base import Entity, utc_now


class CredentialLink(Entity):
    """Which credential instance, if any, is active for each method of a user."""

    uid: str = Field(description="Owning user")
    pointers: dict[str, str | None] = Field(
        default_factory=dict, description="Method name to active instance id"
    )
    created_at: datetime = Field(default_factory=utc_now)

    def active(self, method: str) -> str | None:
        return self.pointers.get(method)

    def active_methods(self) -> list[str]:
        return sorted(method for method, cid in self.pointers.items() if cid is not None)

    def is_empty(self) -> bool:
        return all(cid is None for cid in self.pointers.values())
