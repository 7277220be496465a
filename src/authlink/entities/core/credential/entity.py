"""Credential domain entities."""

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import Field

from src.authlink.entities.core._base import Entity, new_id, utc_now


class MethodKind(StrEnum):
    PASSWORD = "password"
    OAUTH = "oauth"


class CredentialMethod(Entity):
    """A credential method known to the system.

    Methods are rows, not tables: adding one is a data change performed by a
    schema transformation.
    """

    name: str = Field(description="Method name, e.g. 'email_password'")
    kind: MethodKind = Field(description="Secret-based or external identity")
    identifier_label: str = Field(
        description="What the natural key is called (username, email, provider_id)"
    )
    case_insensitive: bool = Field(
        default=False, description="Identifiers compare case-insensitively"
    )
    field_defaults: dict[str, Any] = Field(
        default_factory=dict,
        description="Method-specific attribute names and their default values",
    )

    def normalize_identifier(self, identifier: str) -> str:
        identifier = identifier.strip()
        if self.case_insensitive:
            return identifier.lower()
        return identifier


class CredentialInstance(Entity):
    """One registration of a credential method for one user."""

    cid: str = Field(default_factory=new_id, description="Unique instance id")
    method: str = Field(description="Owning method store")
    uid: str = Field(description="Owning user")
    identifier: str = Field(description="Natural key, unique within the method store")
    secret: bytes = Field(
        repr=False,
        description="Opaque secret material or external identity (hashes are produced elsewhere)",
    )
    attributes: dict[str, Any] = Field(default_factory=dict)
    verified: bool = False
    disabled: bool = False
    created: datetime = Field(default_factory=utc_now)
    last_update: datetime = Field(default_factory=utc_now)
    last_authentication: datetime | None = None

    @property
    def active(self) -> bool:
        return not self.disabled
