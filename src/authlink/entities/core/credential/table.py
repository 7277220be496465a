"""Credential database table models."""

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    ForeignKey,
    LargeBinary,
    String,
    UniqueConstraint,
)
from sqlmodel import Field, SQLModel

from src.authlink.entities.core._base import UTCDateTime, new_id, utc_now


class CredentialMethodTable(SQLModel, table=True):
    """Registry of known credential methods."""

    __tablename__ = "credential_methods"

    name: str = Field(sa_column=Column(String(64), primary_key=True))
    kind: str = Field(sa_column=Column(String(16), nullable=False))
    identifier_label: str = Field(sa_column=Column(String(64), nullable=False))
    case_insensitive: bool = Field(
        default=False, sa_column=Column(Boolean, nullable=False)
    )
    field_defaults: dict[str, Any] = Field(
        default_factory=dict, sa_column=Column(JSON, nullable=False)
    )


class CredentialTable(SQLModel, table=True):
    """Shared instance table for every method store.

    ``(method, uid)`` and ``(method, identifier)`` are unique. The owner
    reference restricts user deletion; deleting an instance never touches the
    user.
    """

    __tablename__ = "credentials"
    __table_args__ = (
        UniqueConstraint("method", "uid", name="uq_credential_method_uid"),
        UniqueConstraint(
            "method", "identifier", name="uq_credential_method_identifier"
        ),
    )

    cid: str = Field(
        default_factory=new_id, sa_column=Column(String(36), primary_key=True)
    )
    method: str = Field(
        sa_column=Column(
            String(64),
            ForeignKey("credential_methods.name", ondelete="RESTRICT"),
            nullable=False,
            index=True,
        )
    )
    uid: str = Field(
        sa_column=Column(
            String(36),
            ForeignKey("users.uid", ondelete="RESTRICT"),
            nullable=False,
            index=True,
        )
    )
    identifier: str = Field(sa_column=Column(String(320), nullable=False))
    secret: bytes = Field(sa_column=Column(LargeBinary, nullable=False))
    attributes: dict[str, Any] = Field(
        default_factory=dict, sa_column=Column(JSON, nullable=False)
    )
    verified: bool = Field(default=False, sa_column=Column(Boolean, nullable=False))
    disabled: bool = Field(default=False, sa_column=Column(Boolean, nullable=False))
    created: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(UTCDateTime(), nullable=False),
    )
    last_update: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(UTCDateTime(), nullable=False),
    )
    last_authentication: datetime | None = Field(
        default=None, sa_column=Column(UTCDateTime(), nullable=True)
    )
