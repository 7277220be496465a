"""Credential link database table models."""

from datetime import datetime

from sqlalchemy import Column, ForeignKey, String
from sqlmodel import Field, SQLModel

from src.authlink.entities.core._base import UTCDateTime, utc_now


class CredentialLinkTable(SQLModel, table=True):
    """One row per user that has ever registered a credential."""

    __tablename__ = "credential_links"

    uid: str = Field(
        sa_column=Column(
            String(36),
            ForeignKey("users.uid", ondelete="RESTRICT"),
            primary_key=True,
        )
    )
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(UTCDateTime(), nullable=False),
    )


class CredentialLinkSlotTable(SQLModel, table=True):
    """Nullable pointer from a link row to the active instance of one method.

    Deleting the referenced instance clears the pointer; it never cascades.
    """

    __tablename__ = "credential_link_slots"

    uid: str = Field(
        sa_column=Column(
            String(36),
            ForeignKey("credential_links.uid", ondelete="CASCADE"),
            primary_key=True,
        )
    )
    method: str = Field(
        sa_column=Column(
            String(64),
            ForeignKey("credential_methods.name", ondelete="RESTRICT"),
            primary_key=True,
        )
    )
    cid: str | None = Field(
        default=None,
        sa_column=Column(
            String(36),
            ForeignKey("credentials.cid", ondelete="SET NULL"),
            nullable=True,
            index=True,
        ),
    )
