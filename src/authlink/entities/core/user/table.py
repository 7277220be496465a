"""User database table model."""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Column, String
from sqlmodel import Field, SQLModel

from src.authlink.entities.core._base import UTCDateTime, new_id, utc_now


class UserTable(SQLModel, table=True):
    """Persistence model for users.

    The profile lives in the ``metadata`` column; the attribute is named
    ``profile`` because SQLModel reserves ``metadata``.
    """

    __tablename__ = "users"

    uid: str = Field(
        default_factory=new_id, sa_column=Column(String(36), primary_key=True)
    )
    profile: dict[str, Any] | None = Field(
        default=None, sa_column=Column("metadata", JSON, nullable=True)
    )
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(UTCDateTime(), nullable=False),
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(UTCDateTime(), nullable=False),
    )
