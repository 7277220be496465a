"""Schema version database table model."""

from datetime import datetime

from sqlalchemy import Column, Integer, String
from sqlmodel import Field, SQLModel

from src.authlink.entities.core._base import UTCDateTime, utc_now


class SchemaVersionTable(SQLModel, table=True):
    __tablename__ = "schema_versions"

    version: int = Field(
        sa_column=Column(Integer, primary_key=True, autoincrement=False)
    )
    name: str = Field(sa_column=Column(String(128), nullable=False))
    applied_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(UTCDateTime(), nullable=False),
    )
