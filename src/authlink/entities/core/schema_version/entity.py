"""Schema version domain entity."""

from datetime import datetime

from pydantic import Field

from src.authlink.entities.core._base import Entity, utc_now


class SchemaVersion(Entity):
    """Marker recording that a transformation's forward step has committed."""

    version: int = Field(description="1-based position in the transformation list")
    name: str = Field(description="Transformation name")
    applied_at: datetime = Field(default_factory=utc_now)
