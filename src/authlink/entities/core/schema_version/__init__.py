"""Schema version marker module.

- SchemaVersion: One committed schema transformation
- SchemaVersionTable: Database persistence model
- SchemaVersionRepository: Data access layer
"""

from .entity import SchemaVersion
from .repository import SchemaVersionRepository
from .table import SchemaVersionTable

__all__ = ["SchemaVersion", "SchemaVersionTable", "SchemaVersionRepository"]
