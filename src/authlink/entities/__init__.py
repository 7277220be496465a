"""Entities module with entity-centric structure.

Each entity has its own package containing:
- entity.py: Domain model
- table.py: Database persistence model
- repository.py: Data access layer
"""

from .core.credential import (
    CredentialInstance,
    CredentialMethod,
    CredentialMethodRepository,
    CredentialMethodTable,
    CredentialRepository,
    CredentialTable,
)
from .core.credential_link import (
    CredentialLink,
    CredentialLinkRepository,
    CredentialLinkSlotTable,
    CredentialLinkTable,
)
from .core.schema_version import SchemaVersion, SchemaVersionRepository, SchemaVersionTable
from .core.user import User, UserRepository, UserTable

__all__ = [
    "User",
    "UserTable",
    "UserRepository",
    "CredentialMethod",
    "CredentialMethodTable",
    "CredentialMethodRepository",
    "CredentialInstance",
    "CredentialTable",
    "CredentialRepository",
    "CredentialLink",
    "CredentialLinkTable",
    "CredentialLinkSlotTable",
    "CredentialLinkRepository",
    "SchemaVersion",
    "SchemaVersionTable",
    "SchemaVersionRepository",
]
