"""Credential entity module.

- CredentialMethod: A known way of authenticating (registry row)
- CredentialInstance: One concrete registration of a method for one user
- CredentialMethodTable / CredentialTable: Database persistence models
- CredentialMethodRepository / CredentialRepository: Data access layer

Every method store indexes the same ``credentials`` table by method name, so
the per-user and per-identifier uniqueness rules are declared once.
"""

from .entity import CredentialInstance, CredentialMethod, MethodKind
from .repository import CredentialMethodRepository, CredentialRepository
from .table import CredentialMethodTable, CredentialTable

__all__ = [
    "CredentialMethod",
    "CredentialInstance",
    "MethodKind",
    "CredentialMethodTable",
    "CredentialTable",
    "CredentialMethodRepository",
    "CredentialRepository",
]
