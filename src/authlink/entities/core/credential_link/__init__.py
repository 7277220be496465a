"""Credential link entity module.

- CredentialLink: Per-user mapping from method name to the active instance
- CredentialLinkTable / CredentialLinkSlotTable: Link row and its per-method slots
- CredentialLinkRepository: Data access layer
"""

from .entity import CredentialLink
from .repository import CredentialLinkRepository
from .table import CredentialLinkSlotTable, CredentialLinkTable

__all__ = [
    "CredentialLink",
    "CredentialLinkTable",
    "CredentialLinkSlotTable",
    "CredentialLinkRepository",
]
