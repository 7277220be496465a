"""Credential services package."""

from .credential_service import CredentialService, SecretVerifier
from .link_table import CredentialLinkService
from .method_store import CredentialMethodStore

__all__ = [
    "CredentialLinkService",
    "CredentialMethodStore",
    "CredentialService",
    "SecretVerifier",
]
