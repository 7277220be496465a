"""Core services exports."""

# Database Service
from .database.db_session import DbSessionService

# Credential Services
from .credential import CredentialLinkService, CredentialMethodStore, CredentialService

# Schema Evolution
from .schema import SchemaEvolutionEngine

# User Services
from .user.user_registry import UserRegistryService

__all__ = [
    "CredentialLinkService",
    "CredentialMethodStore",
    "CredentialService",
    "DbSessionService",
    "SchemaEvolutionEngine",
    "UserRegistryService",
]
