"""Creation and removal of the base tables."""

from loguru import logger
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel


def _register_tables() -> None:
    from src.authlink.entities.core.credential import CredentialMethodTable, CredentialTable  # noqa: F401
    from src.authlink.entities.core.credential_link import (  # noqa: F401
        CredentialLinkSlotTable,
        CredentialLinkTable,
    )
    from src.authlink.entities.core.schema_version import SchemaVersionTable  # noqa: F401
    from src.authlink.entities.core.user import UserTable  # noqa: F401


class DbManageService:
    def __init__(self, engine: Engine):
        self._engine = engine

    def create_all(self) -> None:
        """Create all database tables.

        Tables are fixed; credential methods are rows added by schema
        transformations afterwards.
        """
        _register_tables()
        SQLModel.metadata.create_all(self._engine)
        logger.info("Database initialized with tables.")

    def drop_all(self) -> None:
        _register_tables()
        SQLModel.metadata.drop_all(self._engine)
        logger.info("Database tables dropped.")
