"""Database initialization script."""

from loguru import logger

from src.authlink.core.services.database.db_manage import DbManageService
from src.authlink.core.services.database.db_session import DbSessionService
from src.authlink.core.services.schema import SchemaEvolutionEngine
from src.authlink.runtime.context import get_config


def init_db(db: DbSessionService | None = None, upgrade: bool | None = None) -> DbSessionService:
    """Create all tables and, if asked or configured, apply the baseline schema."""
    db = db or DbSessionService()
    DbManageService(db.engine).create_all()

    if upgrade is None:
        upgrade = get_config().schema_evolution.auto_upgrade
    if upgrade:
        applied = SchemaEvolutionEngine(db).upgrade()
        logger.info("Applied {} schema version(s)", len(applied))
    return db


if __name__ == "__main__":
    init_db()
