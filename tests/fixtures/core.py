from __future__ import annotations

from collections.abc import Generator
from pathlib import Path

import pytest
from sqlalchemy.engine import Engine
from sqlmodel import Session

from src.authlink.core.services.credential import CredentialService
from src.authlink.core.services.database import DbManageService, DbSessionService, create_db_engine
from src.authlink.core.services.schema import SchemaEvolutionEngine
from src.authlink.runtime.config.config_data import DatabaseConfig

# Models are registered by DbManageService when tables are created


@pytest.fixture
def db_config() -> DatabaseConfig:
    """In-memory SQLite shared through a single connection."""
    return DatabaseConfig(url="sqlite://", max_retries=3, retry_backoff_ms=1)


@pytest.fixture
def engine(db_config: DatabaseConfig) -> Generator[Engine]:
    """Create a fresh engine with every table; each test gets its own database."""
    engine = create_db_engine(db_config)
    DbManageService(engine).create_all()
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def db(engine: Engine, db_config: DatabaseConfig) -> DbSessionService:
    return DbSessionService(db_config=db_config, engine=engine)


@pytest.fixture
def schema_engine(db: DbSessionService) -> SchemaEvolutionEngine:
    return SchemaEvolutionEngine(db)


@pytest.fixture
def baseline_db(db: DbSessionService, schema_engine: SchemaEvolutionEngine) -> DbSessionService:
    """Database with the shipped schema history applied."""
    schema_engine.upgrade()
    return db


@pytest.fixture
def session(engine: Engine) -> Generator[Session]:
    """Session on an empty schema (no credential methods)."""
    with Session(engine, expire_on_commit=False) as session:
        try:
            yield session
        finally:
            session.rollback()


@pytest.fixture
def seeded_session(baseline_db: DbSessionService) -> Generator[Session]:
    """Session on a database where the baseline credential methods exist."""
    with baseline_db.get_session() as session:
        try:
            yield session
        finally:
            session.rollback()


@pytest.fixture
def service(baseline_db: DbSessionService) -> CredentialService:
    return CredentialService(baseline_db)


@pytest.fixture
def file_db(tmp_path: Path) -> Generator[DbSessionService]:
    """File-backed SQLite with a connection pool, for tests that run threads."""
    config = DatabaseConfig(
        url=f"sqlite:///{tmp_path / 'authlink.db'}",
        max_retries=20,
        retry_backoff_ms=5,
        sqlite_busy_timeout=30,
    )
    db = DbSessionService(db_config=config)
    DbManageService(db.engine).create_all()
    SchemaEvolutionEngine(db).upgrade()
    try:
        yield db
    finally:
        db.dispose()


def accept(secret: bytes):
    """Verifier that accepts exactly ``secret``."""
    return lambda stored: stored == secret
