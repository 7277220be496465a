"""Database engine, session factory and transaction runner."""

import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import TypeVar

from loguru import logger
from sqlalchemy import StaticPool, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlmodel import Session, create_engine

from src.authlink.core.errors import AuthLinkError, TransactionConflict
from src.authlink.core.services.database.barrier import SchemaBarrier, acquire_advisory_lock
from src.authlink.runtime.config.config_data import DatabaseConfig
from src.authlink.runtime.context import get_config

T = TypeVar("T")

# SQLSTATEs PostgreSQL uses for serialization failures and deadlocks
_RETRYABLE_SQLSTATES = {"40001", "40P01"}


def _configure_sqlite_connection(dbapi_connection, connection_record) -> None:
    # pysqlite defers BEGIN until the first DML statement; take over transaction control
    dbapi_connection.isolation_level = None
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _begin_immediate(connection) -> None:
    connection.exec_driver_sql("BEGIN IMMEDIATE")


def create_db_engine(db_config: DatabaseConfig) -> Engine:
    """Build an engine for the configured database.

    SQLite enforces the declared ON DELETE policies only when the
    ``foreign_keys`` pragma is on, so every new connection turns it on. Its
    transactions start with ``BEGIN IMMEDIATE``, which takes the write lock up
    front and serializes writers from their first read.
    """
    url = db_config.connection_string

    if db_config.is_sqlite:
        engine_kwargs: dict = {
            "echo": False,
            "connect_args": {
                "check_same_thread": False,
                "timeout": db_config.sqlite_busy_timeout,
            },
        }
        if url in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection, otherwise every checkout sees an empty database
            engine_kwargs["poolclass"] = StaticPool
        engine = create_engine(url, **engine_kwargs)
        event.listen(engine, "connect", _configure_sqlite_connection)
        event.listen(engine, "begin", _begin_immediate)
        return engine

    return create_engine(
        url,
        echo=False,
        isolation_level=db_config.isolation_level,
        pool_size=db_config.pool_size,
        max_overflow=db_config.max_overflow,
        pool_timeout=db_config.pool_timeout,
        pool_recycle=db_config.pool_recycle,
        pool_pre_ping=True,
    )


def is_retryable(error: DBAPIError) -> bool:
    """Whether a database error is a serialization conflict worth retrying."""
    orig = error.orig
    sqlstate = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if sqlstate in _RETRYABLE_SQLSTATES:
        return True
    if isinstance(error, OperationalError):
        message = str(orig).lower()
        return "database is locked" in message or "deadlock" in message
    return False


class DbSessionService:
    def __init__(
        self,
        db_config: DatabaseConfig | None = None,
        engine: Engine | None = None,
        barrier: SchemaBarrier | None = None,
    ):
        """Initialize the shared database engine, session factory and schema barrier."""
        main_config = get_config()
        self._db_config = db_config or main_config.database
        self._advisory_lock_key = main_config.schema_evolution.advisory_lock_key

        logger.info(
            "Configuring database engine for environment: {}", main_config.app.environment
        )
        self._engine = engine or create_db_engine(self._db_config)
        self.barrier = barrier or SchemaBarrier()

    @property
    def engine(self) -> Engine:
        return self._engine

    def get_session(self) -> Session:
        """Return a new SQLModel session bound to the shared engine."""
        return Session(
            self._engine,
            expire_on_commit=False,
            autoflush=True,
        )

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """Commit on success, roll back and re-raise on any error."""
        db = self.get_session()
        try:
            yield db
            db.commit()
        except AuthLinkError as e:
            db.rollback()
            logger.info("Transaction rolled back: {}", e.code)
            raise
        except Exception as e:
            db.rollback()
            logger.error(
                "Database transaction failed",
                error_type=type(e).__name__,
                error_message=str(e),
            )
            raise
        finally:
            db.close()

    def run_in_transaction(
        self,
        work: Callable[[Session], T],
        *,
        exclusive: bool = False,
    ) -> T:
        """Run ``work`` in one transaction, retrying serialization conflicts.

        ``work`` may be called more than once and must not have side effects
        outside the session. Credential operations run under the shared side
        of the schema barrier; ``exclusive`` is reserved for transformations.
        """
        attempts = self._db_config.max_retries + 1
        for attempt in range(1, attempts + 1):
            try:
                with self.barrier.hold(exclusive), self.session_scope() as session:
                    acquire_advisory_lock(session, self._advisory_lock_key, exclusive)
                    return work(session)
            except DBAPIError as e:
                if not is_retryable(e):
                    raise
                if attempt == attempts:
                    raise TransactionConflict(
                        "Transaction kept conflicting with concurrent writers",
                        details={"attempts": attempts},
                    ) from e
                logger.warning(
                    "Serialization conflict on attempt {}/{}; retrying", attempt, attempts
                )
            time.sleep(self._db_config.retry_backoff_ms * attempt / 1000)

        raise AssertionError("unreachable")

    def health_check(self) -> bool:
        """Perform a health check on the database connection."""
        try:
            with self._engine.connect() as connection:
                connection.execute(text("SELECT 1"))
                return True
        except DBAPIError as e:
            logger.error(
                "Database health check failed",
                error_type=type(e).__name__,
                error_message=str(e),
            )
            return False

    def dispose(self) -> None:
        self._engine.dispose()
