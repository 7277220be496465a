"""Unit tests for the transaction runner and the schema barrier."""

import threading
import time

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, OperationalError

from src.authlink.core.errors import NotFound, TransactionConflict
from src.authlink.core.services.database import DbSessionService, SchemaBarrier
from src.authlink.core.services.database.db_session import is_retryable
from src.authlink.entities.core.user import User, UserRepository


class _PgError(Exception):
    def __init__(self, pgcode: str) -> None:
        super().__init__("could not serialize access")
        self.pgcode = pgcode


def _locked() -> OperationalError:
    return OperationalError("INSERT", {}, Exception("database is locked"))


class TestRetryClassification:
    def test_serialization_failure(self):
        assert is_retryable(OperationalError("SELECT", {}, _PgError("40001")))
        assert is_retryable(OperationalError("SELECT", {}, _PgError("40P01")))

    def test_sqlite_locked(self):
        assert is_retryable(_locked())

    def test_constraint_violation_is_not_retried(self):
        assert not is_retryable(IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed")))


class TestRunInTransaction:
    def test_commits_on_success(self, db: DbSessionService):
        created = db.run_in_transaction(lambda s: UserRepository(s).create(User()))

        assert db.run_in_transaction(lambda s: UserRepository(s).exists(created.uid))

    def test_rolls_back_domain_errors_without_retry(self, db: DbSessionService):
        calls = []

        def work(session):
            calls.append(1)
            UserRepository(session).create(User(uid="rolled-back"))
            raise NotFound("nope")

        with pytest.raises(NotFound):
            db.run_in_transaction(work)

        assert len(calls) == 1
        assert not db.run_in_transaction(lambda s: UserRepository(s).exists("rolled-back"))

    def test_retries_serialization_conflicts(self, db: DbSessionService):
        attempts = []

        def work(session):
            attempts.append(1)
            if len(attempts) < 3:
                raise _locked()
            return "done"

        assert db.run_in_transaction(work) == "done"
        assert len(attempts) == 3

    def test_gives_up_after_max_retries(self, db: DbSessionService, db_config):
        attempts = []

        def work(session):
            attempts.append(1)
            raise _locked()

        with pytest.raises(TransactionConflict) as exc_info:
            db.run_in_transaction(work)

        assert len(attempts) == db_config.max_retries + 1
        assert exc_info.value.details["attempts"] == db_config.max_retries + 1

    def test_foreign_keys_enforced(self, db: DbSessionService):
        enabled = db.run_in_transaction(
            lambda s: s.execute(text("PRAGMA foreign_keys")).scalar_one()
        )
        assert enabled == 1

    def test_health_check(self, db: DbSessionService):
        assert db.health_check() is True


class TestSchemaBarrier:
    def test_readers_share(self):
        barrier = SchemaBarrier()
        with barrier.shared(), barrier.shared():
            assert barrier.readers == 2
        assert barrier.readers == 0

    def test_writer_waits_for_readers(self):
        barrier = SchemaBarrier()
        events = []
        reader_in = threading.Event()

        def writer():
            reader_in.wait()
            with barrier.exclusive():
                events.append("writer")

        thread = threading.Thread(target=writer)
        thread.start()
        with barrier.shared():
            reader_in.set()
            time.sleep(0.05)
            events.append("reader")
        thread.join(timeout=5)

        assert events == ["reader", "writer"]

    def test_readers_wait_for_writer(self):
        barrier = SchemaBarrier()
        events = []
        writer_in = threading.Event()

        def reader():
            writer_in.wait()
            with barrier.shared():
                events.append("reader")

        thread = threading.Thread(target=reader)
        thread.start()
        with barrier.exclusive():
            writer_in.set()
            time.sleep(0.05)
            events.append("writer")
        thread.join(timeout=5)

        assert events == ["writer", "reader"]
