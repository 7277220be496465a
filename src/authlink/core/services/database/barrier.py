"""Schema-wide barrier between credential operations and schema transformations."""

import threading
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import text
from sqlmodel import Session


class SchemaBarrier:
    """Readers/writer lock.

    Credential operations hold the shared side; a schema transformation holds
    the exclusive side for the whole of its transaction. Waiting writers block
    new readers so a transformation cannot be starved.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def shared(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def exclusive(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()

    def hold(self, exclusive: bool = False):
        return self.exclusive() if exclusive else self.shared()

    @property
    def readers(self) -> int:
        return self._readers


def acquire_advisory_lock(session: Session, key: int, exclusive: bool) -> None:
    """Extend the barrier across processes on PostgreSQL; other backends rely on the in-process lock."""
    if session.get_bind().dialect.name != "postgresql":
        return
    function = "pg_advisory_xact_lock" if exclusive else "pg_advisory_xact_lock_shared"
    session.exec(text(f"SELECT {function}(:key)").bindparams(key=key))
