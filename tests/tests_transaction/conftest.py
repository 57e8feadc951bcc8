"""
Shared fixtures and mocking helpers for handle and transaction tests.

Key fixtures:
- handle_factory: root Handle over a FakeConnection with the SQLite dialect
  and a RecordingReceiver (an AfterCommitEventReceiver that records events)
"""

import pytest
from sqlalchemy.exc import InvalidRequestError, OperationalError

from txsql.events import AfterCommitEventReceiver
from txsql.session import Handle


class FakeCursorResult:
    """Mock SQLAlchemy CursorResult."""
    def __init__(self, rows=None, rowcount=1, lastrowid=None):
        self.rows = rows or []
        self.rowcount = rowcount
        self.lastrowid = lastrowid

    def all(self):
        return list(self.rows)


class FakeTransaction:
    """Mock SQLAlchemy RootTransaction."""
    def __init__(self, connection, fail_commit=False, fail_rollback=False):
        self.connection = connection
        self.fail_commit = fail_commit
        self.fail_rollback = fail_rollback
        self.committed = False
        self.rolled_back = False

    @property
    def is_active(self):
        return not (self.committed or self.rolled_back)

    def commit(self):
        if self.fail_commit:
            raise OperationalError("COMMIT", {}, Exception("disk full"))
        self.committed = True
        self.connection.current = None

    def rollback(self):
        self.rolled_back = True
        self.connection.current = None
        if self.fail_rollback:
            raise OperationalError("ROLLBACK", {}, Exception("connection lost"))

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.commit()
        else:
            self.rollback()
        return False


class FakeConnection:
    """Mock SQLAlchemy Connection recording executed SQL."""
    def __init__(self, rows=None, fail_exec=False, fail_commit=False, fail_rollback=False):
        self.rows = rows or []
        self.fail_exec = fail_exec
        self.fail_commit = fail_commit
        self.fail_rollback = fail_rollback
        self.current = None
        self.transactions = []
        self.executed = []

    def begin(self):
        if self.current is not None:
            raise InvalidRequestError("a transaction is already begun for this connection")
        self.current = FakeTransaction(self, self.fail_commit, self.fail_rollback)
        self.transactions.append(self.current)
        return self.current

    def in_transaction(self):
        return self.current is not None

    def exec_driver_sql(self, sql, params=None, execution_options=None):
        self.executed.append((sql, params, self.current))
        if self.fail_exec:
            raise OperationalError(sql, params, Exception("no such table: t"))
        return FakeCursorResult(self.rows, lastrowid=len(self.executed))


class RecordingReceiver(AfterCommitEventReceiver):
    """AfterCommitEventReceiver that keeps the names of events it saw."""
    def __init__(self):
        super().__init__()
        self.events = []
        self.errors = []

    def event(self, name, **kvs):
        self.events.append(name)
        super().event(name, **kvs)

    def event_err(self, name, err, **kvs):
        self.errors.append((name, err))
        return super().event_err(name, err, **kvs)


@pytest.fixture
def handle_factory(sqlite_dialect):
    """Factory for root handles over FakeConnections with the SQLite dialect."""
    def factory(receiver=None, **connection_kwargs):
        connection = FakeConnection(**connection_kwargs)
        return connection, Handle(connection, sqlite_dialect, receiver or RecordingReceiver())

    return factory
