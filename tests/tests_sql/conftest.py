"""
Shared fixtures and mocking helpers for txsql.sql tests.

Key fixtures:
- fake_runner_factory: builds a FakeRunner bound to a dialect adapter
"""

import pytest

from txsql.result import Result


class FakeRunner:
    """Stands in for a handle: records what statements ask it to execute."""

    def __init__(self, dialect, rows=None, result=None):
        self.dialect = dialect
        self.rows = rows if rows is not None else []
        self.result = result or Result(last_insert_id=7, rows_affected=1)
        self.calls = []

    def exec_builder(self, builder):
        self.calls.append(('exec_builder', builder))
        return self.result

    def load_builder(self, builder):
        self.calls.append(('load_builder', builder))
        return self.rows

    def exec_raw(self, sql):
        self.calls.append(('exec_raw', sql))
        return self.result

    def load_raw(self, sql):
        self.calls.append(('load_raw', sql))
        return self.rows


@pytest.fixture
def fake_runner_factory():
    def factory(dialect, **kwargs):
        return FakeRunner(dialect, **kwargs)

    return factory
