"""
Shared pytest configuration and fixtures for all tests.

Key fixtures:
- pg_dialect: dialect adapter over SQLAlchemy's psycopg2 dialect (no server)
- sqlite_dialect: dialect adapter over SQLAlchemy's pysqlite dialect
- sqlite_engine: in-memory SQLite engine
- sqlite_handle: root Handle on a fresh in-memory database with table "t"
"""

import sys
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.dialects import postgresql, sqlite

# Add project root to sys.path to enable importing txsql without installation
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from txsql.session import wrap  # noqa: E402
from txsql.sql.dialect import dialect_for  # noqa: E402

SCHEMA_T = "CREATE TABLE t (id INTEGER PRIMARY KEY, value TEXT)"


def pytest_configure(config):
    """Register custom markers for test categorization."""
    config.addinivalue_line("markers", "unit: Unit tests - isolated function-level tests")
    config.addinivalue_line("markers", "integration: Integration tests - component interactions")
    config.addinivalue_line("markers", "smoke: Smoke tests - basic functionality checks")
    config.addinivalue_line("markers", "edge_case: Edge case tests - boundary conditions")
    config.addinivalue_line("markers", "regression: Regression tests - previously fixed bugs")


@pytest.fixture
def pg_dialect():
    """Postgres dialect adapter; renders only, never connects."""
    return dialect_for(postgresql.dialect())


@pytest.fixture
def sqlite_dialect():
    return dialect_for(sqlite.dialect())


@pytest.fixture
def sqlite_engine():
    engine = create_engine("sqlite://")
    yield engine
    engine.dispose()


@pytest.fixture
def sqlite_connection(sqlite_engine):
    connection = sqlite_engine.connect()
    yield connection
    connection.close()


@pytest.fixture
def sqlite_handle(sqlite_connection):
    """Root handle on an in-memory database holding an empty table "t"."""
    handle = wrap(sqlite_connection)
    handle.exec(SCHEMA_T)
    return handle
