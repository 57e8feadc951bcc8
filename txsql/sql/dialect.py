"""
=====================================
Dialect adapters for SQL rendering.
=====================================

Builders render against a small dialect surface: identifier quoting, literal
encoding, driver placeholders and a Postgres-family check that gates
RETURNING, GREATEST and native translate. The surface is built on top of a
SQLAlchemy dialect, which supplies the identifier preparer, the dialect name
and the driver paramstyle.

Classes:
    BaseDialect: Quoting and literal encoding derived from a SQLAlchemy dialect
    Dialect: Adapter over a BaseDialect that keeps UTC offsets in time literals

Example:
    >>> from sqlalchemy.dialects import postgresql, sqlite
    >>> from txsql.sql.dialect import dialect_for
    >>>
    >>> pg = dialect_for(postgresql.dialect())
    >>> pg.is_postgres
    True
    >>> pg.quote_ident("public.users")
    '"public"."users"'
    >>> dialect_for(sqlite.dialect()).encode(True)
    '1'
"""

import datetime
import decimal
import uuid
from typing import Any

from sqlalchemy.engine import Dialect as SADialect

from txsql.errors import BuildError

POSTGRES_FAMILY = frozenset({'postgresql', 'cockroachdb', 'redshift'})

TIME_FORMAT = '%Y-%m-%d %H:%M:%S.%f'
DATE_FORMAT = '%Y-%m-%d'
CLOCK_FORMAT = '%H:%M:%S.%f'


class BaseDialect:
    """Quoting and literal encoding for one SQLAlchemy dialect.

    Attributes:
        sa_dialect: The wrapped SQLAlchemy dialect instance
    """

    def __init__(self, sa_dialect: SADialect):
        self.sa_dialect = sa_dialect

    @property
    def name(self) -> str:
        """SQLAlchemy dialect name (e.g. 'postgresql', 'sqlite')."""
        return self.sa_dialect.name

    @property
    def paramstyle(self) -> str:
        """DB-API paramstyle of the driver behind the dialect."""
        return self.sa_dialect.paramstyle

    @property
    def is_postgres(self) -> bool:
        """True for dialects supporting RETURNING, ON CONFLICT and translate()."""
        return self.name in POSTGRES_FAMILY

    def quote_ident(self, name: str) -> str:
        """Quote a possibly schema-qualified identifier, part by part."""
        preparer = self.sa_dialect.identifier_preparer
        return '.'.join(
            part if part == '*' else preparer.quote_identifier(part)
            for part in name.split('.')
        )

    def encode_string(self, value: str) -> str:
        value = value.replace("'", "''")
        if getattr(self.sa_dialect, '_backslash_escapes', False):
            value = value.replace('\\', '\\\\')
        return f"'{value}'"

    def encode_bool(self, value: bool) -> str:
        if self.sa_dialect.supports_native_boolean:
            return 'TRUE' if value else 'FALSE'
        return '1' if value else '0'

    def encode_bytes(self, value: bytes) -> str:
        if self.is_postgres:
            return f"'\\x{value.hex()}'"
        return f"X'{value.hex()}'"

    def encode_time(self, value: datetime.datetime) -> str:
        """Encode a datetime literal, normalizing aware values to UTC."""
        if value.tzinfo is not None:
            value = value.astimezone(datetime.timezone.utc)
        return f"'{value.strftime(TIME_FORMAT)}'"

    def placeholder(self, index: int) -> str:
        """Driver placeholder for the 1-based parameter ``index``."""
        style = self.paramstyle
        if style in ('format', 'pyformat'):
            return '%s'
        if style == 'numeric':
            return f':{index}'
        if style == 'numeric_dollar':
            return f'${index}'
        if style in ('named', 'named_dollar'):
            return f':p{index}'
        return '?'

    def encode(self, value: Any) -> str:
        """Encode a Python value as an inline SQL literal.

        Raises:
            BuildError: If the value has no literal form
        """
        if value is None:
            return 'NULL'
        # bool before int: bool is an int subclass
        if isinstance(value, bool):
            return self.encode_bool(value)
        if isinstance(value, (int, float, decimal.Decimal)):
            return str(value)
        if isinstance(value, str):
            return self.encode_string(value)
        if isinstance(value, uuid.UUID):
            return self.encode_string(str(value))
        if isinstance(value, (bytes, bytearray, memoryview)):
            return self.encode_bytes(bytes(value))
        if isinstance(value, datetime.datetime):
            return self.encode_time(value)
        if isinstance(value, datetime.date):
            return f"'{value.strftime(DATE_FORMAT)}'"
        if isinstance(value, datetime.time):
            return f"'{value.strftime(CLOCK_FORMAT)}'"
        raise BuildError(
            f"cannot encode value of type {type(value).__name__} as a SQL literal"
        )


class Dialect:
    """Dialect adapter that keeps the UTC offset of aware datetimes.

    Only ``encode_time`` (and therefore ``encode`` for datetimes) differs
    from the wrapped dialect; every other attribute is delegated.

    Attributes:
        base: The wrapped BaseDialect
    """

    def __init__(self, base: BaseDialect):
        self.base = base

    def __getattr__(self, name: str) -> Any:
        if name == 'base':
            raise AttributeError(name)
        return getattr(self.base, name)

    def __repr__(self) -> str:
        return f"<Dialect {self.base.name}>"

    def encode_time(self, value: datetime.datetime) -> str:
        if value.tzinfo is None:
            return self.base.encode_time(value)
        return f"'{value.isoformat(sep=' ', timespec='microseconds')}'"

    def encode(self, value: Any) -> str:
        if isinstance(value, datetime.datetime):
            return self.encode_time(value)
        return self.base.encode(value)


def dialect_for(sa_dialect: SADialect) -> Dialect:
    """Build the default dialect adapter for a SQLAlchemy dialect."""
    return Dialect(BaseDialect(sa_dialect))
