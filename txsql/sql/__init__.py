"""
=====================================================
SQL construction package for transaction handles.
=====================================================

Builders write SQL with ``?`` markers and a parallel value list into a
Buffer; the dialect adapter turns the result into the driver's paramstyle or
into a literal SQL string.

The package follows a clear organization:
    - dialect.py: Dialect adapter (quoting, literal encoding, placeholders)
    - buffer.py: Buffer, rendering, interpolation and parameter binding
    - fragments.py: Reusable fragments (expr, parens, values, greatest,
      translate, do_update, do_nothing)
    - query_builder.py: Base SELECT/INSERT/UPDATE/DELETE builders
    - statements.py: Handle-bound statement decorators (WITH, RETURNING,
      ON CONFLICT, execution)
    - union.py: UNION composer

Architecture:
    - Fragments and base builders are pure: they only write to a Buffer
    - statements.py and union.py hold a handle reference and execute
    - Nothing here touches the driver directly

Example:
    >>> from txsql.sql import greatest, render
    >>> render(greatest(1, 2), dialect)
    ('max(?,?)', [1, 2])
"""

__all__ = [
    # Rendering
    'Buffer', 'render', 'interpolate_for_dialect', 'bind_for_dialect',
    'BaseDialect', 'Dialect', 'dialect_for',
    # Fragments
    'Builder', 'expr', 'parens', 'values', 'greatest', 'translate',
    'do_update', 'do_nothing',
    # Builders and statements
    'SelectBuilder', 'InsertBuilder', 'UpdateBuilder', 'DeleteBuilder',
    'SelectStmt', 'InsertStmt', 'UpdateStmt', 'DeleteStmt', 'UnionStmt'
]

from .buffer import Buffer, bind_for_dialect, interpolate_for_dialect, render
from .dialect import BaseDialect, Dialect, dialect_for
from .fragments import (
    Builder,
    do_nothing,
    do_update,
    expr,
    greatest,
    parens,
    translate,
    values,
)
from .query_builder import (
    DeleteBuilder,
    InsertBuilder,
    SelectBuilder,
    UpdateBuilder,
)
from .statements import DeleteStmt, InsertStmt, SelectStmt, UpdateStmt
from .union import UnionStmt
