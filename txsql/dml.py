"""
=========================================
Statement-building capability of handles.
=========================================

DML is shared by the root Handle and by both transaction handle kinds. It
creates statement decorators, keeps the pending WITH-clause list and runs
rendered SQL on the SQLAlchemy connection.

Pending WITH clauses:
    ``with_()`` appends to the handle's own list and returns the handle. The
    next ``select()`` or ``update()`` on the same handle takes the list and
    clears it. Any other statement call (insert, delete, union, raw SQL,
    begin) drops a pending list unused, so WITH must be chained directly:
    ``handle.with_(...).select(...)``.

Execution:
    Statements run on the handle's connection. When no transaction is open
    on the connection, each statement runs inside its own short transaction
    that commits on success. Row results are fetched before that commit.

Concurrency:
    No locking. One thread drives one handle tree at a time; concurrent use
    of one handle must be serialized by the caller.
"""

import logging
import time
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Iterator, List, Optional, Sequence, Tuple

from sqlalchemy.exc import SQLAlchemyError

from txsql.errors import DriverExecError
from txsql.result import Result
from txsql.sql.buffer import bind_for_dialect, render
from txsql.sql.fragments import Builder, Expr
from txsql.sql.query_builder import (
    DeleteBuilder,
    InsertBuilder,
    SelectBuilder,
    UpdateBuilder,
)
from txsql.sql.statements import (
    DeleteStmt,
    InsertStmt,
    SelectStmt,
    UpdateStmt,
    WithClause,
)
from txsql.sql.union import UnionStmt

logger = logging.getLogger(__name__)


class DML(ABC):
    """Statement building and execution on one SQLAlchemy connection.

    Attributes:
        connection: The SQLAlchemy Connection statements run on
        dialect: Dialect adapter used for rendering
        receiver: Event receiver notified of executions and failures
    """

    def __init__(self, connection, dialect, receiver):
        self.connection = connection
        self.dialect = dialect
        self.receiver = receiver
        self._pending_with: List[WithClause] = []

    # ---------------------------------------------------------------
    # Statement builders
    # ---------------------------------------------------------------

    def with_(self, name: str, builder: Builder) -> 'DML':
        """Declare a WITH clause for the next select() or update().

        Args:
            name: CTE name, optionally with a column list, e.g. 'v(id,value)'
            builder: Body of the CTE (a select, values(), any fragment)
        """
        self._pending_with.append((name, builder))
        return self

    def _take_with(self) -> Tuple[WithClause, ...]:
        clauses, self._pending_with = tuple(self._pending_with), []
        return clauses

    def _drop_with(self, caller: str) -> None:
        if self._pending_with:
            logger.debug(f"Dropping {len(self._pending_with)} unused WITH clause(s) at {caller}()")
            self._pending_with = []

    def select(self, *columns: Any) -> SelectStmt:
        return SelectStmt(self, SelectBuilder(*columns), self._take_with())

    def insert_into(self, table: str) -> InsertStmt:
        self._drop_with('insert_into')
        return InsertStmt(self, InsertBuilder(table))

    def update(self, table: str) -> UpdateStmt:
        return UpdateStmt(self, UpdateBuilder(table), self._take_with())

    def delete_from(self, table: str) -> DeleteStmt:
        self._drop_with('delete_from')
        return DeleteStmt(self, DeleteBuilder(table))

    def union(self, *builders: Builder, all: bool = False) -> UnionStmt:
        """Combine statements with UNION, or UNION ALL when ``all`` is set."""
        self._drop_with('union')
        return UnionStmt(self, builders, all)

    def exec(self, sql: str, *args: Any) -> Result:
        """Execute raw SQL with ``?`` placeholders."""
        self._drop_with('exec')
        return self.exec_builder(Expr(sql, *args))

    def query(self, sql: str, *args: Any) -> List[Any]:
        """Run raw SQL with ``?`` placeholders and return all rows."""
        self._drop_with('query')
        return self.load_builder(Expr(sql, *args))

    @abstractmethod
    def begin(self):
        """Open a transaction, or join the one this handle belongs to."""

    # ---------------------------------------------------------------
    # Execution
    # ---------------------------------------------------------------

    def exec_builder(self, builder: Builder) -> Result:
        """Render ``builder`` with bound parameters and execute it."""
        sql, values = render(builder, self.dialect)
        return self._run(*bind_for_dialect(sql, values, self.dialect), fetch=False)

    def load_builder(self, builder: Builder) -> List[Any]:
        """Render ``builder`` with bound parameters and fetch all rows."""
        sql, values = render(builder, self.dialect)
        return self._run(*bind_for_dialect(sql, values, self.dialect), fetch=True)

    def exec_raw(self, sql: str) -> Result:
        """Execute literal SQL that carries no placeholders."""
        return self._run(*bind_for_dialect(sql, (), self.dialect), fetch=False)

    def load_raw(self, sql: str) -> List[Any]:
        """Run literal SQL that carries no placeholders and fetch all rows."""
        return self._run(*bind_for_dialect(sql, (), self.dialect), fetch=True)

    def exec_script(self, sql: str) -> Result:
        """Send ``sql`` to the driver untouched, without a parameter collection.

        Neither ``?`` nor ``%`` is interpreted, so scripts may contain them
        anywhere, comments included.
        """
        return self._run(sql, None, fetch=False)

    @contextmanager
    def _statement_scope(self) -> Iterator[None]:
        if self.connection.in_transaction():
            yield
        else:
            with self.connection.begin():
                yield

    def _run(self, sql: str, params: Optional[Sequence[Any]], fetch: bool):
        options = {'preserve_rowcount': True}
        if params is None:
            options['no_parameters'] = True
        started = time.perf_counter()
        try:
            with self._statement_scope():
                cursor = self.connection.exec_driver_sql(sql, params, execution_options=options)
                outcome = cursor.all() if fetch else Result.from_cursor(cursor)
        except SQLAlchemyError as e:
            self.receiver.event_err('txsql.exec', e, sql=sql)
            raise DriverExecError(f"Failed to execute statement: {e}", cause=e, sql=sql) from e
        finally:
            self.receiver.timing('txsql.exec', time.perf_counter() - started, sql=sql)
        return outcome
