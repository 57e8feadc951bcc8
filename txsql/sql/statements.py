"""
=====================
Statement decorators.
=====================

Each decorator wraps one base builder from txsql.sql.query_builder, together
with the WITH clauses pending on the handle that created it and a reference
back to that handle. Chainable builder calls (``where``, ``set``,
``order_by`` ...) are forwarded to the base builder and return the
decorator, so a statement reads as one chain:

    handle.with_('v(id,value)', values(1, 'v_1').values(2, 'v_2')) \\
        .update('t') \\
        .set('value', parens(handle.select('value').from_('v').where('v.id = t.id'))) \\
        .where('t.id in ?', handle.select('id').from_('v')) \\
        .exec()

What the decorators add:
- WITH prefixing for SELECT and UPDATE
- RETURNING that is recorded only on Postgres-family dialects
- ON CONFLICT for INSERT
- Execution through the handle, with a literal-SQL fallback for clauses the
  plain parameterized path does not carry (UPDATE with WITH, INSERT with
  ON CONFLICT)
- A single-column RETURNING insert on Postgres loads the returned value and
  reports it as the last inserted id

Decorators are created per call and are not meant to be shared between
threads.
"""

import functools
import logging
from typing import Any, List, Optional, Sequence, Tuple, Union

from txsql.errors import BuildError
from txsql.result import Result
from txsql.sql.buffer import interpolate_for_dialect, render
from txsql.sql.fragments import Aliased, Builder
from txsql.sql.query_builder import (
    DeleteBuilder,
    InsertBuilder,
    SelectBuilder,
    UpdateBuilder,
)

logger = logging.getLogger(__name__)

WithClause = Tuple[str, Builder]


def write_with(dialect, buf, clauses: Sequence[WithClause]) -> None:
    """Write ``WITH name AS (...)[, name2 AS (...)] `` in declaration order."""
    if not clauses:
        return
    buf.write('WITH ')
    for i, (name, sub) in enumerate(clauses):
        if i > 0:
            buf.write(', ')
        buf.write(f'{name} AS (')
        sub.build(dialect, buf)
        buf.write(')')
    buf.write(' ')


class Statement(Builder):
    """Common base of the statement decorators.

    Attributes:
        runner: The handle the statement executes through
        builder: The wrapped base builder
        with_clauses: WITH clauses taken from the handle at creation
    """

    def __init__(self, runner, builder: Builder, with_clauses: Sequence[WithClause] = ()):
        self.runner = runner
        self.builder = builder
        self.with_clauses = tuple(with_clauses)

    def __getattr__(self, name: str) -> Any:
        if name in ('builder', 'runner', 'with_clauses'):
            raise AttributeError(name)
        attr = getattr(self.builder, name)
        if not callable(attr):
            return attr

        @functools.wraps(attr)
        def chained(*args, **kwargs):
            result = attr(*args, **kwargs)
            return self if result is self.builder else result

        return chained

    @property
    def dialect(self):
        return self.runner.dialect

    def build(self, dialect, buf) -> None:
        write_with(dialect, buf, self.with_clauses)
        self.builder.build(dialect, buf)

    def to_sql(self) -> Tuple[str, List[Any]]:
        """Render for the handle's dialect: (SQL with ``?`` markers, values)."""
        return render(self, self.dialect)

    def interpolate(self) -> str:
        """Render for the handle's dialect with every value inlined."""
        sql, values = self.to_sql()
        return interpolate_for_dialect(sql, values, self.dialect)

    def _exec_literal(self) -> Result:
        """Execute as literal SQL, for clauses the bound path cannot carry."""
        sql = self.interpolate()
        logger.debug(f"Executing {type(self).__name__} as literal SQL")
        return self.runner.exec_raw(sql)

    def _load_literal(self) -> List[Any]:
        sql = self.interpolate()
        logger.debug(f"Loading {type(self).__name__} as literal SQL")
        return self.runner.load_raw(sql)


class SelectStmt(Statement):
    """SELECT decorator with WITH prefixing and row loading."""

    def __init__(self, runner, builder: SelectBuilder, with_clauses: Sequence[WithClause] = ()):
        super().__init__(runner, builder, with_clauses)

    def as_(self, alias: str) -> Aliased:
        return Aliased(self, alias)

    def load(self) -> List[Any]:
        """Execute and return all rows (SQLAlchemy Row objects)."""
        return self.runner.load_builder(self)

    def load_one(self) -> Optional[Any]:
        """Execute and return the first row, or None."""
        rows = self.load()
        return rows[0] if rows else None

    def load_scalars(self) -> List[Any]:
        """Execute and return the first column of every row."""
        return [row[0] for row in self.load()]

    def load_scalar(self) -> Optional[Any]:
        """Execute and return the first column of the first row, or None."""
        row = self.load_one()
        return row[0] if row is not None else None


class _ReturningMixin:
    """RETURNING recorded only where the dialect supports it."""

    returning_columns: List[str]

    def returning(self, *columns: str):
        if self.dialect.is_postgres:
            self.returning_columns.extend(columns)
        else:
            logger.debug(
                f"Ignoring RETURNING {', '.join(columns)} on dialect {self.dialect.name}"
            )
        return self


class InsertStmt(_ReturningMixin, Statement):
    """INSERT decorator adding ON CONFLICT and gated RETURNING."""

    def __init__(self, runner, builder: InsertBuilder):
        super().__init__(runner, builder)
        self.returning_columns: List[str] = []
        self.conflict_target: Tuple[str, ...] = ()
        self.conflict_action: Optional[Builder] = None

    def on_conflict(
        self,
        target: Union[None, str, Sequence[str]],
        action: Builder
    ) -> 'InsertStmt':
        """Append ``ON CONFLICT [(target)] DO <action>``.

        Args:
            target: A column, a sequence of columns, or None/empty for no target
            action: The conflict action, e.g. do_update().set(...) or do_nothing()
        """
        if isinstance(target, str):
            target = (target,)
        self.conflict_target = tuple(target or ())
        self.conflict_action = action
        return self

    def build(self, dialect, buf) -> None:
        self.builder.build(dialect, buf)
        if self.conflict_action is not None:
            buf.write(' ON CONFLICT ')
            if self.conflict_target:
                buf.write('(' + ','.join(dialect.quote_ident(col) for col in self.conflict_target) + ') ')
            buf.write('DO ')
            self.conflict_action.build(dialect, buf)
        if self.returning_columns:
            buf.write(' RETURNING ' + ', '.join(dialect.quote_ident(col) for col in self.returning_columns))

    def exec(self) -> Result:
        """Execute the insert.

        With exactly one RETURNING column (Postgres family only) the returned
        value is loaded and reported as ``last_insert_id``; ``rows_affected``
        is then always 0.
        """
        if len(self.returning_columns) == 1:
            rows = self.load()
            value = rows[0][0] if rows else None
            return Result(last_insert_id=value, rows_affected=0)
        if self.conflict_action is not None:
            return self._exec_literal()
        return self.runner.exec_builder(self)

    def load(self) -> List[Any]:
        """Execute and return the RETURNING rows."""
        if not self.returning_columns:
            raise BuildError("load() on INSERT requires RETURNING columns")
        if self.conflict_action is not None:
            return self._load_literal()
        return self.runner.load_builder(self)


class UpdateStmt(_ReturningMixin, Statement):
    """UPDATE decorator with WITH prefixing and gated RETURNING."""

    def __init__(self, runner, builder: UpdateBuilder, with_clauses: Sequence[WithClause] = ()):
        super().__init__(runner, builder, with_clauses)
        self.returning_columns = builder.returning_columns

    def exec(self) -> Result:
        if self.with_clauses:
            return self._exec_literal()
        return self.runner.exec_builder(self)

    def load(self) -> List[Any]:
        """Execute and return the RETURNING rows."""
        if not self.returning_columns:
            raise BuildError("load() on UPDATE requires RETURNING columns")
        if self.with_clauses:
            return self._load_literal()
        return self.runner.load_builder(self)


class DeleteStmt(_ReturningMixin, Statement):
    """DELETE decorator with gated RETURNING."""

    def __init__(self, runner, builder: DeleteBuilder):
        super().__init__(runner, builder)
        self.returning_columns = builder.returning_columns

    def exec(self) -> Result:
        return self.runner.exec_builder(self)

    def load(self) -> List[Any]:
        if not self.returning_columns:
            raise BuildError("load() on DELETE requires RETURNING columns")
        return self.runner.load_builder(self)
