"""
============================
Base SQL statement builders.
============================

Chainable SELECT/INSERT/UPDATE/DELETE builders that render into a Buffer
with ``?`` placeholders. They carry no connection and never execute; the
statement decorators in txsql.sql.statements wrap them with WITH clauses,
dialect gating and execution.

Rendering conventions:
- Column, FROM and JOIN strings are SQL and render verbatim
- INSERT/UPDATE/DELETE table names and SET/INSERT columns are quoted
- Several WHERE/HAVING conditions render as ``(c1) AND (c2)``
- A builder used as a SET or VALUES value renders inline; wrap it with
  parens() when it must be a scalar sub-select

Builders:
- SelectBuilder: SELECT with joins, grouping, ordering and paging
- InsertBuilder: INSERT ... VALUES / INSERT ... SELECT
- UpdateBuilder: UPDATE ... SET ... WHERE
- DeleteBuilder: DELETE FROM ... WHERE

Usage:
    from txsql.sql.query_builder import SelectBuilder

    query = (
        SelectBuilder('id', 'name')
        .from_('customers')
        .where('status = ?', 'active')
        .order_by('created_at DESC')
        .limit(10)
    )
    # SELECT id, name FROM customers WHERE (status = ?) ORDER BY created_at DESC LIMIT 10
"""

from typing import Any, Dict, List, Optional, Sequence, Union

from txsql.errors import BuildError
from txsql.sql.fragments import (
    Aliased,
    Builder,
    as_condition,
    write_conditions,
    write_value,
)


def _write_source(dialect, buf, source: Union[str, Builder]) -> None:
    if isinstance(source, Builder):
        source.build(dialect, buf)
    else:
        buf.write(source)


def _write_returning(dialect, buf, columns: Sequence[str]) -> None:
    if columns:
        buf.write(' RETURNING ')
        buf.write(', '.join(dialect.quote_ident(col) for col in columns))


class SelectBuilder(Builder):
    """SELECT statement builder.

    Attributes:
        columns: Column expressions (SQL strings or builders)
        table: FROM source (SQL string or builder)
    """

    def __init__(self, *columns: Union[str, Builder]):
        self.columns = list(columns)
        self.is_distinct = False
        self.table: Optional[Union[str, Builder]] = None
        self.joins: List[tuple] = []
        self.conditions: List[Builder] = []
        self.groups: List[str] = []
        self.having_conditions: List[Builder] = []
        self.orders: List[str] = []
        self.limit_count: Optional[int] = None
        self.offset_count: Optional[int] = None

    def distinct(self) -> 'SelectBuilder':
        self.is_distinct = True
        return self

    def from_(self, table: Union[str, Builder]) -> 'SelectBuilder':
        self.table = table
        return self

    def join(self, table: Union[str, Builder], on: Union[str, Builder], *args: Any) -> 'SelectBuilder':
        self.joins.append(('JOIN', table, as_condition(on, args)))
        return self

    def left_join(self, table: Union[str, Builder], on: Union[str, Builder], *args: Any) -> 'SelectBuilder':
        self.joins.append(('LEFT JOIN', table, as_condition(on, args)))
        return self

    def where(self, condition: Union[str, Builder], *args: Any) -> 'SelectBuilder':
        self.conditions.append(as_condition(condition, args))
        return self

    def group_by(self, *columns: str) -> 'SelectBuilder':
        self.groups.extend(columns)
        return self

    def having(self, condition: Union[str, Builder], *args: Any) -> 'SelectBuilder':
        self.having_conditions.append(as_condition(condition, args))
        return self

    def order_by(self, *expressions: str) -> 'SelectBuilder':
        self.orders.extend(expressions)
        return self

    def limit(self, count: int) -> 'SelectBuilder':
        self.limit_count = count
        return self

    def offset(self, count: int) -> 'SelectBuilder':
        self.offset_count = count
        return self

    def as_(self, alias: str) -> Aliased:
        """Use this select as a named source: ``(SELECT ...) AS "alias"``."""
        return Aliased(self, alias)

    def build(self, dialect, buf) -> None:
        if not self.columns:
            raise BuildError("SELECT requires at least one column")

        buf.write('SELECT DISTINCT ' if self.is_distinct else 'SELECT ')
        for i, column in enumerate(self.columns):
            if i > 0:
                buf.write(', ')
            _write_source(dialect, buf, column)

        if self.table is not None:
            buf.write(' FROM ')
            _write_source(dialect, buf, self.table)

        for kind, table, on in self.joins:
            buf.write(f' {kind} ')
            _write_source(dialect, buf, table)
            buf.write(' ON ')
            on.build(dialect, buf)

        if self.conditions:
            buf.write(' WHERE ')
            write_conditions(dialect, buf, self.conditions)

        if self.groups:
            buf.write(' GROUP BY ' + ', '.join(self.groups))

        if self.having_conditions:
            buf.write(' HAVING ')
            write_conditions(dialect, buf, self.having_conditions)

        if self.orders:
            buf.write(' ORDER BY ' + ', '.join(self.orders))

        if self.limit_count is not None:
            buf.write(f' LIMIT {int(self.limit_count)}')

        if self.offset_count is not None:
            buf.write(f' OFFSET {int(self.offset_count)}')


class InsertBuilder(Builder):
    """INSERT statement builder.

    Rows come either from ``values()``/``record()`` calls or from a single
    source select set with ``from_select()``.
    """

    def __init__(self, table: str):
        self.table = table
        self.column_names: List[str] = []
        self.rows: List[Sequence[Any]] = []
        self.source: Optional[Builder] = None
        self.returning_columns: List[str] = []

    def columns(self, *columns: str) -> 'InsertBuilder':
        self.column_names.extend(columns)
        return self

    def values(self, *row: Any) -> 'InsertBuilder':
        self.rows.append(row)
        return self

    def record(self, mapping: Dict[str, Any]) -> 'InsertBuilder':
        """Append a row from a mapping, defining the columns on first use."""
        if not self.column_names:
            self.column_names = list(mapping)
        missing = [col for col in self.column_names if col not in mapping]
        if missing:
            raise BuildError(f"record is missing columns: {', '.join(missing)}")
        self.rows.append(tuple(mapping[col] for col in self.column_names))
        return self

    def from_select(self, builder: Builder) -> 'InsertBuilder':
        self.source = builder
        return self

    def returning(self, *columns: str) -> 'InsertBuilder':
        self.returning_columns.extend(columns)
        return self

    def build(self, dialect, buf) -> None:
        if not self.table:
            raise BuildError("INSERT requires a table")
        if not self.rows and self.source is None:
            raise BuildError(f"INSERT INTO {self.table} has no values")

        buf.write('INSERT INTO ' + dialect.quote_ident(self.table))
        if self.column_names:
            buf.write(' (' + ','.join(dialect.quote_ident(col) for col in self.column_names) + ')')

        if self.source is not None:
            buf.write(' ')
            self.source.build(dialect, buf)
        else:
            buf.write(' VALUES ')
            for i, row in enumerate(self.rows):
                if self.column_names and len(row) != len(self.column_names):
                    raise BuildError(
                        f"row {i} has {len(row)} values for {len(self.column_names)} columns"
                    )
                if i > 0:
                    buf.write(',')
                buf.write('(')
                for j, value in enumerate(row):
                    if j > 0:
                        buf.write(',')
                    write_value(dialect, buf, value)
                buf.write(')')

        _write_returning(dialect, buf, self.returning_columns)


class UpdateBuilder(Builder):
    """UPDATE statement builder; SET columns render in insertion order."""

    def __init__(self, table: str):
        self.table = table
        self.value: Dict[str, Any] = {}
        self.conditions: List[Builder] = []
        self.returning_columns: List[str] = []

    def set(self, column: str, value: Any) -> 'UpdateBuilder':
        self.value[column] = value
        return self

    def set_map(self, mapping: Dict[str, Any]) -> 'UpdateBuilder':
        self.value.update(mapping)
        return self

    def where(self, condition: Union[str, Builder], *args: Any) -> 'UpdateBuilder':
        self.conditions.append(as_condition(condition, args))
        return self

    def returning(self, *columns: str) -> 'UpdateBuilder':
        self.returning_columns.extend(columns)
        return self

    def build(self, dialect, buf) -> None:
        if not self.table:
            raise BuildError("UPDATE requires a table")
        if not self.value:
            raise BuildError(f"UPDATE {self.table} has no SET columns")

        buf.write('UPDATE ' + dialect.quote_ident(self.table) + ' SET ')
        for i, (column, value) in enumerate(self.value.items()):
            if i > 0:
                buf.write(', ')
            buf.write(dialect.quote_ident(column) + ' = ')
            write_value(dialect, buf, value)

        if self.conditions:
            buf.write(' WHERE ')
            write_conditions(dialect, buf, self.conditions)

        _write_returning(dialect, buf, self.returning_columns)


class DeleteBuilder(Builder):
    """DELETE statement builder."""

    def __init__(self, table: str):
        self.table = table
        self.conditions: List[Builder] = []
        self.returning_columns: List[str] = []

    def where(self, condition: Union[str, Builder], *args: Any) -> 'DeleteBuilder':
        self.conditions.append(as_condition(condition, args))
        return self

    def returning(self, *columns: str) -> 'DeleteBuilder':
        self.returning_columns.extend(columns)
        return self

    def build(self, dialect, buf) -> None:
        if not self.table:
            raise BuildError("DELETE requires a table")

        buf.write('DELETE FROM ' + dialect.quote_ident(self.table))
        if self.conditions:
            buf.write(' WHERE ')
            write_conditions(dialect, buf, self.conditions)

        _write_returning(dialect, buf, self.returning_columns)
