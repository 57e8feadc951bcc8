"""
=========================
Composable SQL fragments.
=========================

Small builders that render themselves into a Buffer for a given dialect.
Fragments hold only what they were constructed with and may be embedded in
any statement, in each other, or used as the body of a WITH clause.

Fragments:
- Expr: raw SQL with ``?`` placeholders and arguments
- Parens: parenthesized sub-expression
- Values: multi-row VALUES list
- Greatest: largest-of-N (greatest() on Postgres, max() elsewhere)
- Translate: character substitution (translate() or chained replace())
- UpdateFragment: UPDATE ... SET ... WHERE, also used as ON CONFLICT action
- DoNothing: the NOTHING conflict action
- Aliased: a sub-select used as a named source

Usage:
    from txsql.sql.fragments import values, greatest, translate

    cte = values(1, 'v_1').values(2, 'v_2')
    # VALUES (?,?),(?,?)

    top = greatest(1, 2)
    # max(?,?) on SQLite, greatest(?,?) on PostgreSQL
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence, Union

from txsql.errors import BuildError
from txsql.sql.buffer import PLACEHOLDER, split_markers


class Builder(ABC):
    """Anything that renders itself into a SQL buffer."""

    @abstractmethod
    def build(self, dialect, buf) -> None:
        """Write SQL text and bound values for ``dialect`` into ``buf``."""


def write_value(dialect, buf, value: Any) -> None:
    """Write a builder inline, or a placeholder bound to a plain value."""
    if isinstance(value, Builder):
        value.build(dialect, buf)
    else:
        buf.write(PLACEHOLDER)
        buf.write_value(value)


def write_conditions(dialect, buf, conditions: Sequence[Builder]) -> None:
    """Write ``(c1) AND (c2) ...``."""
    for i, condition in enumerate(conditions):
        if i > 0:
            buf.write(' AND ')
        buf.write('(')
        condition.build(dialect, buf)
        buf.write(')')


def as_condition(condition: Union[str, Builder], args: Sequence[Any]) -> Builder:
    if isinstance(condition, Builder):
        if args:
            raise BuildError("arguments are only accepted with a SQL string condition")
        return condition
    return Expr(condition, *args)


class Expr(Builder):
    """Raw SQL with ``?`` placeholders.

    Builder arguments render inline inside parentheses, list and tuple
    arguments expand to ``(?,?,...)``, anything else is bound.

    Example:
        >>> Expr("t.id in ?", [1, 2, 3])       # t.id in (?,?,?)
        >>> Expr("t.id in ?", select_ids)      # t.id in (SELECT ...)
    """

    def __init__(self, sql: str, *args: Any):
        self.sql = sql
        self.args = args

    def build(self, dialect, buf) -> None:
        chunks = list(split_markers(self.sql))
        markers = sum(1 for _, is_marker in chunks if is_marker)
        if markers != len(self.args):
            raise BuildError(
                f"expression {self.sql!r} has {markers} placeholders "
                f"but {len(self.args)} arguments"
            )
        args = iter(self.args)
        for chunk, is_marker in chunks:
            if not is_marker:
                buf.write(chunk)
                continue
            arg = next(args)
            if isinstance(arg, Builder):
                buf.write('(')
                arg.build(dialect, buf)
                buf.write(')')
            elif isinstance(arg, (list, tuple)):
                buf.write('(' + ','.join(PLACEHOLDER for _ in arg) + ')')
                buf.write_value(*arg)
            else:
                buf.write(PLACEHOLDER)
                buf.write_value(arg)


class Parens(Builder):
    """Wrap a fragment in parentheses, e.g. a SELECT used as a scalar."""

    def __init__(self, inner: Builder):
        self.inner = inner

    def build(self, dialect, buf) -> None:
        buf.write('(')
        self.inner.build(dialect, buf)
        buf.write(')')


class Values(Builder):
    """Multi-row ``VALUES (..),(..)`` list.

    Rows are rendered in the order they were added. Empty rows are skipped;
    a list with no non-empty row fails to build.
    """

    def __init__(self, *row: Any):
        self.rows: List[Sequence[Any]] = []
        if row:
            self.rows.append(row)

    def values(self, *row: Any) -> 'Values':
        self.rows.append(row)
        return self

    def build(self, dialect, buf) -> None:
        rows = [row for row in self.rows if row]
        if not rows:
            raise BuildError("VALUES requires at least one non-empty row")
        buf.write('VALUES ')
        for i, row in enumerate(rows):
            if i > 0:
                buf.write(',')
            buf.write('(')
            for j, value in enumerate(row):
                if j > 0:
                    buf.write(',')
                write_value(dialect, buf, value)
            buf.write(')')


class Greatest(Builder):
    """Largest of N values: ``greatest(...)`` on Postgres, ``max(...)`` elsewhere."""

    def __init__(self, *values: Any):
        self.values = values

    def build(self, dialect, buf) -> None:
        if not self.values:
            raise BuildError("greatest requires at least one value")
        buf.write('greatest(' if dialect.is_postgres else 'max(')
        for i, value in enumerate(self.values):
            if i > 0:
                buf.write(',')
            write_value(dialect, buf, value)
        buf.write(')')


class Translate(Builder):
    """Replace each character of ``from_chars`` with the one at the same
    position in ``to_chars``.

    Postgres-family dialects get the native ``translate(text, from, to)``;
    other dialects chain one ``replace(text, f, t)`` per character pair.

    Args:
        text: A builder, or a raw SQL expression such as a column name
        from_chars: Characters to replace
        to_chars: Replacement characters, same length as ``from_chars``
    """

    def __init__(self, text: Union[str, Builder], from_chars: str, to_chars: str):
        self.text = text if isinstance(text, Builder) else Expr(text)
        self.from_chars = from_chars
        self.to_chars = to_chars

    def build(self, dialect, buf) -> None:
        if len(self.from_chars) != len(self.to_chars):
            raise BuildError(
                f"translate needs equal-length character sets, got "
                f"{len(self.from_chars)} and {len(self.to_chars)}"
            )
        if dialect.is_postgres:
            buf.write('translate(')
            self.text.build(dialect, buf)
            buf.write(',?,?)')
            buf.write_value(self.from_chars, self.to_chars)
            return
        buf.write('replace(' * len(self.from_chars))
        self.text.build(dialect, buf)
        for old, new in zip(self.from_chars, self.to_chars):
            buf.write(',?,?)')
            buf.write_value(old, new)


class UpdateFragment(Builder):
    """``UPDATE [table] SET col = val, ... [WHERE ...]``.

    Columns render sorted by name so the SQL text is reproducible. Without a
    table the fragment reads ``UPDATE SET ...``, the form used after
    ``ON CONFLICT (...) DO``.
    """

    def __init__(self, table: Optional[str] = None):
        self.table = table
        self.value: Dict[str, Any] = {}
        self.conditions: List[Builder] = []

    def set(self, column: str, value: Any) -> 'UpdateFragment':
        self.value[column] = value
        return self

    def set_map(self, mapping: Dict[str, Any]) -> 'UpdateFragment':
        self.value.update(mapping)
        return self

    def where(self, condition: Union[str, Builder], *args: Any) -> 'UpdateFragment':
        self.conditions.append(as_condition(condition, args))
        return self

    def build(self, dialect, buf) -> None:
        if not self.value:
            raise BuildError("UPDATE fragment has no SET columns")
        buf.write('UPDATE ')
        if self.table:
            buf.write(dialect.quote_ident(self.table) + ' ')
        buf.write('SET ')
        for i, column in enumerate(sorted(self.value)):
            if i > 0:
                buf.write(', ')
            buf.write(dialect.quote_ident(column) + ' = ')
            write_value(dialect, buf, self.value[column])
        if self.conditions:
            buf.write(' WHERE ')
            write_conditions(dialect, buf, self.conditions)


class DoNothing(Builder):
    """The ``NOTHING`` action of ``ON CONFLICT ... DO NOTHING``."""

    def build(self, dialect, buf) -> None:
        buf.write('NOTHING')


class Aliased(Builder):
    """``(<sub-select>) AS "alias"``, a sub-select used as a named source."""

    def __init__(self, inner: Builder, alias: str):
        self.inner = inner
        self.alias = alias

    def build(self, dialect, buf) -> None:
        buf.write('(')
        self.inner.build(dialect, buf)
        buf.write(') AS ' + dialect.quote_ident(self.alias))


def expr(sql: str, *args: Any) -> Expr:
    return Expr(sql, *args)


def parens(inner: Builder) -> Parens:
    return Parens(inner)


def values(*row: Any) -> Values:
    return Values(*row)


def greatest(*values: Any) -> Greatest:
    return Greatest(*values)


def translate(text: Union[str, Builder], from_chars: str, to_chars: str) -> Translate:
    return Translate(text, from_chars, to_chars)


def do_update(table: Optional[str] = None) -> UpdateFragment:
    return UpdateFragment(table)


def do_nothing() -> DoNothing:
    return DoNothing()
