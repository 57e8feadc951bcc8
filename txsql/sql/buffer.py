"""
==================================
SQL buffer and placeholder binding.
==================================

Builders write SQL text with ``?`` markers into a Buffer and append the
matching values in order. Before execution the marked text is either bound
(markers translated to the driver's paramstyle, values passed separately) or
interpolated (values inlined as dialect-encoded literals).

Markers inside quoted strings and quoted identifiers are left alone; no other
SQL structure is inspected.

Functions:
    render: Build a builder into a fresh buffer
    interpolate_for_dialect: Inline bound values as literals
    bind_for_dialect: Translate markers into driver placeholders

Example:
    >>> buf = Buffer()
    >>> buf.write("SELECT * FROM t WHERE id = ?")
    >>> buf.write_value(42)
    >>> interpolate_for_dialect(buf.string(), buf.values, dialect)
    'SELECT * FROM t WHERE id = 42'
"""

from typing import Any, Dict, Iterator, List, Sequence, Tuple, Union

from txsql.errors import BuildError, TxSQLError

PLACEHOLDER = '?'
QUOTES = ("'", '"', '`')


class Buffer:
    """Growing SQL text plus the ordered values bound to its markers."""

    def __init__(self):
        self._parts: List[str] = []
        self._values: List[Any] = []

    def write(self, sql: str) -> None:
        self._parts.append(sql)

    def write_value(self, *values: Any) -> None:
        self._values.extend(values)

    def string(self) -> str:
        return ''.join(self._parts)

    @property
    def values(self) -> List[Any]:
        return list(self._values)

    def __str__(self) -> str:
        return self.string()


def render(builder, dialect) -> Tuple[str, List[Any]]:
    """Build ``builder`` into a fresh buffer.

    Args:
        builder: Any object with a ``build(dialect, buf)`` method
        dialect: Dialect used for quoting and dialect-gated fragments

    Returns:
        Tuple of (SQL text with ``?`` markers, bound values)

    Raises:
        BuildError: If the builder fails for any reason
    """
    buf = Buffer()
    try:
        builder.build(dialect, buf)
    except TxSQLError:
        raise
    except Exception as e:
        raise BuildError(f"failed to build {type(builder).__name__}: {e}", cause=e) from e
    return buf.string(), buf.values


def split_markers(sql: str) -> Iterator[Tuple[str, bool]]:
    """Yield (chunk, is_marker) pairs, skipping markers inside quotes."""
    quote = None
    start = 0
    for i, char in enumerate(sql):
        if quote:
            if char == quote:
                quote = None
        elif char in QUOTES:
            quote = char
        elif char == PLACEHOLDER:
            yield sql[start:i], False
            yield char, True
            start = i + 1
    yield sql[start:], False


def interpolate_for_dialect(sql: str, values: Sequence[Any], dialect) -> str:
    """Inline ``values`` into ``sql`` as literals encoded for ``dialect``.

    Raises:
        BuildError: If markers and values do not pair up, or a value has no
            literal encoding
    """
    out = []
    remaining = iter(values)
    used = 0
    for chunk, is_marker in split_markers(sql):
        if not is_marker:
            out.append(chunk)
            continue
        try:
            value = next(remaining)
        except StopIteration:
            raise BuildError(
                f"placeholder count exceeds {len(values)} bound values"
            ) from None
        used += 1
        out.append(dialect.encode(value))
    if used != len(values):
        raise BuildError(f"{len(values)} bound values for {used} placeholders")
    return ''.join(out)


def bind_for_dialect(
    sql: str,
    values: Sequence[Any],
    dialect
) -> Tuple[str, Union[Tuple[Any, ...], Dict[str, Any]]]:
    """Translate ``?`` markers into driver placeholders.

    Returns:
        Tuple of (driver SQL, parameters) suitable for
        ``Connection.exec_driver_sql``; parameters are a dict for named
        paramstyles and a tuple otherwise.

    Raises:
        BuildError: If markers and values do not pair up
    """
    style = dialect.paramstyle
    double_percents = style in ('format', 'pyformat')
    out = []
    index = 0
    for chunk, is_marker in split_markers(sql):
        if is_marker:
            index += 1
            out.append(dialect.placeholder(index))
        elif double_percents:
            out.append(chunk.replace('%', '%%'))
        else:
            out.append(chunk)
    if index != len(values):
        raise BuildError(f"{len(values)} bound values for {index} placeholders")
    if style in ('named', 'named_dollar'):
        return ''.join(out), {f'p{i}': value for i, value in enumerate(values, 1)}
    return ''.join(out), tuple(values)
