"""
================
Union composer.
================

Combines independent statements with UNION (or UNION ALL), collapses the
result into one literal SQL string and executes it as raw SQL through the
handle. Members render without surrounding parentheses, which SQLite does
not accept around compound members.

Example:
    >>> stmt = handle.union(
    ...     handle.select('id').from_('active_users'),
    ...     handle.select('id').from_('pending_users'),
    ...     all=True,
    ... )
    >>> stmt.interpolate()
    'SELECT id FROM active_users UNION ALL SELECT id FROM pending_users'
    >>> stmt.load_scalars()
    [1, 2, 7]
"""

from typing import Any, List, Optional, Sequence

from txsql.errors import BuildError
from txsql.sql.fragments import Aliased, Builder
from txsql.sql.statements import Statement


class UnionBuilder(Builder):
    """``<member> UNION [ALL] <member> ...``."""

    def __init__(self, builders: Sequence[Builder], all: bool = False):
        self.builders = list(builders)
        self.all = all

    def build(self, dialect, buf) -> None:
        if not self.builders:
            raise BuildError("UNION requires at least one statement")
        separator = ' UNION ALL ' if self.all else ' UNION '
        for i, member in enumerate(self.builders):
            if i > 0:
                buf.write(separator)
            member.build(dialect, buf)


class UnionStmt(Statement):
    """UNION executed as literal SQL through the handle."""

    def __init__(self, runner, builders: Sequence[Builder], all: bool = False):
        super().__init__(runner, UnionBuilder(builders, all))

    def as_(self, alias: str) -> Aliased:
        return Aliased(self, alias)

    def load(self) -> List[Any]:
        return self._load_literal()

    def load_one(self) -> Optional[Any]:
        rows = self.load()
        return rows[0] if rows else None

    def load_scalars(self) -> List[Any]:
        return [row[0] for row in self.load()]
