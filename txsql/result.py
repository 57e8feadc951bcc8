"""Outcome of an executed INSERT/UPDATE/DELETE."""

from typing import Any, Optional


class Result:
    """Last inserted id and affected row count of one statement.

    Both values are read from the driver cursor right after execution, while
    it is still open.

    Attributes:
        last_insert_id: Driver-reported last row id, or the value loaded by a
            single-column RETURNING insert
        rows_affected: Driver-reported row count; always 0 for a
            single-column RETURNING insert
    """

    def __init__(self, last_insert_id: Optional[Any] = None, rows_affected: int = 0):
        self.last_insert_id = last_insert_id
        self.rows_affected = rows_affected

    @classmethod
    def from_cursor(cls, cursor_result) -> 'Result':
        """Capture the counters of a SQLAlchemy CursorResult."""
        try:
            last_insert_id = cursor_result.lastrowid
        except AttributeError:
            last_insert_id = None
        return cls(last_insert_id=last_insert_id, rows_affected=cursor_result.rowcount)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Result):
            return NotImplemented
        return (self.last_insert_id, self.rows_affected) == (other.last_insert_id, other.rows_affected)

    def __repr__(self) -> str:
        return f"Result(last_insert_id={self.last_insert_id!r}, rows_affected={self.rows_affected!r})"
