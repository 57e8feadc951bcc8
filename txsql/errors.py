"""
=======================
Exceptions for txsql.
=======================

Every error raised by the package derives from TxSQLError. Errors that wrap
a lower-level failure (a SQLAlchemy error, a failing sub-builder) keep it as
``cause`` and chain it with ``raise ... from``.

Hierarchy:
    TxSQLError
    ├── TransactionStartError      the outer transaction could not be opened
    ├── BuildError                 a fragment or statement failed to render
    ├── DriverExecError            the driver rejected rendered SQL
    │   └── CommitError            the outer commit itself failed
    └── CallbackRegistrationError  a callback cannot be registered

Example:
    >>> from txsql.errors import BuildError
    >>> try:
    ...     translate("name", "ab", "x").build(dialect, buf)
    ... except BuildError as e:
    ...     print(f"Bad fragment: {e}")
"""

from typing import Optional


class TxSQLError(Exception):
    """Base class for all txsql errors.

    Attributes:
        cause: The underlying exception, if this error wraps one
    """

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class TransactionStartError(TxSQLError):
    """Raised when the driver cannot open the outermost transaction."""
    pass


class BuildError(TxSQLError):
    """Raised when a fragment or statement fails to render.

    Indicates a programming error in statement construction; never retried.
    """
    pass


class DriverExecError(TxSQLError):
    """Raised when the driver fails to execute successfully rendered SQL.

    Attributes:
        sql: The SQL text that was sent to the driver
    """

    def __init__(
        self,
        message: str,
        cause: Optional[BaseException] = None,
        sql: Optional[str] = None
    ):
        super().__init__(message, cause)
        self.sql = sql


class CommitError(DriverExecError):
    """Raised when the outermost transaction fails to commit."""
    pass


class CallbackRegistrationError(TxSQLError):
    """Raised when a post-commit callback cannot be registered.

    The event receiver lacks callback support, or the outer transaction
    already committed or rolled back.
    """
    pass
