"""
======================================
Transaction nesting coordinator.
======================================

A database connection can hold at most one real transaction. Code that
wants "a transaction" should not have to know whether its caller already
opened one, so two transaction handle kinds share one interface:

    OuterTransaction
        Owns the physical SQLAlchemy transaction. ``commit()`` and
        ``rollback()`` act on the database; commit callbacks run after a
        successful commit.

    InnerTransaction
        Returned by ``begin()`` on any transaction handle. Statements run in
        the outer transaction; ``commit()``, ``rollback()`` and
        ``rollback_unless_committed()`` do nothing. Only the outer handle
        decides the fate of the work.

State machine of the outer handle:

    Active --commit() ok--------------------> Committed (callbacks run)
    Active --commit() fails-----------------> CommitError raised, no callbacks
    Active --rollback()/rollback_unless_committed()--> RolledBack
    Committed --rollback_unless_committed()--> Committed (no-op)

Each outer transaction owns its commit-callback registry. Inner handles
append to the registry of their outer transaction. Registering on a
transaction that already committed or rolled back raises
CallbackRegistrationError.

Both kinds are context managers; leaving the block calls
``rollback_unless_committed()``, so an exception inside the block rolls the
outer transaction back.

Example:
    >>> def transfer(tx):
    ...     tx.update('accounts').set('balance', expr('balance - ?', 10)).where('id = ?', 1).exec()
    ...     tx.update('accounts').set('balance', expr('balance + ?', 10)).where('id = ?', 2).exec()
    ...
    >>> run_in_transaction(handle, transfer)      # one physical transaction
    >>> with handle.begin() as tx:
    ...     run_in_transaction(tx, transfer)      # joins tx, commits nothing
    ...     tx.commit()
"""

import logging
from abc import abstractmethod
from typing import Any, Callable, Optional, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from txsql.dml import DML
from txsql.errors import CallbackRegistrationError, CommitError, DriverExecError
from txsql.events import CommitCallbacks, SupportsAfterCommit

logger = logging.getLogger(__name__)

T = TypeVar('T')


class Transaction(DML):
    """Common base of the outer and inner transaction handles.

    Attributes:
        supports_after_commit: Whether the receiver can hold commit callbacks,
            checked once when the handle is created
    """

    def __init__(self, connection, dialect, receiver):
        super().__init__(connection, dialect, receiver)
        self.supports_after_commit = isinstance(receiver, SupportsAfterCommit)

    def begin(self) -> 'InnerTransaction':
        """Join this transaction; the returned handle commits nothing."""
        self._drop_with('begin')
        return InnerTransaction(self.outer)

    @property
    @abstractmethod
    def outer(self) -> 'OuterTransaction':
        """The outer transaction that owns the physical transaction."""

    @abstractmethod
    def commit(self) -> None:
        """Commit the work of this handle."""

    @abstractmethod
    def rollback(self) -> None:
        """Roll back the work of this handle."""

    @abstractmethod
    def rollback_unless_committed(self) -> None:
        """Roll back unless committed. Never raises."""

    def run_after_commit(self, callback: Callable[[], Any]) -> None:
        """Run ``callback`` after the outer transaction commits.

        Raises:
            CallbackRegistrationError: If the receiver lacks callback support,
                or the outer transaction already committed or rolled back
        """
        if not self.supports_after_commit:
            raise CallbackRegistrationError(
                f"Event receiver {type(self.receiver).__name__} does not support after-commit callbacks"
            )
        outer = self.outer
        if outer.closed:
            raise CallbackRegistrationError("Transaction already finished; callback would never run")
        outer.callbacks.append(callback)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.rollback_unless_committed()
        return False


class OuterTransaction(Transaction):
    """Transaction handle that owns the physical transaction.

    Attributes:
        sa_transaction: The SQLAlchemy RootTransaction
        callbacks: Commit-callback registry of this transaction, shared with
            its inner handles; None when the receiver lacks the capability
        committed: Whether the commit succeeded
        closed: Whether the transaction committed or rolled back
    """

    def __init__(self, connection, dialect, receiver, sa_transaction):
        super().__init__(connection, dialect, receiver)
        self.sa_transaction = sa_transaction
        self.callbacks: Optional[CommitCallbacks] = (
            receiver.new_commit_callbacks() if self.supports_after_commit else None
        )
        self.committed = False
        self.closed = False

    @property
    def outer(self) -> 'OuterTransaction':
        return self

    def commit(self) -> None:
        """Commit, then run the registered commit callbacks in order.

        A failed commit leaves the transaction open for the rollback that
        ``rollback_unless_committed()`` performs.

        Raises:
            CommitError: If the database rejects the commit; no callback runs
        """
        try:
            self.sa_transaction.commit()
        except SQLAlchemyError as e:
            self.receiver.event_err('txsql.commit', e)
            if self.callbacks is not None:
                self.callbacks.clear()
            raise CommitError(f"Failed to commit transaction: {e}", cause=e) from e

        self.committed = True
        self.closed = True
        self.receiver.event('txsql.commit')
        if self.callbacks is not None:
            self.callbacks.run()

    def rollback(self) -> None:
        """Roll back and drop the registered commit callbacks."""
        if self.callbacks is not None:
            self.callbacks.clear()
        self.closed = True
        try:
            self.sa_transaction.rollback()
        except SQLAlchemyError as e:
            self.receiver.event_err('txsql.rollback', e)
            raise DriverExecError(f"Failed to roll back transaction: {e}", cause=e) from e
        self.receiver.event('txsql.rollback')

    def rollback_unless_committed(self) -> None:
        """Roll back unless already committed or rolled back. Never raises."""
        if self.committed or self.closed:
            return
        try:
            self.rollback()
        except DriverExecError as e:
            logger.error(f"Rollback failed and was suppressed: {e}")


class InnerTransaction(Transaction):
    """Transaction handle joined to an enclosing outer transaction."""

    def __init__(self, outer: OuterTransaction):
        super().__init__(outer.connection, outer.dialect, outer.receiver)
        self._outer = outer

    @property
    def outer(self) -> OuterTransaction:
        return self._outer

    def commit(self) -> None:
        logger.debug("Inner transaction commit deferred to the outer transaction")

    def rollback(self) -> None:
        logger.debug("Inner transaction rollback deferred to the outer transaction")

    def rollback_unless_committed(self) -> None:
        pass


def run_in_transaction(dml: DML, fn: Callable[[Transaction], T]) -> T:
    """Run ``fn`` inside a transaction begun from ``dml`` and commit it.

    On a root handle this is one physical transaction. On a transaction
    handle the work joins the enclosing transaction and the commit here is a
    no-op.

    Args:
        dml: A Handle or a transaction handle
        fn: Work to run; receives the transaction handle

    Returns:
        Whatever ``fn`` returns

    Raises:
        TransactionStartError: If the transaction cannot be started; ``fn``
            is not called
        CommitError: If the commit fails
        Exception: Anything raised by ``fn``, after rolling back
    """
    tx = dml.begin()
    try:
        result = fn(tx)
        tx.commit()
        return result
    finally:
        tx.rollback_unless_committed()
