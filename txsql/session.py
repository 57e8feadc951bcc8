"""
=====================
Root database handle.
=====================

A Handle wraps one SQLAlchemy Connection together with a dialect adapter and
an event receiver. It builds and executes statements directly (each in its
own short transaction) and opens outer transactions with ``begin()``.

Example:
    >>> from sqlalchemy import create_engine
    >>> from txsql import wrap, run_in_transaction
    >>>
    >>> engine = create_engine("postgresql+psycopg2://app@localhost/app")
    >>> with engine.connect() as connection:
    ...     handle = wrap(connection)
    ...     run_in_transaction(handle, lambda tx: tx.exec("DELETE FROM sessions"))
"""

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from txsql.dml import DML
from txsql.errors import TransactionStartError
from txsql.events import AfterCommitEventReceiver, EventReceiver
from txsql.sql.dialect import dialect_for
from txsql.transaction import OuterTransaction

logger = logging.getLogger(__name__)


class Handle(DML):
    """Root handle over one SQLAlchemy Connection.

    Args:
        connection: An open SQLAlchemy Connection
        dialect: Dialect adapter; derived from the connection when omitted
        receiver: Event receiver; an AfterCommitEventReceiver when omitted
    """

    def __init__(self, connection, dialect=None, receiver: Optional[EventReceiver] = None):
        if dialect is None:
            dialect = dialect_for(connection.dialect)
        if receiver is None:
            receiver = AfterCommitEventReceiver()
        super().__init__(connection, dialect, receiver)

    def begin(self) -> OuterTransaction:
        """Open the physical transaction.

        Raises:
            TransactionStartError: If the driver refuses to begin, including
                when the connection is already inside a transaction
        """
        self._drop_with('begin')
        try:
            sa_transaction = self.connection.begin()
        except SQLAlchemyError as e:
            self.receiver.event_err('txsql.begin', e)
            raise TransactionStartError(f"Failed to begin transaction: {e}", cause=e) from e
        self.receiver.event('txsql.begin')
        return OuterTransaction(self.connection, self.dialect, self.receiver, sa_transaction)


def wrap(connection, dialect=None, receiver: Optional[EventReceiver] = None) -> Handle:
    """Create a root Handle for ``connection``."""
    handle = Handle(connection, dialect, receiver)
    logger.debug(f"Wrapped {handle.dialect.name} connection")
    return handle
