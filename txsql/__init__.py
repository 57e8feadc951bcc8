"""
==================================================
txsql: transaction-scoped SQL statement composition.
==================================================

Wraps a SQLAlchemy connection in a handle that builds statements, flattens
nested transactions into the outermost one, and runs callbacks after the
outermost commit.

Modules:
    session: Root Handle and wrap()
    transaction: Outer/inner transaction handles and run_in_transaction()
    dml: Statement building and execution shared by all handles
    events: Event receivers and the commit-callback registry
    errors: Exception hierarchy
    sql: Dialect adapter, fragments, builders and statement decorators

Example:
    >>> from txsql import wrap, run_in_transaction, values, parens
    >>>
    >>> handle = wrap(connection)
    >>> def rename(tx):
    ...     tx.with_('v(id,value)', values(1, 'a').values(2, 'b')) \\
    ...         .update('t') \\
    ...         .set('value', parens(tx.select('value').from_('v').where('v.id = t.id'))) \\
    ...         .where('t.id in ?', tx.select('id').from_('v')) \\
    ...         .exec()
    >>> run_in_transaction(handle, rename)
"""

__version__ = "0.1.0"
__all__ = [
    # Handles
    'Handle', 'wrap', 'OuterTransaction', 'InnerTransaction', 'run_in_transaction',
    'Result',
    # Events
    'EventReceiver', 'NullEventReceiver', 'SupportsAfterCommit', 'AfterCommitEventReceiver',
    # Errors
    'TxSQLError', 'TransactionStartError', 'BuildError', 'DriverExecError',
    'CommitError', 'CallbackRegistrationError',
    # Fragments
    'expr', 'parens', 'values', 'greatest', 'translate', 'do_update', 'do_nothing'
]

from txsql.errors import (
    BuildError,
    CallbackRegistrationError,
    CommitError,
    DriverExecError,
    TransactionStartError,
    TxSQLError,
)
from txsql.events import (
    AfterCommitEventReceiver,
    EventReceiver,
    NullEventReceiver,
    SupportsAfterCommit,
)
from txsql.result import Result
from txsql.session import Handle, wrap
from txsql.sql.fragments import (
    do_nothing,
    do_update,
    expr,
    greatest,
    parens,
    translate,
    values,
)
from txsql.transaction import InnerTransaction, OuterTransaction, run_in_transaction
