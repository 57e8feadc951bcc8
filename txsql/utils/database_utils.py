"""
==================================================
Engine, handle and setup helpers.
==================================================

Glue between configuration, SQLAlchemy engines and txsql handles, used by
applications at startup and by test suites that need a prepared database.

Key Features:
    - Engine creation from txsql.core.config
    - Opening a connection together with its root Handle
    - Running setup scripts, each in its own transaction

Example:
    >>> from txsql.utils.database_utils import (
    ...     create_engine_from_config,
    ...     setup_handle
    ... )
    >>>
    >>> connection, handle = setup_handle('schema.sql', engine=create_engine_from_config())
"""

import logging
from pathlib import Path
from typing import Iterable, Optional, Tuple, Union

from sqlalchemy import create_engine
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from txsql.core.config import DatabaseConfig, config
from txsql.dml import DML
from txsql.errors import TxSQLError
from txsql.events import EventReceiver
from txsql.session import Handle, wrap
from txsql.transaction import run_in_transaction

logger = logging.getLogger(__name__)


class DatabaseSetupError(Exception):
    """Exception raised when a schema or setup script cannot be applied."""
    pass


def create_engine_from_config(
    db_config: Optional[DatabaseConfig] = None,
    echo: Optional[bool] = None
) -> Engine:
    """
    Create a SQLAlchemy engine from configuration.

    Args:
        db_config: Connection settings (defaults to config.db)
        echo: Enable SQL statement logging (defaults to config.echo_sql)

    Returns:
        SQLAlchemy Engine

    Example:
        >>> engine = create_engine_from_config()
        >>> connection, handle = open_handle(engine)
    """
    db_config = db_config or config.db
    echo = config.echo_sql if echo is None else echo
    return create_engine(
        db_config.get_url(),
        echo=echo,
        pool_pre_ping=True  # Verify connections before using
    )


def open_handle(
    engine: Engine,
    receiver: Optional[EventReceiver] = None
) -> Tuple[Connection, Handle]:
    """
    Open a connection and wrap it in a root Handle.

    The caller owns the returned connection and must close it.

    Args:
        engine: Engine to connect with
        receiver: Event receiver for the handle (defaults to an
            AfterCommitEventReceiver)

    Returns:
        Tuple of (connection, handle)
    """
    connection = engine.connect()
    return connection, wrap(connection, receiver=receiver)


def exec_scripts(dml: DML, scripts: Iterable[str]) -> None:
    """
    Execute SQL scripts in order, each inside its own transaction.

    Blank scripts are skipped. Scripts are sent to the driver verbatim,
    without placeholder processing.

    Args:
        dml: Handle or transaction handle to run the scripts on
        scripts: SQL texts; drivers such as sqlite3 accept one statement each

    Raises:
        TxSQLError: The first failure; later scripts are not run
    """
    for index, script in enumerate(scripts):
        if not script or not script.strip():
            continue
        logger.debug(f"Executing setup script #{index}")
        run_in_transaction(dml, lambda tx, sql=script: tx.exec_script(sql))


def setup_handle(
    schema_path: Union[str, Path],
    script: str = '',
    engine: Optional[Engine] = None
) -> Tuple[Connection, Handle]:
    """
    Open a handle and prepare the database with a schema file and a script.

    Args:
        schema_path: Path of the schema SQL file
        script: Optional SQL run after the schema
        engine: Engine to connect with (defaults to create_engine_from_config())

    Returns:
        Tuple of (connection, handle)

    Raises:
        DatabaseSetupError: If the schema file is missing or a script fails
    """
    schema_path = Path(schema_path)
    if not schema_path.is_file():
        raise DatabaseSetupError(f"Schema file not found: {schema_path}")
    schema = schema_path.read_text(encoding='utf-8')

    engine = engine or create_engine_from_config()
    try:
        connection, handle = open_handle(engine)
    except SQLAlchemyError as e:
        logger.error(f"Failed to connect for setup: {e}")
        raise DatabaseSetupError(f"Failed to connect: {e}") from e

    try:
        exec_scripts(handle, [schema, script])
    except TxSQLError as e:
        connection.close()
        logger.error(f"Failed to apply {schema_path.name}: {e}")
        raise DatabaseSetupError(f"Failed to apply {schema_path.name}: {e}") from e

    logger.info(f"✅ Database prepared from {schema_path.name}")
    return connection, handle
