"""
===================================
Configuration management for txsql.
===================================

Loads connection and logging settings from environment variables (.env file
in the working directory or one of its parents) and provides a Config
singleton for the engine-creating glue in txsql.utils.

The statement and transaction layers never read configuration; handles are
built from an already open SQLAlchemy connection.

Environment variables:
    TXSQL_DB_DRIVER     SQLAlchemy drivername (default: postgresql)
    TXSQL_DB_HOST       Database server host (default: localhost)
    TXSQL_DB_PORT       Database server port (default: 5432)
    TXSQL_DB_USER       Database user (default: postgres)
    TXSQL_DB_PASSWORD   Database password (default: empty)
    TXSQL_DB_NAME       Database name (default: postgres)
    TXSQL_LOG_LEVEL     Level passed to setup_logging (default: INFO)
    TXSQL_ECHO_SQL      Echo SQL through the SQLAlchemy engine (default: false)

Example:
    >>> from txsql.core.config import config
    >>>
    >>> engine = create_engine(config.db.get_url(), echo=config.echo_sql)
    >>> print(f"Host: {config.db_host}, Port: {config.db_port}")
"""

import os
from dataclasses import dataclass

from dotenv import find_dotenv, load_dotenv
from sqlalchemy.engine import URL

# Load environment variables from the nearest .env file
load_dotenv(find_dotenv(usecwd=True))

TRUTHY = {'1', 'true', 'yes', 'on'}


@dataclass
class DatabaseConfig:
    """Database connection settings.

    Attributes:
        host: Database server hostname or IP address
        port: Database server port number
        user: Database username
        password: Database password
        database: Database name
        driver: SQLAlchemy drivername, e.g. 'postgresql' or 'postgresql+psycopg2'
    """

    host: str
    port: int
    user: str
    password: str
    database: str
    driver: str = 'postgresql'

    def get_connection_string(self) -> str:
        """Get the connection string.

        Returns:
            SQLAlchemy-compatible connection string
        """
        return f"{self.driver}://{self.user}:{self.password}@{self.host}:{self.port}/{self.database}"

    def get_url(self) -> URL:
        """Get the connection settings as a SQLAlchemy URL.

        Unlike get_connection_string(), special characters in the password
        need no escaping.
        """
        return URL.create(
            drivername=self.driver,
            username=self.user,
            password=self.password or None,
            host=self.host,
            port=self.port,
            database=self.database
        )


class Config:
    """Centralized configuration manager.

    Attributes:
        db: DatabaseConfig instance with database connection settings
        log_level: Logging level name for setup_logging
        echo_sql: Whether engines created from this config echo SQL
    """

    def __init__(self):
        self.db = DatabaseConfig(
            host=os.getenv('TXSQL_DB_HOST', 'localhost'),
            port=int(os.getenv('TXSQL_DB_PORT', '5432')),
            user=os.getenv('TXSQL_DB_USER', 'postgres'),
            password=os.getenv('TXSQL_DB_PASSWORD', ''),
            database=os.getenv('TXSQL_DB_NAME', 'postgres'),
            driver=os.getenv('TXSQL_DB_DRIVER', 'postgresql')
        )
        self.log_level = os.getenv('TXSQL_LOG_LEVEL', 'INFO').upper()
        self.echo_sql = os.getenv('TXSQL_ECHO_SQL', 'false').strip().lower() in TRUTHY

    @property
    def db_host(self) -> str:
        """Get database server hostname."""
        return self.db.host

    @property
    def db_port(self) -> int:
        """Get database server port number."""
        return self.db.port

    @property
    def db_user(self) -> str:
        return self.db.user

    @property
    def db_name(self) -> str:
        return self.db.database

    def get_connection_string(self) -> str:
        return self.db.get_connection_string()


# Global configuration instance
config = Config()
