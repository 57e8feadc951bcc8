"""
==================================
Core infrastructure for txsql.
==================================

Configuration loaded from the environment and logging setup helpers.

Modules:
    config: Configuration management from environment variables
    logger: Logging configuration and utilities

Example:
    >>> from txsql.core import config, setup_logging
    >>>
    >>> setup_logging(log_level=config.log_level)
"""

__all__ = ['get_logger', 'setup_logging', 'ColoredFormatter', 'config', 'Config', 'DatabaseConfig']

from txsql.core.config import Config, DatabaseConfig, config
from txsql.core.logger import ColoredFormatter, get_logger, setup_logging
