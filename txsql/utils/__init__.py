"""
==========================
Utility Functions Package.
==========================

Engine creation and handle setup helpers.

Modules:
    database_utils: Engine/handle glue and setup scripts
"""

__all__ = [
    'DatabaseSetupError',
    'create_engine_from_config',
    'exec_scripts',
    'open_handle',
    'setup_handle'
]

from .database_utils import (
    DatabaseSetupError,
    create_engine_from_config,
    exec_scripts,
    open_handle,
    setup_handle,
)
