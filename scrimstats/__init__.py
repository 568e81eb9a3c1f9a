# scrimstats/__init__.py
"""
Match export import and reconciliation for scrim stats.

Turns per-player match exports into career ledgers and team records,
never counting the same match row twice.
"""

from .database import Database, StorageError
from .importer import ImportCoordinator, ImportRun, ImportState
from .stores import Stores

__all__ = [
    'Database',
    'StorageError',
    'ImportCoordinator',
    'ImportRun',
    'ImportState',
    'Stores',
]
