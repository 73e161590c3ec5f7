"""
Command implementations for mstodo-sync.
"""

from .auth import AuthCommand
from .status import ListsCommand, StatusCommand
from .sync import SyncCommand

__all__ = [
    'AuthCommand',
    'ListsCommand',
    'StatusCommand',
    'SyncCommand',
]
