"""
Core module for mstodo-sync - contains domain models, configuration, and exceptions.
"""

from .models import (
    LocalTask,
    RemoteTask,
    RemoteTaskDraft,
    TaskList,
    ProjectedState,
    LedgerEntry,
    Priority,
    RemoteStatus,
    SyncConfig
)

from .exceptions import (
    MSToDoSyncError,
    ConfigurationError,
    VaultNotFoundError,
    DocumentError,
    GraphAPIError,
    AuthenticationError,
    TaskNotFoundError,
    SyncError
)

__all__ = [
    # Models
    'LocalTask',
    'RemoteTask',
    'RemoteTaskDraft',
    'TaskList',
    'ProjectedState',
    'LedgerEntry',
    'Priority',
    'RemoteStatus',
    'SyncConfig',
    # Exceptions
    'MSToDoSyncError',
    'ConfigurationError',
    'VaultNotFoundError',
    'DocumentError',
    'GraphAPIError',
    'AuthenticationError',
    'TaskNotFoundError',
    'SyncError'
]
