"""Synchronization engine: indexing, conflict resolution and write-back."""

from .engine import SyncEngine, SyncResult, WriteOperation
from .ledger import SyncLedger
from .resolver import Action, ConflictResolver, Resolution

__all__ = [
    "SyncEngine",
    "SyncResult",
    "WriteOperation",
    "SyncLedger",
    "Action",
    "ConflictResolver",
    "Resolution",
]
