"""
flomosync: Imports Flomo notes into a block-based journal.

Notes are placed under a per-day inbox block, imported exactly once, and
updated in place when they change at the source.
"""

__version__ = "0.1.0"
__author__ = "flomosync Project"

# Import main components
from .database import BlockDatabase, BlockStoreClient
from .models import Block, Note, NoteFile, SyncResult, SyncSettings, SyncState, SyncStatus
from .sources import FlomoSnapshotSource, MockSource, SourceAdapter, SourceError
from .state import StateStore
from .sync import NoteReconciler, SyncOrchestrator

__all__ = [
    "BlockDatabase",
    "BlockStoreClient",
    "Block",
    "Note",
    "NoteFile",
    "SyncResult",
    "SyncSettings",
    "SyncState",
    "SyncStatus",
    "FlomoSnapshotSource",
    "MockSource",
    "SourceAdapter",
    "SourceError",
    "StateStore",
    "NoteReconciler",
    "SyncOrchestrator",
]
