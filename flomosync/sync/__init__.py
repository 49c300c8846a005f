"""Note synchronization for flomosync."""

from .assets import AssetImporter
from .inbox import ensure_inbox
from .reconciler import NoteReconciler
from .orchestrator import SyncOrchestrator, effective_cursor, group_by, group_by_day

__all__ = [
    "AssetImporter",
    "ensure_inbox",
    "NoteReconciler",
    "SyncOrchestrator",
    "effective_cursor",
    "group_by",
    "group_by_day",
]
