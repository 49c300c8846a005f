"""Data models for flomosync."""

from .note import Note, NoteFile
from .block import (
    Block,
    BlockProperty,
    PropertyMatch,
    PropertyType,
    QueryDescription,
    TagCondition,
    TagRef,
    TAGS_PROPERTY,
)
from .state import SyncResult, SyncSettings, SyncState, SyncStatus

__all__ = [
    "Note",
    "NoteFile",
    "Block",
    "BlockProperty",
    "PropertyMatch",
    "PropertyType",
    "QueryDescription",
    "TagCondition",
    "TagRef",
    "TAGS_PROPERTY",
    "SyncResult",
    "SyncSettings",
    "SyncState",
    "SyncStatus",
]
