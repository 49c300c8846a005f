"""Note sources for flomosync."""

from .base import SourceAdapter, SourceError, select_notes
from .mock import MockSource
from .flomo import FlomoSnapshotSource

__all__ = ["SourceAdapter", "SourceError", "select_notes", "MockSource", "FlomoSnapshotSource"]
