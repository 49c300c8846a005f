"""
Base source interface for flomosync.

This module defines the abstract interface every note source must implement.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from ..models import Note


class SourceError(Exception):
    """Raised when a source cannot deliver requested content."""


class SourceAdapter(ABC):
    """
    Abstract base class for note sources.

    A source is a session-scoped resource: it is opened once per sync run
    and closed on every exit path, so it is used as a context manager.
    """

    login_url: Optional[str] = None
    """Where the user can sign in when the source is not authenticated."""

    def open(self) -> None:
        """Acquire the source session."""

    def close(self) -> None:
        """Release the source session."""

    def __enter__(self):
        """Context manager entry."""
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()

    @abstractmethod
    def is_authenticated(self) -> bool:
        """
        Check whether the source session is signed in.

        Returns:
            True if notes can be read
        """
        pass

    @abstractmethod
    def fetch_notes_since(self, cursor: Optional[int]) -> Tuple[bool, List[Note]]:
        """
        Retrieve notes updated after the cursor.

        Args:
            cursor: Exclusive lower bound on `updated_at_long`; None for full history

        Returns:
            (ok, notes) where notes are ascending by `updated_at_long` and
            exclude soft-deleted notes; ok is False when the local storage
            could not be read
        """
        pass

    @abstractmethod
    def fetch_binary(self, url: str) -> Tuple[str, bytes]:
        """
        Download an attached file.

        Args:
            url: Location of the file

        Returns:
            (media type, payload)

        Raises:
            SourceError: If the file cannot be fetched
        """
        pass


def select_notes(notes: List[Note], cursor: Optional[int]) -> List[Note]:
    """Keep live notes newer than the cursor, ascending by `updated_at_long`."""
    selected = [
        note for note in notes
        if note.deleted_at is None and (cursor is None or note.updated_at_long > cursor)
    ]
    return sorted(selected, key=lambda note: note.updated_at_long)
