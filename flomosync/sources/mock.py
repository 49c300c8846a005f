"""
Mock source for testing flomosync.

This module provides a note source with hardcoded notes and assets for
exercising the sync pipeline without a Flomo installation.
"""

from datetime import datetime
from typing import Dict, List, Optional, Tuple

from ..models import Note, NoteFile
from .base import SourceAdapter, SourceError, select_notes


class MockSource(SourceAdapter):
    """
    Mock source that serves notes and assets from memory.

    Records how often it was opened and closed so callers can check that
    the session is released.
    """

    def __init__(
        self,
        notes: Optional[List[Note]] = None,
        assets: Optional[Dict[str, Tuple[str, bytes]]] = None,
        authenticated: bool = True,
        fetch_ok: bool = True,
    ):
        """
        Initialize the mock source.

        Args:
            notes: Notes to serve; defaults to a small sample set
            assets: Mapping of URL to (media type, payload); other URLs fail
            authenticated: Whether the session reports being signed in
            fetch_ok: Whether reading notes succeeds
        """
        self.notes = notes if notes is not None else self._create_sample_notes()
        self.assets = assets if assets is not None else self._create_sample_assets()
        self.authenticated = authenticated
        self.fetch_ok = fetch_ok
        self.login_url = "https://v.flomoapp.com/mine"
        self.open_count = 0
        self.close_count = 0
        self.is_open = False

    def open(self) -> None:
        self.open_count += 1
        self.is_open = True

    def close(self) -> None:
        self.close_count += 1
        self.is_open = False

    def is_authenticated(self) -> bool:
        return self.authenticated

    def fetch_notes_since(self, cursor: Optional[int]) -> Tuple[bool, List[Note]]:
        if not self.fetch_ok:
            return False, []
        return True, select_notes(self.notes, cursor)

    def fetch_binary(self, url: str) -> Tuple[str, bytes]:
        if url not in self.assets:
            raise SourceError(f"Asset not available: {url}")
        return self.assets[url]

    def _create_sample_notes(self) -> List[Note]:
        """
        Create sample notes spread over two days.

        Returns:
            Notes ascending by updated_at_long
        """
        return [
            Note(
                id=1001,
                slug="MTAwMQ",
                content="<p>Met with <strong>Jane</strong> about the garden.</p><p>Seeds arrive Friday.</p>",
                created_at=datetime(2024, 5, 22, 9, 15),
                updated_at=datetime(2024, 5, 22, 9, 15),
                updated_at_long=1716369300000,
                tags=["garden"],
                files=[]
            ),
            Note(
                id=1002,
                slug="MTAwMg",
                content="<ul><li>milk</li><li>bread</li></ul>",
                created_at=datetime(2024, 5, 22, 18, 40),
                updated_at=datetime(2024, 5, 22, 18, 41),
                updated_at_long=1716403260000,
                tags=["shopping", "todo"],
                files=[NoteFile(url="https://static.flomoapp.com/sample/receipt.png", type="image")]
            ),
            Note(
                id=1003,
                slug="MTAwMw",
                content="<p>Voice memo from the walk.</p>",
                created_at=datetime(2024, 5, 23, 7, 5),
                updated_at=datetime(2024, 5, 23, 7, 5),
                updated_at_long=1716447900000,
                tags=[],
                files=[NoteFile(url="https://static.flomoapp.com/sample/walk.m4a", type="audio")]
            ),
        ]

    def _create_sample_assets(self) -> Dict[str, Tuple[str, bytes]]:
        return {
            "https://static.flomoapp.com/sample/receipt.png": ("image/png", b"\x89PNG\r\n\x1a\nsample"),
            "https://static.flomoapp.com/sample/walk.m4a": ("audio/mp4", b"\x00\x00\x00\x18ftypM4A sample"),
        }
