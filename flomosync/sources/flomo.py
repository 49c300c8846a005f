"""
Flomo snapshot source for flomosync.

Reads the memos Flomo keeps in its local storage from a JSON snapshot and
downloads attached files over HTTP. The snapshot has the shape:

    {
        "user": {...} | null,
        "memos": [{"id": ..., "slug": ..., "content": "<p>...</p>",
                   "created_at": "2024-05-22 10:11:12", ...}, ...]
    }

A null user means the capture surface is not signed in.
"""

import json
import logging
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import httpx
from pydantic import ValidationError

from ..models import Note
from .base import SourceAdapter, SourceError, select_notes


class FlomoSnapshotSource(SourceAdapter):
    """
    Source reading a snapshot of Flomo's local memo storage.
    """

    def __init__(
        self,
        snapshot_path: str,
        ready_delay: float = 1.0,
        timeout: float = 30.0,
        login_url: Optional[str] = "https://v.flomoapp.com/mine",
    ):
        """
        Initialize the Flomo source.

        Args:
            snapshot_path: Path to the JSON snapshot
            ready_delay: Seconds to wait after opening before the source is read
            timeout: Timeout for asset downloads
            login_url: Page where the user signs in to Flomo
        """
        self.snapshot_path = Path(snapshot_path)
        self.ready_delay = ready_delay
        self.timeout = timeout
        self.login_url = login_url
        self.client: Optional[httpx.Client] = None
        self._snapshot: Optional[Dict[str, Any]] = None

        if not self.snapshot_path.is_file():
            logging.warning(f"Flomo snapshot not found: {snapshot_path}")

    def open(self) -> None:
        self.client = httpx.Client(timeout=self.timeout, follow_redirects=True)
        # Fixed wait for Flomo to finish syncing its own storage
        if self.ready_delay > 0:
            time.sleep(self.ready_delay)
        logging.info(f"Opened Flomo source: {self.snapshot_path}")

    def close(self) -> None:
        if self.client is not None:
            self.client.close()
            self.client = None
        self._snapshot = None

    def _load_snapshot(self) -> Dict[str, Any]:
        if self._snapshot is None:
            with open(self.snapshot_path, 'r', encoding='utf-8') as f:
                snapshot = json.load(f)
            if not isinstance(snapshot, dict):
                raise ValueError("Flomo snapshot must be a JSON object")
            self._snapshot = snapshot
        return self._snapshot

    def is_authenticated(self) -> bool:
        try:
            return self._load_snapshot().get("user") is not None
        except (OSError, ValueError) as e:
            logging.warning(f"Could not read Flomo snapshot: {e}")
            return False

    def fetch_notes_since(self, cursor: Optional[int]) -> Tuple[bool, List[Note]]:
        try:
            memos = self._load_snapshot().get("memos") or []
            notes = [Note.model_validate(memo) for memo in memos]
        except (OSError, ValueError, ValidationError) as e:
            logging.error(f"Failed to open Flomo local storage: {e}")
            return False, []

        selected = select_notes(notes, cursor)
        logging.info(f"Found {len(selected)} notes after cursor {cursor}")
        return True, selected

    def fetch_binary(self, url: str) -> Tuple[str, bytes]:
        if self.client is None:
            raise SourceError("Flomo source is not open")
        try:
            response = self.client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise SourceError(f"Failed to fetch {url}: {e}") from e

        media_type = response.headers.get("content-type", "application/octet-stream")
        return media_type.split(";")[0].strip(), response.content
