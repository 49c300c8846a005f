"""
Persisted sync state for flomosync.

The sync cursor is stored in a JSON file keyed by plugin identity:

    {"flomo-sync": {"syncKey": 1716403260000}}
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict

from .models import SyncState


CURSOR_KEY = "syncKey"


class StateStore:
    """
    Reads and writes the sync cursor of each plugin identity.
    """

    def __init__(self, state_file: str = "flomosync_state.json"):
        self.state_file = Path(state_file)

    def _load_all(self) -> Dict[str, Any]:
        """Load the recorded state of all identities."""
        if not self.state_file.exists():
            return {}
        try:
            with open(self.state_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logging.warning(f"Could not load state file: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def load_state(self, plugin_name: str) -> SyncState:
        """
        Load the state of one plugin identity.

        Args:
            plugin_name: Identity the cursor is stored under

        Returns:
            The stored state, empty when nothing was stored
        """
        entry = self._load_all().get(plugin_name) or {}
        cursor = entry.get(CURSOR_KEY)
        return SyncState(cursor=int(cursor) if cursor is not None else None)

    def save_state(self, plugin_name: str, state: SyncState) -> None:
        """
        Save the state of one plugin identity, keeping the others.

        Raises:
            OSError: If the state file cannot be written
        """
        data = self._load_all()
        entry = data.get(plugin_name) or {}
        entry[CURSOR_KEY] = state.cursor
        data[plugin_name] = entry

        self.state_file.parent.mkdir(parents=True, exist_ok=True)
        with open(self.state_file, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2)
        logging.info(f"Saved sync cursor {state.cursor} for {plugin_name}")
