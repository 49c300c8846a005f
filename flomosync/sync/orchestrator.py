"""
Sync orchestration for flomosync.

This module drives one sync run: it resolves the effective cursor, reads
new notes from the source, partitions them by calendar day, reconciles each
note into the inbox of its day and advances the persisted cursor.
"""

import logging
from datetime import date
from typing import Callable, Dict, Iterable, List, Optional, TypeVar

from ..database import BlockStoreClient
from ..models import Note, SyncResult, SyncSettings, SyncState, SyncStatus
from ..notify import Notifier, t
from ..sources import SourceAdapter
from ..state import StateStore
from .assets import AssetImporter
from .inbox import ensure_inbox
from .reconciler import NoteReconciler

K = TypeVar("K")
V = TypeVar("V")

LOG_TAG = "FLOMO SYNC:"


def group_by(key_fn: Callable[[V], K], values: Iterable[V]) -> Dict[K, List[V]]:
    """Group values by key, keeping source order within each group."""
    groups: Dict[K, List[V]] = {}
    for value in values:
        groups.setdefault(key_fn(value), []).append(value)
    return groups


def group_by_day(notes: Iterable[Note]) -> Dict[date, List[Note]]:
    """Group notes by creation day, with days in ascending order."""
    groups = group_by(lambda note: note.day, notes)
    return {day: groups[day] for day in sorted(groups)}


def effective_cursor(saved: Optional[int], date_floor: Optional[int], full_sync: bool) -> Optional[int]:
    """
    Combine the persisted cursor with the configured date floor.

    Args:
        saved: Persisted cursor, None if never synced
        date_floor: After-date in seconds, None if not configured
        full_sync: Whether to ignore the persisted cursor

    Returns:
        The exclusive lower bound to fetch notes from, None for full history
    """
    if full_sync:
        return date_floor
    if saved is not None and date_floor is not None:
        return max(saved, date_floor)
    return saved if saved is not None else date_floor


class SyncOrchestrator:
    """
    Runs note synchronization between a source and a block store.
    """

    def __init__(
        self,
        store: BlockStoreClient,
        source: SourceAdapter,
        state_store: StateStore,
        settings: SyncSettings,
        plugin_name: str = "flomo-sync",
        notifier: Optional[Notifier] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            store: Block store notes are imported into
            source: Source notes are read from
            state_store: Where the sync cursor is persisted
            settings: User settings
            plugin_name: Identity the cursor is stored under
            notifier: Receives user-visible messages
        """
        self.store = store
        self.source = source
        self.state_store = state_store
        self.settings = settings
        self.plugin_name = plugin_name
        self.notifier = notifier or Notifier()
        self.reconciler = NoteReconciler(store, AssetImporter(source, store))

    def sync(self, full_sync: bool = False) -> SyncResult:
        """
        Run one sync.

        The cursor is only advanced when every note was reconciled. The
        source session is released on every exit path.

        Args:
            full_sync: Re-import everything after the date floor

        Returns:
            The outcome of the run
        """
        state = self.state_store.load_state(self.plugin_name)
        cursor = effective_cursor(state.cursor, self.settings.date_floor, full_sync)
        logging.info(f"Starting {'full' if full_sync else 'incremental'} sync from cursor {cursor}")

        self.notifier.notify("info", t("Starting to sync, please wait..."))

        with self.source:
            try:
                if not self.source.is_authenticated():
                    message = t("Please log in to Flomo first.")
                    if self.source.login_url:
                        message = f"{message} {self.source.login_url}"
                    self.notifier.notify("warn", message)
                    return SyncResult(status=SyncStatus.NOT_LOGGED_IN, cursor_before=state.cursor, cursor_after=state.cursor)

                fetch_ok, notes = self.source.fetch_notes_since(cursor)
                if not fetch_ok:
                    logging.error("Failed to open the source's local storage.")
                    self.notifier.notify("error", t("Failed to sync Flomo notes."))
                    return SyncResult(status=SyncStatus.FAILED, cursor_before=state.cursor, cursor_after=state.cursor)

                if not notes:
                    self.notifier.notify("info", t("Nothing to sync."))
                    return SyncResult(status=SyncStatus.NOTHING_TO_SYNC, cursor_before=state.cursor, cursor_after=state.cursor)

                notes_by_day = group_by_day(notes)
                synced, skipped = self.store.run_grouped(lambda: self._apply(notes_by_day))

                new_state = SyncState(cursor=self._advance(state.cursor, notes))
                self.state_store.save_state(self.plugin_name, new_state)

                logging.info(f"Synced {synced} notes, skipped {skipped} days without a journal")
                self.notifier.notify("success", t("Flomo notes synced successfully."))
                return SyncResult(
                    status=SyncStatus.SYNCED,
                    notes_synced=synced,
                    days_skipped=skipped,
                    cursor_before=state.cursor,
                    cursor_after=new_state.cursor
                )

            except Exception as e:
                logging.error(f"{LOG_TAG} {e}", exc_info=True)
                self.notifier.notify("error", t("Failed to sync Flomo notes."))
                return SyncResult(status=SyncStatus.FAILED, cursor_before=state.cursor, cursor_after=state.cursor)

    def _apply(self, notes_by_day: Dict[date, List[Note]]):
        """Reconcile every note into its day's inbox; returns (notes synced, days skipped)."""
        synced = 0
        skipped = 0

        for day, notes_in_day in notes_by_day.items():
            journal = self.store.get_journal_block(day)
            if journal is None:
                logging.info(f"No journal for {day}, skipping {len(notes_in_day)} notes")
                skipped += 1
                continue

            inbox = ensure_inbox(self.store, journal, self.settings.inbox_name)

            for note in notes_in_day:
                if self.reconciler.reconcile(note, inbox, self.settings.note_tag) is not None:
                    synced += 1

        return synced, skipped

    @staticmethod
    def _advance(saved: Optional[int], notes: List[Note]) -> int:
        """New cursor: the last fetched note, never below the saved cursor."""
        cursor = notes[-1].updated_at_long
        if saved is not None and saved > cursor:
            return saved
        return cursor
