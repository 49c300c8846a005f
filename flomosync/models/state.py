"""
Sync settings, state and result models for flomosync.
"""

from datetime import date, datetime, time
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, Field


DEFAULT_INBOX_NAME = "Flomo Inbox"
DEFAULT_NOTE_TAG = "Flomo Note"


class SyncSettings(BaseModel):
    """
    User settings read by the sync. Read-only to the sync itself.
    """

    inbox_name: str = Field(
        default=DEFAULT_INBOX_NAME,
        description="Text of the block imported notes are placed under"
    )

    note_tag: str = Field(
        default=DEFAULT_NOTE_TAG,
        description="Tag applied to imported notes"
    )

    after_date: Optional[Union[datetime, date]] = Field(
        default=None,
        description="Notes before this date are never synced, even in full sync mode"
    )

    @classmethod
    def from_config(cls, config) -> "SyncSettings":
        """Build settings from a ConfigManager; empty values fall back to defaults."""
        return cls(
            inbox_name=config.get("sync.inbox_name") or DEFAULT_INBOX_NAME,
            note_tag=config.get("sync.note_tag") or DEFAULT_NOTE_TAG,
            after_date=config.get("sync.after_date") or None,
        )

    @property
    def date_floor(self) -> Optional[int]:
        """
        The after date in whole seconds since the epoch, or None.

        Note cursors (updated_at_long) are in milliseconds and are compared
        against this value as-is, so a floor alone does not exclude older notes.
        """
        if self.after_date is None:
            return None
        value = self.after_date
        if not isinstance(value, datetime):
            value = datetime.combine(value, time.min)
        return int(value.timestamp())


class SyncState(BaseModel):
    """
    Process-wide state persisted between runs.
    """

    cursor: Optional[int] = Field(
        default=None,
        description="updated_at_long of the last synced note; None means full history"
    )


class SyncStatus(str, Enum):
    SYNCED = "synced"
    NOTHING_TO_SYNC = "nothing_to_sync"
    NOT_LOGGED_IN = "not_logged_in"
    FAILED = "failed"


class SyncResult(BaseModel):
    """
    Outcome of one sync run.
    """

    status: SyncStatus
    notes_synced: int = 0
    days_skipped: int = 0
    cursor_before: Optional[int] = None
    cursor_after: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.status != SyncStatus.FAILED
