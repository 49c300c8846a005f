"""
Note models for flomosync.

This module defines the immutable input records produced by a note source,
mirroring the memo records Flomo keeps in its local storage.
"""

from datetime import date, datetime
from typing import List, Optional, Union

from pydantic import BaseModel, Field, field_validator


FLOMO_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def parse_flomo_time(value):
    """Accept Flomo's "YYYY-MM-DD HH:MM:SS" strings alongside ISO timestamps."""
    if isinstance(value, str):
        try:
            return datetime.strptime(value, FLOMO_TIME_FORMAT)
        except ValueError:
            return datetime.fromisoformat(value)
    return value


class NoteFile(BaseModel):
    """
    A file attached to a note.
    """

    url: str = Field(
        ...,
        description="Remote location of the file content"
    )

    type: str = Field(
        default="other",
        description="The source's file kind (e.g., 'image', 'audio')"
    )

    @property
    def media_kind(self) -> str:
        """Block kind used for the imported file; anything not an image is audio."""
        return "image" if self.type == "image" else "audio"


class Note(BaseModel):
    """
    A note fetched from the external capture service.

    The `id` is stable across syncs and is the deduplication key of the
    imported record; `updated_at_long` orders notes for cursor advancement.
    """

    id: Union[int, str] = Field(
        ...,
        description="Stable external identity of the note"
    )

    slug: str = Field(
        default="",
        description="Short title of the note"
    )

    content: str = Field(
        default="",
        description="Rich text (HTML) body of the note"
    )

    created_at: datetime = Field(
        ...,
        description="When the note was created"
    )

    updated_at: datetime = Field(
        ...,
        description="When the note was last updated"
    )

    updated_at_long: int = Field(
        ...,
        description="Sync ordering key, finer grained than wall-clock seconds"
    )

    tags: List[str] = Field(
        default_factory=list,
        description="Ordered tag labels of the note"
    )

    files: List[NoteFile] = Field(
        default_factory=list,
        description="Ordered attached files"
    )

    deleted_at: Optional[datetime] = Field(
        default=None,
        description="Soft-deletion time; deleted notes are never synced"
    )

    @field_validator("created_at", "updated_at", "deleted_at", mode="before")
    @classmethod
    def _parse_time(cls, value):
        return parse_flomo_time(value)

    @field_validator("tags", "files", mode="before")
    @classmethod
    def _none_as_empty(cls, value):
        return [] if value is None else value

    @property
    def day(self) -> date:
        """Calendar day of creation, in the note's own time zone."""
        return self.created_at.date()
