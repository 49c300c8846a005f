"""
Note reconciliation for flomosync.

This module upserts one note into one inbox. The imported block is linked
back to its note through the `ID` property of the note tag instance applied
to it, so re-importing a note updates its block instead of duplicating it.
"""

import logging
from typing import Optional

from ..database import BlockStoreClient
from ..models import (
    Block,
    BlockProperty,
    Note,
    PropertyMatch,
    PropertyType,
    QueryDescription,
    TagCondition,
    TAGS_PROPERTY,
)
from .assets import AssetImporter


ID_PROPERTY = "ID"


class NoteReconciler:
    """
    Creates or updates the block of a note.

    Reconciling the same note into the same inbox any number of times
    leaves exactly one block with the same tags, properties and children.
    """

    def __init__(self, store: BlockStoreClient, asset_importer: AssetImporter):
        self.store = store
        self.asset_importer = asset_importer

    def find_note_block(self, note: Note, note_tag: str) -> Optional[int]:
        """
        Look up the block already imported for a note.

        Args:
            note: The note
            note_tag: Tag whose instance carries the note's ID

        Returns:
            Identifier of the block, or None if the note was never imported
        """
        result_ids = self.store.query(QueryDescription(
            conditions=[TagCondition(
                name=note_tag,
                properties=[PropertyMatch(name=ID_PROPERTY, value=note.id)]
            )],
            page_size=1
        ))
        return result_ids[0] if result_ids else None

    def reconcile(self, note: Note, inbox: Block, note_tag: str) -> Optional[Block]:
        """
        Upsert a note into an inbox.

        Args:
            note: The note to import
            inbox: Inbox block new notes are appended to
            note_tag: Tag applied to imported notes

        Returns:
            The note's block, or None if the lookup index pointed to a
            block that no longer exists
        """
        existing_id = self.find_note_block(note, note_tag)

        if existing_id is not None:
            note_block = self.store.cached(existing_id)
            if note_block is None:
                note_block = self.store.get_block(existing_id)
                if note_block is None:
                    logging.warning(f"Note {note.id} is indexed as block {existing_id}, which no longer exists; skipping")
                    return None

            logging.info(f"Updating note {note.id} in block {note_block.id}")

            # Clear the tags of the existing note
            self.store.set_properties(
                [note_block.id],
                [BlockProperty(name=TAGS_PROPERTY, type=PropertyType.TAG_LIST, value=[])]
            )

            # Clear the children of the existing note
            if note_block.children:
                self.store.delete_blocks(list(note_block.children))
        else:
            note_block_id = self.store.insert_block(
                inbox,
                "lastChild",
                note.slug,
                kind="text",
                created=note.created_at,
                modified=note.updated_at
            )
            note_block = self.store.cached(note_block_id) or self.store.get_block(note_block_id)
            logging.info(f"Created block {note_block_id} for note {note.id}")

        self._apply_note_tag(note, note_block, note_tag)

        for tag in note.tags:
            self.store.insert_tag(note_block.id, tag)

        # Each asset goes to the top, so assets end up in reverse file order
        for file in note.files:
            asset_ref = self.asset_importer.import_asset(file.url)
            if not asset_ref:
                continue
            self.store.insert_block(note_block, "firstChild", None, kind=file.media_kind, src=asset_ref)

        # Body content goes above the assets
        if note.content:
            self.store.batch_insert_html(note_block, "firstChild", note.content)

        return self.store.cached(note_block.id) or self.store.get_block(note_block.id)

    def _apply_note_tag(self, note: Note, note_block: Block, note_tag: str) -> None:
        """Attach the note tag carrying the note's ID, declaring ID on the tag if needed."""
        tag_block_id = self.store.insert_tag(
            note_block.id,
            note_tag,
            [BlockProperty(name=ID_PROPERTY, type=PropertyType.IDENTIFIER, value=note.id)]
        )

        tag_block = self.store.cached(tag_block_id) or self.store.get_block(tag_block_id)
        if tag_block is not None and not tag_block.has_property(ID_PROPERTY):
            self.store.set_properties(
                [tag_block_id],
                [BlockProperty(name=ID_PROPERTY, type=PropertyType.IDENTIFIER)]
            )
