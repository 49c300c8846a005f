"""
Tests for inbox resolution, asset import and note reconciliation.
"""

from datetime import date, datetime
from unittest.mock import MagicMock

import pytest

from flomosync.database import BlockDatabase
from flomosync.models import Block, Note, NoteFile
from flomosync.sources import MockSource
from flomosync.sync import AssetImporter, NoteReconciler, ensure_inbox


NOTE_TAG = "Flomo Note"
INBOX = "Flomo Inbox"

IMAGE_URL = "https://static.flomoapp.com/one.png"
AUDIO_URL = "https://static.flomoapp.com/two.m4a"
MISSING_URL = "https://static.flomoapp.com/missing.png"


def make_note(note_id=1, content="<p>Hello</p>", tags=("a", "b"), files=(), updated_at_long=100):
    created = datetime(2024, 5, 22, 9, 0)
    return Note(
        id=note_id,
        slug=f"slug-{note_id}",
        content=content,
        created_at=created,
        updated_at=created,
        updated_at_long=updated_at_long,
        tags=list(tags),
        files=list(files),
    )


@pytest.fixture
def db(tmp_path):
    database = BlockDatabase(str(tmp_path / "blocks.db"), str(tmp_path / "assets"))
    database.connect()
    database.initialize_database()
    yield database
    database.disconnect()


@pytest.fixture
def journal(db):
    return db.create_journal_block(date(2024, 5, 22))


@pytest.fixture
def source():
    return MockSource(notes=[], assets={
        IMAGE_URL: ("image/png", b"one"),
        AUDIO_URL: ("audio/mp4", b"two"),
    })


@pytest.fixture
def reconciler(db, source):
    return NoteReconciler(db, AssetImporter(source, db))


@pytest.fixture
def inbox(db, journal):
    return ensure_inbox(db, journal, INBOX)


def child_blocks(db, block_id):
    return db.get_blocks(db.get_block(block_id).children)


class TestEnsureInbox:
    def test_creates_inbox_as_last_child(self, db, journal):
        other = db.insert_block(journal, "lastChild", "morning pages")

        inbox = ensure_inbox(db, db.get_block(journal.id), INBOX)

        assert inbox.text == INBOX
        assert db.get_block(journal.id).children == [other, inbox.id]

    def test_finds_existing_inbox_by_trimmed_text(self, db, journal):
        existing = db.insert_block(journal, "lastChild", f"  {INBOX}  ")

        inbox = ensure_inbox(db, db.get_block(journal.id), INBOX)

        assert inbox.id == existing
        assert db.get_block(journal.id).children == [existing]

    def test_first_match_wins(self, db, journal):
        first = db.insert_block(journal, "lastChild", INBOX)
        db.insert_block(journal, "lastChild", INBOX)

        assert ensure_inbox(db, db.get_block(journal.id), INBOX).id == first

    def test_fetches_uncached_children(self, db, journal):
        existing = db.insert_block(journal, "lastChild", INBOX)
        day_root = db.get_block(journal.id)
        db.blocks.clear()

        assert ensure_inbox(db, day_root, INBOX).id == existing

    def test_uncached_children_fetched_in_one_call(self):
        store = MagicMock()
        store.cached.side_effect = lambda block_id: {1: Block(id=1, text="other")}.get(block_id)
        store.get_blocks.return_value = [Block(id=2, text="notes"), Block(id=3, text=INBOX)]

        inbox = ensure_inbox(store, Block(id=10, children=[1, 2, 3]), INBOX)

        assert inbox.id == 3
        store.get_blocks.assert_called_once_with([2, 3])
        store.insert_block.assert_not_called()


class TestAssetImporter:
    def test_uploads_fetched_binary(self, source):
        store = MagicMock()
        store.upload_binary.return_value = "./assets/abc.png"

        assert AssetImporter(source, store).import_asset(IMAGE_URL) == "./assets/abc.png"
        store.upload_binary.assert_called_once_with("image/png", b"one")

    def test_fetch_failure_returns_none(self, source):
        store = MagicMock()

        assert AssetImporter(source, store).import_asset(MISSING_URL) is None
        store.upload_binary.assert_not_called()


class TestNoteReconciler:
    def test_creates_note_block(self, db, reconciler, inbox):
        note = make_note()

        block = reconciler.reconcile(note, inbox, NOTE_TAG)

        assert db.get_block(inbox.id).children == [block.id]
        assert block.text == "slug-1"
        assert block.created == datetime(2024, 5, 22, 9, 0)
        assert block.tag_names == [NOTE_TAG, "a", "b"]
        assert block.refs[0].get("ID").value == 1
        assert [child.text for child in child_blocks(db, block.id)] == ["Hello"]

    def test_tag_block_declares_id_property(self, db, reconciler, inbox):
        block = reconciler.reconcile(make_note(), inbox, NOTE_TAG)

        tag_block = db.get_block(block.refs[0].tag_id)
        assert tag_block.has_property("ID")
        assert tag_block.get_property("ID").value is None

    def test_reconcile_is_idempotent(self, db, reconciler, inbox):
        note = make_note(files=[NoteFile(url=IMAGE_URL, type="image")])

        first = reconciler.reconcile(note, inbox, NOTE_TAG)
        first_children = [(c.kind, c.text, c.src) for c in child_blocks(db, first.id)]
        second = reconciler.reconcile(note, inbox, NOTE_TAG)

        assert second.id == first.id
        assert db.get_block(inbox.id).children == [first.id]
        assert second.tag_names == first.tag_names
        assert [(c.kind, c.text, c.src) for c in child_blocks(db, second.id)] == first_children
        assert [kind for kind, _, _ in first_children] == ["text", "image"]
        assert reconciler.find_note_block(note, NOTE_TAG) == first.id

    def test_update_replaces_content_and_tags(self, db, reconciler, inbox):
        original = reconciler.reconcile(make_note(content="<p>old</p>", tags=["a", "b"]), inbox, NOTE_TAG)

        edited = make_note(content="<p>new</p>", tags=["a"], updated_at_long=200)
        updated = reconciler.reconcile(edited, inbox, NOTE_TAG)

        assert updated.id == original.id
        assert db.get_block(inbox.id).children == [original.id]
        assert updated.tag_names == [NOTE_TAG, "a"]
        assert updated.refs[0].get("ID").value == 1
        assert [child.text for child in child_blocks(db, updated.id)] == ["new"]

    def test_update_when_block_not_cached(self, db, reconciler, inbox):
        note = make_note()
        first = reconciler.reconcile(note, inbox, NOTE_TAG)
        db.blocks.clear()

        second = reconciler.reconcile(note, db.get_block(inbox.id), NOTE_TAG)

        assert second.id == first.id
        assert len(db.get_block(inbox.id).children) == 1

    def test_notes_are_keyed_per_tag(self, db, reconciler, inbox):
        note = make_note()

        first = reconciler.reconcile(note, inbox, NOTE_TAG)
        other = reconciler.reconcile(note, inbox, "Other Note")

        assert other.id != first.id

    def test_assets_inserted_in_reverse_below_content(self, db, reconciler, inbox):
        note = make_note(
            content="<p>body</p>",
            files=[NoteFile(url=IMAGE_URL, type="image"), NoteFile(url=AUDIO_URL, type="audio")],
        )

        block = reconciler.reconcile(note, inbox, NOTE_TAG)

        children = child_blocks(db, block.id)
        assert [child.kind for child in children] == ["text", "audio", "image"]
        assert all(child.src.startswith("./assets/") for child in children[1:])

    def test_failed_asset_is_skipped(self, db, reconciler, inbox):
        note = make_note(
            content="<p>body</p>",
            files=[NoteFile(url=IMAGE_URL, type="image"), NoteFile(url=MISSING_URL, type="image")],
        )

        block = reconciler.reconcile(note, inbox, NOTE_TAG)

        assert [child.kind for child in child_blocks(db, block.id)] == ["text", "image"]

    def test_duplicate_note_tags_tolerated(self, db, reconciler, inbox):
        block = reconciler.reconcile(make_note(tags=["x", "x"]), inbox, NOTE_TAG)

        assert block.tag_names == [NOTE_TAG, "x"]

    def test_stale_index_entry_is_skipped(self):
        store = MagicMock()
        store.query.return_value = [99]
        store.cached.return_value = None
        store.get_block.return_value = None
        reconciler = NoteReconciler(store, MagicMock())

        assert reconciler.reconcile(make_note(), Block(id=5), NOTE_TAG) is None
        store.insert_block.assert_not_called()
        store.set_properties.assert_not_called()
        store.delete_blocks.assert_not_called()
