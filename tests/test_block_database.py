"""
Tests for the DuckDB block database.
"""

from datetime import date
from pathlib import Path

import pytest

from flomosync.database import BlockDatabase
from flomosync.models import (
    BlockProperty,
    PropertyMatch,
    PropertyType,
    QueryDescription,
    TagCondition,
    TAGS_PROPERTY,
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


def tag_query(tag, **props):
    return QueryDescription(conditions=[TagCondition(
        name=tag,
        properties=[PropertyMatch(name=k, value=v) for k, v in props.items()]
    )])


def test_requires_connection():
    with pytest.raises(RuntimeError):
        BlockDatabase().get_block(1)


def test_journal_blocks(db, journal):
    assert journal.kind == "journal"
    assert journal.journal_date == date(2024, 5, 22)
    assert db.get_journal_block(date(2024, 5, 22)).id == journal.id
    assert db.create_journal_block(date(2024, 5, 22)).id == journal.id
    assert db.get_journal_block(date(2024, 5, 23)) is None


def test_insert_positions(db, journal):
    a = db.insert_block(journal, "lastChild", "a")
    b = db.insert_block(journal, "lastChild", "b")
    c = db.insert_block(journal, "firstChild", "c")

    assert db.get_block(journal.id).children == [c, a, b]
    assert db.cached(journal.id).children == [c, a, b]
    assert db.get_block(a).parent == journal.id


def test_insert_rejects_unknown_position(db, journal):
    with pytest.raises(ValueError):
        db.insert_block(journal, "after", "x")


def test_get_blocks_keeps_requested_order(db, journal):
    a = db.insert_block(journal, "lastChild", "a")
    b = db.insert_block(journal, "lastChild", "b")

    blocks = db.get_blocks([b, 9999, a])

    assert [block.id for block in blocks] == [b, a]


def test_batch_insert_html_first_child(db, journal):
    existing = db.insert_block(journal, "lastChild", "existing")

    ids = db.batch_insert_html(journal, "firstChild", "<p>one</p><p>two</p>")

    assert db.get_block(journal.id).children == ids + [existing]
    assert [block.text for block in db.get_blocks(ids)] == ["one", "two"]


def test_delete_removes_descendants(db, journal):
    parent = db.insert_block(journal, "lastChild", "parent")
    child = db.insert_block(db.get_block(parent), "lastChild", "child")
    db.insert_tag(child, "label")

    db.delete_blocks([parent])

    assert db.get_block(parent) is None
    assert db.get_block(child) is None
    assert db.get_block(journal.id).children == []
    assert db.query(tag_query("label")) == []


def test_insert_tag_and_query_by_property(db, journal):
    note = db.insert_block(journal, "lastChild", "note")

    tag_id = db.insert_tag(note, "Flomo Note", [BlockProperty(name="ID", type=PropertyType.IDENTIFIER, value=42)])

    tag_block = db.get_block(tag_id)
    assert tag_block.kind == "tag"
    assert tag_block.alias == "Flomo Note"
    assert db.get_block(note).refs[0].get("ID").value == 42

    assert db.query(tag_query("Flomo Note", ID=42)) == [note]
    assert db.query(tag_query("Flomo Note", ID=43)) == []
    # Values match by type as well as content
    assert db.query(tag_query("Flomo Note", ID="42")) == []


def test_tag_blocks_are_shared(db, journal):
    first = db.insert_block(journal, "lastChild", "first")
    second = db.insert_block(journal, "lastChild", "second")

    assert db.insert_tag(first, "garden") == db.insert_tag(second, "garden")
    assert db.query(tag_query("garden")) == [first, second]


def test_query_page_size(db, journal):
    ids = [db.insert_block(journal, "lastChild", str(i)) for i in range(3)]
    for block_id in ids:
        db.insert_tag(block_id, "t")

    description = tag_query("t")
    description.page_size = 1
    assert db.query(description) == ids[:1]


def test_repeated_tag_is_tolerated(db, journal):
    note = db.insert_block(journal, "lastChild", "note")

    db.insert_tag(note, "todo")
    db.insert_tag(note, "todo")

    assert db.get_block(note).tag_names == ["todo"]


def test_setting_tags_property_keeps_listed_tags(db, journal):
    note = db.insert_block(journal, "lastChild", "note")
    db.insert_tag(note, "a")
    db.insert_tag(note, "b")

    db.set_properties([note], [BlockProperty(name=TAGS_PROPERTY, type=PropertyType.TAG_LIST, value=["a"])])
    assert db.get_block(note).tag_names == ["a"]

    db.set_properties([note], [BlockProperty(name=TAGS_PROPERTY, type=PropertyType.TAG_LIST, value=[])])
    assert db.get_block(note).tag_names == []
    assert db.query(tag_query("a")) == []


def test_set_properties_replaces_by_name(db, journal):
    block = db.insert_block(journal, "lastChild", "block")

    db.set_properties([block], [BlockProperty(name="ID", type=PropertyType.IDENTIFIER)])
    db.set_properties([block], [BlockProperty(name="ID", type=PropertyType.IDENTIFIER, value="x")])

    properties = db.get_block(block).properties
    assert len(properties) == 1
    assert properties[0].value == "x"


def test_set_properties_on_missing_block(db):
    with pytest.raises(ValueError):
        db.set_properties([12345], [BlockProperty(name="x", value=1)])


def test_run_grouped_commits(db, journal):
    result = db.run_grouped(lambda: db.insert_block(journal, "lastChild", "kept"))

    assert db.get_block(journal.id).children == [result]


def test_run_grouped_rolls_back(db, journal):
    def fail():
        db.insert_block(journal, "lastChild", "lost")
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        db.run_grouped(fail)

    assert db.cached(journal.id) is None
    assert db.get_block(journal.id).children == []


def test_upload_binary_is_content_addressed(db, tmp_path):
    ref = db.upload_binary("image/png", b"png-bytes")

    assert ref.startswith("./assets/")
    assert ref.endswith(".png")
    assert (tmp_path / "assets" / Path(ref).name).read_bytes() == b"png-bytes"
    assert db.upload_binary("image/png", b"png-bytes") == ref
