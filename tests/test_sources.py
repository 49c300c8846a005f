"""
Tests for note sources.
"""

import json

import httpx
import pytest

from flomosync.sources import FlomoSnapshotSource, MockSource, SourceError


MEMOS = [
    {
        "id": 2,
        "slug": "Mg",
        "content": "<p>second</p>",
        "created_at": "2024-05-22 11:00:00",
        "updated_at": "2024-05-22 11:00:00",
        "updated_at_long": 200,
        "tags": ["b"],
        "files": [],
        "deleted_at": None,
    },
    {
        "id": 1,
        "slug": "MQ",
        "content": "<p>first</p>",
        "created_at": "2024-05-22 10:00:00",
        "updated_at": "2024-05-22 10:00:00",
        "updated_at_long": 100,
        "tags": ["a"],
        "files": [{"url": "https://static.flomoapp.com/a.png", "type": "image"}],
        "deleted_at": None,
    },
    {
        "id": 3,
        "slug": "Mw",
        "content": "<p>gone</p>",
        "created_at": "2024-05-22 12:00:00",
        "updated_at": "2024-05-22 12:30:00",
        "updated_at_long": 300,
        "tags": [],
        "files": [],
        "deleted_at": "2024-05-22 12:30:00",
    },
]


@pytest.fixture
def snapshot(tmp_path):
    path = tmp_path / "flomo_snapshot.json"
    path.write_text(json.dumps({"user": {"name": "tester"}, "memos": MEMOS}), encoding="utf-8")
    return path


@pytest.fixture
def source(snapshot):
    flomo = FlomoSnapshotSource(str(snapshot), ready_delay=0)
    with flomo:
        yield flomo


class TestFlomoSnapshotSource:
    def test_authenticated_when_user_present(self, source):
        assert source.is_authenticated()

    def test_not_authenticated_without_user(self, tmp_path):
        path = tmp_path / "logged_out.json"
        path.write_text(json.dumps({"user": None, "memos": MEMOS}))

        with FlomoSnapshotSource(str(path), ready_delay=0) as flomo:
            assert not flomo.is_authenticated()

    def test_fetch_skips_deleted_and_sorts(self, source):
        ok, notes = source.fetch_notes_since(None)

        assert ok
        assert [note.id for note in notes] == [1, 2]
        assert notes[0].files[0].media_kind == "image"

    def test_cursor_is_exclusive(self, source):
        ok, notes = source.fetch_notes_since(100)

        assert ok
        assert [note.id for note in notes] == [2]

    def test_missing_snapshot_fails_fetch(self, tmp_path):
        with FlomoSnapshotSource(str(tmp_path / "missing.json"), ready_delay=0) as flomo:
            assert flomo.fetch_notes_since(None) == (False, [])
            assert not flomo.is_authenticated()

    def test_invalid_snapshot_fails_fetch(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{broken")

        with FlomoSnapshotSource(str(path), ready_delay=0) as flomo:
            assert flomo.fetch_notes_since(None) == (False, [])

    def test_fetch_binary(self, source):
        def handler(request):
            if request.url.path == "/a.png":
                return httpx.Response(200, headers={"content-type": "image/png; charset=binary"}, content=b"png")
            return httpx.Response(404)

        source.client.close()
        source.client = httpx.Client(transport=httpx.MockTransport(handler))

        assert source.fetch_binary("https://static.flomoapp.com/a.png") == ("image/png", b"png")
        with pytest.raises(SourceError):
            source.fetch_binary("https://static.flomoapp.com/missing.png")

    def test_fetch_binary_requires_open_session(self, snapshot):
        flomo = FlomoSnapshotSource(str(snapshot), ready_delay=0)

        with pytest.raises(SourceError):
            flomo.fetch_binary("https://static.flomoapp.com/a.png")

    def test_close_releases_client(self, snapshot):
        flomo = FlomoSnapshotSource(str(snapshot), ready_delay=0)
        with flomo:
            assert flomo.client is not None
        assert flomo.client is None


class TestMockSource:
    def test_sample_notes_are_ordered(self):
        ok, notes = MockSource().fetch_notes_since(None)

        assert ok
        longs = [note.updated_at_long for note in notes]
        assert longs == sorted(longs)

    def test_fetch_failure(self):
        assert MockSource(fetch_ok=False).fetch_notes_since(None) == (False, [])

    def test_unknown_asset_raises(self):
        with pytest.raises(SourceError):
            MockSource(assets={}).fetch_binary("https://example.com/x.png")

    def test_tracks_session(self):
        mock = MockSource()
        with mock:
            assert mock.is_open
        assert not mock.is_open
        assert (mock.open_count, mock.close_count) == (1, 1)
