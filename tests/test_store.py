"""Tests for storage backends."""

import tempfile

import pytest

from pai.errors import InvalidArgumentError, StorageError
from pai.models import Item, ListFilter, SourceKind
from pai.store import FileStore, SQLiteStore, StoreType, create_store


@pytest.fixture
def sqlite_store():
    """Create a temporary SQLite store."""
    with tempfile.TemporaryDirectory() as tmpdir:
        store = SQLiteStore(f"{tmpdir}/test.db")
        yield store
        store.close()


@pytest.fixture
def file_store():
    """Create a temporary file store."""
    with tempfile.TemporaryDirectory() as tmpdir:
        store = FileStore(tmpdir)
        yield store
        store.close()


@pytest.fixture(params=["sqlite", "file"])
def store(request, sqlite_store, file_store):
    """Parameterized fixture that runs tests against both stores."""
    if request.param == "sqlite":
        return sqlite_store
    return file_store


def make_item(
    id: str,
    kind: SourceKind = SourceKind.SUBSTACK,
    source_id: str = "me.substack.com",
    published_at: str = "2024-01-01T12:00:00+00:00",
    title: str | None = "A title",
    summary: str | None = None,
    created_at: str = "2024-02-01T00:00:00+00:00",
) -> Item:
    return Item(
        id=id,
        source_kind=kind,
        source_id=source_id,
        author="me",
        title=title,
        summary=summary,
        url=f"https://example.com/{id}",
        content_html=None,
        published_at=published_at,
        created_at=created_at,
    )


class TestStore:
    """Tests that run against both store implementations."""

    def test_upsert_and_get_item(self, store):
        """Test storing and retrieving an item."""
        store.upsert_item(make_item("a", title="Hello"))

        item = store.get_item("a")
        assert item is not None
        assert item.title == "Hello"
        assert item.source_kind == SourceKind.SUBSTACK
        assert item.url == "https://example.com/a"

    def test_get_missing_item(self, store):
        assert store.get_item("nope") is None

    def test_upsert_is_idempotent(self, store):
        """Re-upserting the same key leaves one row with the latest values."""
        store.upsert_item(make_item("a", title="First"))
        store.upsert_item(make_item("a", title="Second"))

        assert store.count_items() == 1
        items = store.list_items(ListFilter())
        assert len(items) == 1
        assert items[0].title == "Second"

    def test_upsert_preserves_created_at(self, store):
        store.upsert_item(make_item("a", created_at="2024-01-01T00:00:00+00:00"))
        store.upsert_item(make_item("a", title="New", created_at="2024-06-01T00:00:00+00:00"))

        item = store.get_item("a")
        assert item.title == "New"
        assert item.created_at == "2024-01-01T00:00:00+00:00"

    def test_same_id_different_kind_is_separate(self, store):
        store.upsert_item(make_item("shared", kind=SourceKind.SUBSTACK))
        store.upsert_item(make_item("shared", kind=SourceKind.LEAFLET, source_id="leaf"))

        assert store.count_items() == 2

    def test_list_orders_newest_first(self, store):
        store.upsert_item(make_item("old", published_at="2024-01-01T00:00:00+00:00"))
        store.upsert_item(make_item("new", published_at="2024-03-01T00:00:00+00:00"))
        store.upsert_item(make_item("mid", published_at="2024-02-01T00:00:00+00:00"))

        ids = [i.id for i in store.list_items(ListFilter())]
        assert ids == ["new", "mid", "old"]

    def test_limit_applies_after_ordering(self, store):
        store.upsert_item(make_item("old", published_at="2024-01-01T00:00:00+00:00"))
        store.upsert_item(make_item("new", published_at="2024-03-01T00:00:00+00:00"))
        store.upsert_item(make_item("mid", published_at="2024-02-01T00:00:00+00:00"))

        ids = [i.id for i in store.list_items(ListFilter(limit=2))]
        assert ids == ["new", "mid"]

    def test_filter_by_kind_and_source_id(self, store):
        store.upsert_item(make_item("s1"))
        store.upsert_item(make_item("b1", kind=SourceKind.BEARBLOG, source_id="blog-a"))
        store.upsert_item(make_item("b2", kind=SourceKind.BEARBLOG, source_id="blog-b"))

        bear = store.list_items(ListFilter(source_kind=SourceKind.BEARBLOG))
        assert {i.id for i in bear} == {"b1", "b2"}

        one = store.list_items(ListFilter(source_kind=SourceKind.BEARBLOG, source_id="blog-b"))
        assert [i.id for i in one] == ["b2"]

        none = store.list_items(ListFilter(source_kind=SourceKind.SUBSTACK, source_id="blog-b"))
        assert none == []

    def test_since_is_inclusive(self, store):
        store.upsert_item(make_item("before", published_at="2024-01-31T23:59:59+00:00"))
        store.upsert_item(make_item("exact", published_at="2024-02-01T00:00:00+00:00"))
        store.upsert_item(make_item("after", published_at="2024-02-02T00:00:00+00:00"))

        items = store.list_items(ListFilter(since="2024-02-01T00:00:00+00:00"))
        assert [i.id for i in items] == ["after", "exact"]

    def test_query_matches_title_or_summary(self, store):
        store.upsert_item(make_item("t", title="Writing Rust daily", summary=None))
        store.upsert_item(make_item("s", title="Notes", summary="some rust tips"))
        store.upsert_item(make_item("x", title="Python", summary="snakes"))

        items = store.list_items(ListFilter(query="RUST"))
        assert {i.id for i in items} == {"t", "s"}

    def test_query_is_literal(self, store):
        store.upsert_item(make_item("pct", title="100% done"))
        store.upsert_item(make_item("plain", title="1000 done"))

        items = store.list_items(ListFilter(query="0%"))
        assert [i.id for i in items] == ["pct"]

    def test_filters_combine(self, store):
        store.upsert_item(make_item("a", title="rust one", published_at="2024-03-01T00:00:00+00:00"))
        store.upsert_item(make_item("b", title="rust two", published_at="2024-01-01T00:00:00+00:00"))
        store.upsert_item(make_item(
            "c", kind=SourceKind.BLUESKY, source_id="me.bsky.social",
            title="rust three", published_at="2024-03-02T00:00:00+00:00",
        ))

        items = store.list_items(ListFilter(
            source_kind=SourceKind.SUBSTACK,
            since="2024-02-01T00:00:00+00:00",
            query="rust",
            limit=10,
        ))
        assert [i.id for i in items] == ["a"]

    def test_zero_limit_rejected(self):
        with pytest.raises(InvalidArgumentError):
            ListFilter(limit=0)

    def test_stats(self, store):
        store.upsert_item(make_item("s1"))
        store.upsert_item(make_item("s2"))
        store.upsert_item(make_item("b1", kind=SourceKind.BLUESKY, source_id="me.bsky.social"))

        stats = {s.kind: s.count for s in store.get_stats()}
        assert stats == {SourceKind.SUBSTACK: 2, SourceKind.BLUESKY: 1}
        assert store.count_items() == 3

    def test_verify_schema(self, store):
        store.verify_schema()


class TestSQLiteStore:
    """SQLite-specific tests."""

    def test_persists_across_connections(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = f"{tmpdir}/nested/pai.db"
            with SQLiteStore(path) as store:
                store.upsert_item(make_item("a"))

            with SQLiteStore(path) as store:
                assert store.count_items() == 1
                store.verify_schema()

    def test_verify_schema_detects_missing_columns(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            store = SQLiteStore(f"{tmpdir}/test.db")
            store._conn.execute("DROP TABLE items")
            store._conn.execute("CREATE TABLE items (id TEXT)")
            with pytest.raises(StorageError):
                store.verify_schema()
            store.close()


class TestFileStore:
    """File store specific tests."""

    def test_persists_to_disk(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            FileStore(tmpdir).upsert_item(make_item("a", title="Saved"))

            reloaded = FileStore(tmpdir)
            assert reloaded.get_item("a").title == "Saved"

    def test_corrupt_file_raises_storage_error(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            with open(f"{tmpdir}/items.json", "w") as f:
                f.write("{not json")
            with pytest.raises(StorageError):
                FileStore(tmpdir)

    def test_failed_write_leaves_store_unchanged(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            store = FileStore(tmpdir)
            store.upsert_item(make_item("a"))
            store.items_file.unlink()
            store.items_file.mkdir()

            with pytest.raises(StorageError):
                store.upsert_item(make_item("b"))

            assert store.count_items() == 1
            assert store.get_item("b") is None


def test_create_store_by_type():
    with tempfile.TemporaryDirectory() as tmpdir:
        sqlite = create_store(StoreType.SQLITE, f"{tmpdir}/a.db")
        assert isinstance(sqlite, SQLiteStore)
        sqlite.close()

        assert isinstance(create_store(StoreType.FILE, f"{tmpdir}/data"), FileStore)
