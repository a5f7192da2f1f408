"""SQLite storage backend."""

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from pai.errors import StorageError
from pai.models import Item, ListFilter, SourceKind, SourceStats, now_timestamp
from pai.store.base import Store


logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

SCHEMA = """
CREATE TABLE IF NOT EXISTS items (
    id TEXT NOT NULL,
    source_kind TEXT NOT NULL,
    source_id TEXT NOT NULL,
    author TEXT,
    title TEXT,
    summary TEXT,
    url TEXT NOT NULL,
    content_html TEXT,
    published_at TEXT NOT NULL,
    created_at TEXT NOT NULL,
    PRIMARY KEY (source_kind, id)
);

CREATE INDEX IF NOT EXISTS idx_items_source_date
    ON items(source_kind, source_id, published_at DESC);
CREATE INDEX IF NOT EXISTS idx_items_published ON items(published_at DESC);

CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL
);
"""

ITEM_COLUMNS = (
    "id", "source_kind", "source_id", "author", "title", "summary",
    "url", "content_html", "published_at", "created_at",
)


def _contains(needle: str | None, haystack: str | None) -> bool:
    if needle is None or haystack is None:
        return False
    return needle.casefold() in haystack.casefold()


def _row_to_item(row: sqlite3.Row) -> Item:
    """Convert a database row to an Item."""
    return Item(
        id=row["id"],
        source_kind=SourceKind.parse(row["source_kind"]),
        source_id=row["source_id"],
        author=row["author"],
        title=row["title"],
        summary=row["summary"],
        url=row["url"],
        content_html=row["content_html"],
        published_at=row["published_at"],
        created_at=row["created_at"],
    )


class SQLiteStore(Store):
    """SQLite-backed store.

    One connection is shared by every caller and guarded by a lock, so the
    store can be used from FastAPI's worker threads while a sync is running.
    """

    def __init__(self, db_path: str):
        self.db_path = Path(db_path).expanduser()
        self._lock = threading.Lock()
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        except (OSError, sqlite3.Error) as e:
            raise StorageError(f"Failed to open database {self.db_path}: {e}") from e
        self._conn.row_factory = sqlite3.Row
        self._conn.create_function("pai_contains", 2, _contains, deterministic=True)
        self._init_schema()

    @contextmanager
    def _locked(self, action: str) -> Iterator[sqlite3.Connection]:
        with self._lock:
            try:
                yield self._conn
            except sqlite3.Error as e:
                raise StorageError(f"Failed to {action}: {e}") from e

    def _init_schema(self) -> None:
        """Create tables if not exist and record the schema version."""
        with self._locked("initialize schema") as conn:
            conn.executescript(SCHEMA)
            row = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
            if row[0] is None:
                conn.execute(
                    "INSERT INTO schema_version (version, applied_at) VALUES (?, ?)",
                    (SCHEMA_VERSION, now_timestamp()),
                )
                logger.debug("Initialized schema version %d at %s", SCHEMA_VERSION, self.db_path)
            conn.commit()

    def upsert_item(self, item: Item) -> None:
        with self._locked("upsert item") as conn:
            conn.execute(
                """
                INSERT INTO items (id, source_kind, source_id, author, title, summary,
                                   url, content_html, published_at, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(source_kind, id) DO UPDATE SET
                    source_id = excluded.source_id,
                    author = excluded.author,
                    title = excluded.title,
                    summary = excluded.summary,
                    url = excluded.url,
                    content_html = excluded.content_html,
                    published_at = excluded.published_at
                """,
                (
                    item.id,
                    str(item.source_kind),
                    item.source_id,
                    item.author,
                    item.title,
                    item.summary,
                    item.url,
                    item.content_html,
                    item.published_at,
                    item.created_at,
                ),
            )
            conn.commit()

    def list_items(self, filter: ListFilter) -> list[Item]:
        conditions = []
        params: list = []

        if filter.source_kind is not None:
            conditions.append("source_kind = ?")
            params.append(str(filter.source_kind))

        if filter.source_id is not None:
            conditions.append("source_id = ?")
            params.append(filter.source_id)

        if filter.since is not None:
            conditions.append("published_at >= ?")
            params.append(filter.since)

        if filter.query is not None:
            conditions.append("(pai_contains(?, title) OR pai_contains(?, summary))")
            params.extend([filter.query, filter.query])

        where = "WHERE " + " AND ".join(conditions) if conditions else ""
        limit = ""
        if filter.limit is not None:
            limit = "LIMIT ?"
            params.append(filter.limit)

        with self._locked("list items") as conn:
            cursor = conn.execute(
                f"""
                SELECT * FROM items
                {where}
                ORDER BY published_at DESC, id ASC
                {limit}
                """,
                params,
            )
            return [_row_to_item(row) for row in cursor.fetchall()]

    def get_item(self, item_id: str) -> Item | None:
        with self._locked("get item") as conn:
            cursor = conn.execute(
                "SELECT * FROM items WHERE id = ? ORDER BY source_kind LIMIT 1",
                (item_id,),
            )
            row = cursor.fetchone()
        return _row_to_item(row) if row else None

    def count_items(self) -> int:
        with self._locked("count items") as conn:
            return conn.execute("SELECT COUNT(*) FROM items").fetchone()[0]

    def get_stats(self) -> list[SourceStats]:
        with self._locked("read stats") as conn:
            cursor = conn.execute(
                """
                SELECT source_kind, COUNT(*) AS count FROM items
                GROUP BY source_kind
                ORDER BY source_kind
                """
            )
            return [
                SourceStats(kind=SourceKind.parse(row["source_kind"]), count=row["count"])
                for row in cursor.fetchall()
            ]

    def verify_schema(self) -> None:
        with self._locked("verify schema") as conn:
            columns = {row[1] for row in conn.execute("PRAGMA table_info(items)").fetchall()}
            version = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()[0]

        if not columns:
            raise StorageError("Table 'items' is missing")
        missing = [c for c in ITEM_COLUMNS if c not in columns]
        if missing:
            raise StorageError(f"Table 'items' is missing columns: {', '.join(missing)}")
        if version != SCHEMA_VERSION:
            raise StorageError(
                f"Unexpected schema version {version} (expected {SCHEMA_VERSION})"
            )

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()
