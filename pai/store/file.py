"""JSON file-based storage backend."""

import json
import threading
from pathlib import Path

from pai.errors import StorageError
from pai.models import Item, ListFilter, SourceKind, SourceStats
from pai.store.base import Store, matches_query


class FileStore(Store):
    """JSON file-backed store. Simple, inspectable, good for testing."""

    def __init__(self, data_dir: str):
        self.data_dir = Path(data_dir).expanduser()
        self.items_file = self.data_dir / "items.json"
        self._items: dict[tuple[SourceKind, str], Item] = {}
        self._lock = threading.Lock()
        self._load()

    def _load(self) -> None:
        """Load items from the JSON file."""
        if not self.items_file.exists():
            return
        try:
            data = json.loads(self.items_file.read_text())
            items = [Item.from_dict(d) for d in data]
        except (OSError, ValueError, KeyError, TypeError) as e:
            raise StorageError(f"Failed to load {self.items_file}: {e}") from e
        self._items = {(i.source_kind, i.id): i for i in items}

    def _save(self, items: dict[tuple[SourceKind, str], Item]) -> None:
        """Persist items to the JSON file."""
        data = [i.to_dict() for i in items.values()]
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            self.items_file.write_text(json.dumps(data, indent=2))
        except OSError as e:
            raise StorageError(f"Failed to write {self.items_file}: {e}") from e

    def upsert_item(self, item: Item) -> None:
        key = (item.source_kind, item.id)
        with self._lock:
            existing = self._items.get(key)
            if existing is not None:
                item = Item.from_dict({**item.to_dict(), "created_at": existing.created_at})
            # Only replace the in-memory map once the write succeeded
            items = dict(self._items)
            items[key] = item
            self._save(items)
            self._items = items

    def list_items(self, filter: ListFilter) -> list[Item]:
        with self._lock:
            items = list(self._items.values())

        if filter.source_kind is not None:
            items = [i for i in items if i.source_kind == filter.source_kind]
        if filter.source_id is not None:
            items = [i for i in items if i.source_id == filter.source_id]
        if filter.since is not None:
            items = [i for i in items if i.published_at >= filter.since]
        if filter.query is not None:
            items = [i for i in items if matches_query(i, filter.query)]

        # Newest first, id ascending within the same timestamp
        items.sort(key=lambda i: i.id)
        items.sort(key=lambda i: i.published_at, reverse=True)

        if filter.limit is not None:
            items = items[:filter.limit]
        return items

    def get_item(self, item_id: str) -> Item | None:
        with self._lock:
            matches = [i for (kind, id), i in self._items.items() if id == item_id]
        if not matches:
            return None
        return min(matches, key=lambda i: str(i.source_kind))

    def count_items(self) -> int:
        with self._lock:
            return len(self._items)

    def get_stats(self) -> list[SourceStats]:
        counts: dict[SourceKind, int] = {}
        with self._lock:
            for kind, _ in self._items:
                counts[kind] = counts.get(kind, 0) + 1
        return [
            SourceStats(kind=kind, count=count)
            for kind, count in sorted(counts.items(), key=lambda kv: str(kv[0]))
        ]

    def verify_schema(self) -> None:
        if self.data_dir.exists() and not self.data_dir.is_dir():
            raise StorageError(f"{self.data_dir} is not a directory")
