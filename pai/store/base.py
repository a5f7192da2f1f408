"""Abstract base class for storage backends."""

from abc import ABC, abstractmethod

from pai.models import Item, ListFilter, SourceStats


class Store(ABC):
    """Persistence layer for normalized items.

    Backends must keep `(source_kind, id)` unique: `upsert_item` inserts a
    new row or overwrites the existing one, preserving its `created_at`.
    """

    @abstractmethod
    def upsert_item(self, item: Item) -> None:
        """Insert an item, or overwrite the stored item with the same key."""
        pass

    @abstractmethod
    def list_items(self, filter: ListFilter) -> list[Item]:
        """Items matching the filter, newest `published_at` first."""
        pass

    @abstractmethod
    def get_item(self, item_id: str) -> Item | None:
        """Get an item by ID."""
        pass

    @abstractmethod
    def count_items(self) -> int:
        pass

    @abstractmethod
    def get_stats(self) -> list[SourceStats]:
        """Item counts grouped by source kind."""
        pass

    @abstractmethod
    def verify_schema(self) -> None:
        """Raise StorageError if the backing store is not usable."""
        pass

    def close(self) -> None:
        """Close the store and release resources."""
        pass

    def __enter__(self) -> "Store":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def matches_query(item: Item, query: str) -> bool:
    """Case-insensitive substring match against title or summary."""
    needle = query.casefold()
    return any(
        field is not None and needle in field.casefold()
        for field in (item.title, item.summary)
    )
