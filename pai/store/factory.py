"""Store factory for creating storage backends."""

from enum import Enum

from pai.errors import ConfigError
from pai.store.base import Store


class StoreType(Enum):
    """Available storage backend types."""
    SQLITE = "sqlite"
    FILE = "file"

    @classmethod
    def parse(cls, value: str) -> "StoreType":
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ConfigError(f"Unknown deployment mode: {value}") from None


def create_store(store_type: StoreType, path: str) -> Store:
    """Create a store by type.

    Args:
        store_type: The backend to create.
        path: For SQLite, the database file path. For File, the data directory.
    """
    from pai.store.sqlite import SQLiteStore
    from pai.store.file import FileStore

    match store_type:
        case StoreType.SQLITE:
            return SQLiteStore(path)
        case StoreType.FILE:
            return FileStore(path)
        case _:
            raise ConfigError(f"Unknown store type: {store_type}")
