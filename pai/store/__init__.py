"""Store module - persistence layer for PAI."""

from pai.store.base import Store
from pai.store.sqlite import SQLiteStore
from pai.store.file import FileStore
from pai.store.factory import StoreType, create_store

__all__ = ["Store", "SQLiteStore", "FileStore", "StoreType", "create_store"]
