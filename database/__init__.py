"""
Database layer: Multi-backend subscription persistence.

Backends:
  - SQL (PostgreSQL / MySQL / SQLite via SQLAlchemy async)
  - In-memory (dict-based, for development/testing)
  - File (JSON file on disk, for small deployments)

Quick start:
  from database import create_store
  store = create_store({"store_backend": "memory"})
  subscriptions = await store.list_all()
"""
from database.models import Base, SubscriptionRow
from database.session import get_engine, get_session, init_db, close_db
from database.store_base import (
    BaseSubscriptionStore, StoreError, StoreFetchError, StoreWriteError,
)
from database.store import SqlSubscriptionStore
from database.store_memory import InMemorySubscriptionStore
from database.store_file import FileSubscriptionStore
from database.store_factory import create_store, get_store, reset_store

__all__ = [
    # ORM models
    "Base", "SubscriptionRow",
    # Session management
    "get_engine", "get_session", "init_db", "close_db",
    # Store interface and errors
    "BaseSubscriptionStore", "StoreError", "StoreFetchError", "StoreWriteError",
    # Store backends
    "SqlSubscriptionStore", "InMemorySubscriptionStore", "FileSubscriptionStore",
    # Factory
    "create_store", "get_store", "reset_store",
]
