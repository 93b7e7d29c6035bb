"""
Abstract Subscription Store: Interface for all storage backends.

Implementations:
  - SqlSubscriptionStore      (PostgreSQL / MySQL / SQLite via SQLAlchemy)
  - InMemorySubscriptionStore (dict-based, single-process, no persistence)
  - FileSubscriptionStore     (JSON file on disk, single-process, durable)

Every backend is keyed by Destination: at most one record per destination.
Backend failures surface as StoreFetchError (reads) or StoreWriteError
(writes) so callers can tell them apart from programming errors.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from models.schemas import Destination, Moment, Subscription


class StoreError(Exception):
    """Base exception for all subscription store operations."""

    def __init__(self, message: str, backend: str = ""):
        self.backend = backend
        super().__init__(message)


class StoreFetchError(StoreError):
    pass


class StoreWriteError(StoreError):
    pass


class BaseSubscriptionStore(ABC):
    """Interface that all subscription store backends must implement."""

    @abstractmethod
    async def list_all(self) -> list[Subscription]:
        ...

    @abstractmethod
    async def get(self, destination: Destination) -> Optional[Subscription]:
        ...

    @abstractmethod
    async def insert(self, subscription: Subscription) -> None:
        ...

    @abstractmethod
    async def delete_matching(self, destination: Destination) -> int:
        """Remove every record for `destination`; returns how many were removed."""
        ...

    @abstractmethod
    async def update_last_moment(self, destination: Destination, moment: Moment) -> bool:
        """Set last_moment for `destination`; False when no record exists."""
        ...

    async def close(self) -> None:
        pass
