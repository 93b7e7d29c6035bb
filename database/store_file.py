"""
FileSubscriptionStore: JSON file-backed store with persistence across restarts.

Data layout:
  {data_dir}/
    subscriptions.json      {"guild:channel": {guild_id, channel_id, last_moment, created_at}}

Features:
  - Survives process restarts (unlike InMemorySubscriptionStore)
  - No external dependencies (no database server)
  - Flushes on every mutation; a failed flush leaves memory unchanged
  - Single-process only (no concurrent write safety)

Best for: small deployments, a single bot on a single host.
"""
from __future__ import annotations

import copy
import json
import structlog
from pathlib import Path
from typing import Optional

from database.store_base import StoreWriteError
from database.store_memory import InMemorySubscriptionStore, _key
from models.schemas import Destination, Moment, Subscription

logger = structlog.get_logger()

_COLLECTION = "subscriptions"


class FileSubscriptionStore(InMemorySubscriptionStore):
    """
    Extends InMemorySubscriptionStore with JSON file persistence.

    On init: loads the collection from disk into memory.
    On every write: flushes the collection to disk.
    """

    def __init__(self, data_dir: str = "./data"):
        super().__init__()
        self._data_dir = Path(data_dir)
        self._data_dir.mkdir(parents=True, exist_ok=True)
        self._load()
        logger.info("file_store_initialized", data_dir=str(self._data_dir),
                    records=len(self._subscriptions))

    # ── Load / Save ───────────────────────────────────────

    @property
    def file_path(self) -> Path:
        return self._data_dir / f"{_COLLECTION}.json"

    def _load(self) -> None:
        path = self.file_path
        if not path.exists():
            return
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("file_store_load_error", path=str(path), error=str(e))
            return
        if not isinstance(data, dict):
            logger.warning("file_store_load_error", path=str(path), error="not a JSON object")
            return

        for key, record in data.items():
            try:
                # Validate through the model so a bad record is dropped, not served
                Subscription.from_record(record)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("file_store_record_skipped", key=key, error=str(e))
                continue
            self._subscriptions[key] = record

    def _flush(self) -> None:
        """Write the collection to disk atomically."""
        path = self.file_path
        tmp_path = path.with_suffix(".tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(self._subscriptions, f, indent=2, ensure_ascii=False, default=str)
            tmp_path.replace(path)
        except OSError as e:
            raise StoreWriteError(f"failed to write {path}: {e}", backend="file") from e

    def _flush_or_restore(self, key: str, previous: Optional[dict]) -> None:
        """Flush; on failure put `key` back to `previous` so memory matches disk."""
        try:
            self._flush()
        except StoreWriteError:
            if previous is None:
                self._subscriptions.pop(key, None)
            else:
                self._subscriptions[key] = previous
            raise

    # ── Write methods persist on every mutation ────────────

    async def insert(self, subscription: Subscription) -> None:
        await super().insert(subscription)
        self._flush_or_restore(_key(subscription.destination), None)

    async def delete_matching(self, destination: Destination) -> int:
        key = _key(destination)
        previous = self._subscriptions.get(key)
        count = await super().delete_matching(destination)
        if count:
            self._flush_or_restore(key, previous)
        return count

    async def update_last_moment(self, destination: Destination, moment: Moment) -> bool:
        key = _key(destination)
        previous = copy.deepcopy(self._subscriptions.get(key))
        updated = await super().update_last_moment(destination, moment)
        if updated:
            self._flush_or_restore(key, previous)
        return updated
