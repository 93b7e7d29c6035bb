"""
SqlSubscriptionStore: Portable SQL queries for PostgreSQL, MySQL, SQLite.

Driver and constraint errors are translated into StoreFetchError /
StoreWriteError so the dispatch loop can treat them as per-tick failures.
"""
from __future__ import annotations

import structlog
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import and_, delete, select, update
from sqlalchemy.exc import SQLAlchemyError

from database.models import SubscriptionRow
from database.session import close_db, get_session, init_db
from database.store_base import BaseSubscriptionStore, StoreFetchError, StoreWriteError
from models.schemas import Destination, Moment, Subscription

logger = structlog.get_logger()


def _matches(destination: Destination):
    return and_(
        SubscriptionRow.guild_id == destination.guild_id,
        SubscriptionRow.channel_id == destination.channel_id,
    )


class SqlSubscriptionStore(BaseSubscriptionStore):
    """
    Persistent subscription store backed by any SQLAlchemy-supported database.
    Works with PostgreSQL, MySQL 8+, and SQLite.
    """

    def __init__(self, db_url: Optional[str] = None):
        self._db_url = db_url

    async def init_schema(self) -> None:
        try:
            await init_db(self._db_url)
        except SQLAlchemyError as e:
            raise StoreWriteError(f"schema creation failed: {e}", backend="sql") from e

    async def list_all(self) -> list[Subscription]:
        try:
            async with get_session(self._db_url) as db:
                stmt = select(SubscriptionRow).order_by(SubscriptionRow.created_at)
                result = await db.execute(stmt)
                return [Subscription.from_record(row.to_record()) for row in result.scalars()]
        except SQLAlchemyError as e:
            raise StoreFetchError(f"listing subscriptions failed: {e}", backend="sql") from e

    async def get(self, destination: Destination) -> Optional[Subscription]:
        try:
            async with get_session(self._db_url) as db:
                result = await db.execute(select(SubscriptionRow).where(_matches(destination)))
                row = result.scalar_one_or_none()
                return Subscription.from_record(row.to_record()) if row else None
        except SQLAlchemyError as e:
            raise StoreFetchError(f"loading {destination} failed: {e}", backend="sql") from e

    async def insert(self, subscription: Subscription) -> None:
        record = subscription.to_record()
        try:
            async with get_session(self._db_url) as db:
                db.add(SubscriptionRow(
                    guild_id=record["guild_id"],
                    channel_id=record["channel_id"],
                    last_moment=record["last_moment"],
                    created_at=subscription.created_at,
                ))
        except SQLAlchemyError as e:
            raise StoreWriteError(f"inserting {subscription.destination} failed: {e}", backend="sql") from e

    async def delete_matching(self, destination: Destination) -> int:
        try:
            async with get_session(self._db_url) as db:
                result = await db.execute(delete(SubscriptionRow).where(_matches(destination)))
                return result.rowcount or 0
        except SQLAlchemyError as e:
            raise StoreWriteError(f"deleting {destination} failed: {e}", backend="sql") from e

    async def update_last_moment(self, destination: Destination, moment: Moment) -> bool:
        try:
            async with get_session(self._db_url) as db:
                stmt = (
                    update(SubscriptionRow)
                    .where(_matches(destination))
                    .values(
                        last_moment=moment.model_dump(mode="json"),
                        updated_at=datetime.now(timezone.utc),
                    )
                )
                result = await db.execute(stmt)
                return (result.rowcount or 0) > 0
        except SQLAlchemyError as e:
            raise StoreWriteError(f"updating {destination} failed: {e}", backend="sql") from e

    async def close(self) -> None:
        await close_db()
