"""
Table Orders — Record store for orders

Every read and write is scoped to a (table_id, id) pair and ignores rows
whose `deleted` flag is set. Driver failures leave this module as
OrderServiceError (see core.errors.from_store_error).
"""
from datetime import datetime

from sqlalchemy import false, select, text, true, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from table_orders.core.errors import from_store_error
from table_orders.models.order import Order


class OrderStore:
    """Durable order rows behind an async session factory (the connection pool)."""

    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession]):
        self._sessionmaker = sessionmaker

    async def insert(self, table_id: int, dish_id: int, ready_time: datetime) -> int:
        """Persist a new active order and return the id the database assigned."""
        try:
            async with self._sessionmaker() as db:
                order = Order(table_id=table_id, dish_id=dish_id, ready_time=ready_time, deleted=False)
                db.add(order)
                await db.flush()
                order_id = order.id
                await db.commit()
        except (SQLAlchemyError, OSError) as exc:
            raise from_store_error(exc) from exc
        return order_id

    async def fetch_one(self, table_id: int, order_id: int) -> Order | None:
        """
        Active order with this id under this table, or None.
        None covers "never existed", "deleted" and "other table" alike.
        """
        try:
            async with self._sessionmaker() as db:
                result = await db.execute(
                    select(Order).where(
                        Order.id == order_id,
                        Order.table_id == table_id,
                        Order.deleted == false(),
                    )
                )
                return result.scalar_one_or_none()
        except (SQLAlchemyError, OSError) as exc:
            raise from_store_error(exc) from exc

    async def fetch_page(
        self,
        table_id: int,
        from_id: int | None = None,
        limit: int | None = None,
    ) -> list[Order]:
        """
        Keyset page: active orders of the table with id >= from_id, ascending.

        Callers advance with from_id = last_id + 1. New inserts get higher ids,
        so they never shift rows inside a page walk already in progress.
        """
        query = select(Order).where(Order.table_id == table_id, Order.deleted == false())
        if from_id is not None:
            query = query.where(Order.id >= from_id)
        query = query.order_by(Order.id)
        if limit is not None:
            query = query.limit(limit)

        try:
            async with self._sessionmaker() as db:
                result = await db.execute(query)
                return list(result.scalars().all())
        except (SQLAlchemyError, OSError) as exc:
            raise from_store_error(exc) from exc

    async def mark_deleted(self, table_id: int, order_id: int) -> int:
        """Flip the matching active row to deleted. Returns rows affected."""
        try:
            async with self._sessionmaker() as db:
                result = await db.execute(
                    update(Order)
                    .where(
                        Order.id == order_id,
                        Order.table_id == table_id,
                        Order.deleted == false(),
                    )
                    .values(deleted=True)
                )
                await db.commit()
        except (SQLAlchemyError, OSError) as exc:
            raise from_store_error(exc) from exc
        return result.rowcount

    async def exists_deleted(self, table_id: int, order_id: int) -> bool:
        """True when a soft-deleted row with this key is on record."""
        try:
            async with self._sessionmaker() as db:
                result = await db.execute(
                    select(Order.id).where(
                        Order.id == order_id,
                        Order.table_id == table_id,
                        Order.deleted == true(),
                    )
                )
                return result.scalar_one_or_none() is not None
        except (SQLAlchemyError, OSError) as exc:
            raise from_store_error(exc) from exc

    async def ping(self) -> None:
        async with self._sessionmaker() as db:
            await db.execute(text("SELECT 1"))
