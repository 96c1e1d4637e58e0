"""
Table Orders — Order service

Orchestrates the record store and the idempotency cache:
  create → (cache lookup) → insert → (cache write)
  get / list / delete → record store only

Concurrency note: the cache lookup, the insert and the cache write are three
independent steps. Two concurrent requests carrying the same idempotency key
can both miss, both insert and both write; the last write wins and the other
row stays reachable only through listing. Deduplication is best-effort.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

from pydantic import ValidationError

from table_orders.core.config import Settings
from table_orders.core.errors import ErrorKind, OrderServiceError
from table_orders.core.idempotency import IdempotencyCache
from table_orders.db.order_store import OrderStore
from table_orders.schemas.order import OrderResponse, to_epoch_seconds

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class OrderCreation:
    order: OrderResponse
    replayed: bool = False


class OrderService:
    """Stateless order operations over an injected store and cache."""

    def __init__(
        self,
        store: OrderStore,
        cache: IdempotencyCache,
        settings: Settings,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.cache = cache
        self.settings = settings
        self.clock = clock

    async def create_order(self, table_id: int, dish_id: int, token: str | None = None) -> OrderCreation:
        """
        Register a dish for a table.

        Without a token every call creates a new order. With a token, a
        cached response for (table_id, dish_id, token) is replayed as-is and
        the store is not touched.
        """
        if token is None:
            return OrderCreation(order=await self._insert(table_id, dish_id))

        cache_key = self.cache.make_key(table_id, dish_id, token)

        cached = await self._lookup(cache_key)
        if cached is not None:
            return OrderCreation(order=cached, replayed=True)

        order = await self._insert(table_id, dish_id)

        try:
            await self.cache.set_with_ttl(
                cache_key,
                order.model_dump_json(),
                self.settings.IDEMPOTENCY_KEY_TTL_SECONDS,
            )
        except OrderServiceError as exc:
            # Order is already durable; a retry with this key will create a duplicate
            logger.warning(
                "Idempotency cache write failed for order %d (%s): %s",
                order.id, exc.kind.value, exc.detail,
            )

        return OrderCreation(order=order)

    async def get_order(self, table_id: int, order_id: int) -> OrderResponse | None:
        row = await self.store.fetch_one(table_id, order_id)
        if row is None:
            return None
        return OrderResponse.from_row(row)

    async def list_orders(
        self,
        table_id: int,
        from_id: int | None = None,
        limit: int | None = None,
    ) -> list[OrderResponse]:
        """Active orders of a table in ascending id order (keyset page)."""
        cap = self.settings.MAX_PAGE_SIZE
        if cap is not None:
            limit = cap if limit is None else min(limit, cap)
        rows = await self.store.fetch_page(table_id, from_id=from_id, limit=limit)
        return [OrderResponse.from_row(row) for row in rows]

    async def delete_order(self, table_id: int, order_id: int) -> bool:
        """
        Soft-delete an order. Returns False when no such order exists under
        the table. Deleting an order that is already deleted returns True.
        """
        affected = await self.store.mark_deleted(table_id, order_id)
        if affected == 1:
            logger.info("Order %d on table %d cancelled", order_id, table_id)
            return True
        if affected == 0:
            return await self.store.exists_deleted(table_id, order_id)

        logger.error(
            "Delete of order %d on table %d touched %d rows", order_id, table_id, affected
        )
        raise OrderServiceError(
            ErrorKind.INTERNAL_INCONSISTENCY,
            f"Delete updated {affected} rows for order {order_id} on table {table_id}",
        )

    async def _insert(self, table_id: int, dish_id: int) -> OrderResponse:
        ready_time = self.clock() + timedelta(minutes=self.settings.ORDER_READY_MINUTES)
        order_id = await self.store.insert(table_id, dish_id, ready_time)
        logger.info("Order %d created on table %d (dish %d)", order_id, table_id, dish_id)
        return OrderResponse(
            id=order_id,
            table_id=table_id,
            dish_id=dish_id,
            ready_time=to_epoch_seconds(ready_time),
        )

    async def _lookup(self, cache_key: str) -> OrderResponse | None:
        """Cache read where any failure counts as a miss."""
        try:
            cached = await self.cache.get(cache_key)
        except OrderServiceError as exc:
            logger.warning(
                "Idempotency cache read failed (%s), treating as miss: %s",
                exc.kind.value, exc.detail,
            )
            return None
        if cached is None:
            return None
        try:
            return OrderResponse.model_validate_json(cached)
        except ValidationError:
            logger.warning("Discarding unreadable idempotency cache entry %s", cache_key)
            return None
