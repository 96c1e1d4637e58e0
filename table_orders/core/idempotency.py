"""
Table Orders — Idempotency cache

Best-effort deduplication of order creation using Redis:
  - key   = "{table_id}_{dish_id}_{token}"
  - value = serialized order response of the first successful creation
  - TTL   = IDEMPOTENCY_KEY_TTL_SECONDS, after which the token may create again

The cache is a hint, not a source of truth. Losing an entry only lets a
retried request create a second order row.
"""
import re

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from table_orders.core.errors import ErrorKind, OrderServiceError, from_cache_error

IDEMPOTENCY_HEADER = "Idempotency-Key"
MAX_TOKEN_LENGTH = 255

# Visible ASCII plus space and tab, the bytes a header value may carry as text
_TOKEN_PATTERN = re.compile(r"^[\x20-\x7e\t]+$")


def parse_idempotency_token(raw: str | None) -> str | None:
    """
    Validate the Idempotency-Key header value.
    Absent header → None. Blank, oversized or non-ASCII values → INVALID_INPUT.
    """
    if raw is None:
        return None
    token = raw.strip()
    if not token or len(token) > MAX_TOKEN_LENGTH or not _TOKEN_PATTERN.match(token):
        raise OrderServiceError(
            ErrorKind.INVALID_INPUT,
            f"Malformed {IDEMPOTENCY_HEADER} header.",
        )
    return token


class IdempotencyCache:
    """Thin async wrapper over a Redis client, owned by the order service."""

    def __init__(self, redis: aioredis.Redis):
        self._redis = redis

    @staticmethod
    def make_key(table_id: int, dish_id: int, token: str) -> str:
        return f"{table_id}_{dish_id}_{token}"

    async def get(self, key: str) -> str | None:
        try:
            value = await self._redis.get(key)
        except (RedisError, OSError) as exc:
            raise from_cache_error(exc) from exc
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value

    async def set_with_ttl(self, key: str, value: str, ttl: int) -> None:
        try:
            await self._redis.setex(key, ttl, value)
        except (RedisError, OSError) as exc:
            raise from_cache_error(exc) from exc

    async def ping(self) -> None:
        await self._redis.ping()
