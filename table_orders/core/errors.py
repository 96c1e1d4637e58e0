"""
Table Orders — Error taxonomy

Every dependency failure is converted into an OrderServiceError carrying an
ErrorKind. "Not found" is part of the taxonomy for the HTTP layer, but the
service itself reports absence as a plain return value (None / False).
"""
import asyncio
from enum import Enum as PyEnum

from fastapi import status
from redis import exceptions as redis_exc
from sqlalchemy import exc as sa_exc


class ErrorKind(str, PyEnum):
    NOT_FOUND = "not_found"
    INVALID_INPUT = "invalid_input"
    STORE_UNAVAILABLE = "store_unavailable"
    CACHE_UNAVAILABLE = "cache_unavailable"
    STORE_QUERY_FAILED = "store_query_failed"
    CACHE_QUERY_FAILED = "cache_query_failed"
    INTERNAL_INCONSISTENCY = "internal_inconsistency"


STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.INVALID_INPUT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.STORE_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorKind.CACHE_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorKind.STORE_QUERY_FAILED: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorKind.CACHE_QUERY_FAILED: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorKind.INTERNAL_INCONSISTENCY: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

# Fixed client-facing text for kinds whose detail carries driver output
PUBLIC_DETAIL_BY_KIND: dict[ErrorKind, str] = {
    ErrorKind.STORE_UNAVAILABLE: "Order store unavailable.",
    ErrorKind.CACHE_UNAVAILABLE: "Idempotency cache unavailable.",
    ErrorKind.STORE_QUERY_FAILED: "Internal server error.",
    ErrorKind.CACHE_QUERY_FAILED: "Internal server error.",
    ErrorKind.INTERNAL_INCONSISTENCY: "Internal server error.",
}


class OrderServiceError(Exception):
    """A failure of the order service, tagged with its ErrorKind."""

    def __init__(self, kind: ErrorKind, detail: str = ""):
        super().__init__(detail or kind.value)
        self.kind = kind
        self.detail = detail or kind.value

    @property
    def status_code(self) -> int:
        return STATUS_BY_KIND[self.kind]

    @property
    def public_detail(self) -> str:
        return PUBLIC_DETAIL_BY_KIND.get(self.kind, self.detail)


_STORE_CONNECTIVITY_ERRORS = (
    sa_exc.OperationalError,
    sa_exc.InterfaceError,
    sa_exc.DisconnectionError,
    sa_exc.TimeoutError,
    OSError,
    asyncio.TimeoutError,
)


def from_store_error(exc: Exception) -> OrderServiceError:
    """Map a SQLAlchemy / driver failure onto the taxonomy."""
    if isinstance(exc, OrderServiceError):
        return exc
    if isinstance(exc, _STORE_CONNECTIVITY_ERRORS):
        return OrderServiceError(ErrorKind.STORE_UNAVAILABLE, f"Order store unreachable: {exc}")
    if isinstance(exc, sa_exc.DBAPIError) and exc.connection_invalidated:
        return OrderServiceError(ErrorKind.STORE_UNAVAILABLE, f"Order store connection lost: {exc}")
    return OrderServiceError(ErrorKind.STORE_QUERY_FAILED, f"Order store query failed: {exc}")


def from_cache_error(exc: Exception) -> OrderServiceError:
    """Map a redis-py failure onto the taxonomy."""
    if isinstance(exc, OrderServiceError):
        return exc
    if isinstance(exc, (redis_exc.ConnectionError, redis_exc.TimeoutError, OSError, asyncio.TimeoutError)):
        return OrderServiceError(ErrorKind.CACHE_UNAVAILABLE, f"Idempotency cache unreachable: {exc}")
    return OrderServiceError(ErrorKind.CACHE_QUERY_FAILED, f"Idempotency cache query failed: {exc}")
