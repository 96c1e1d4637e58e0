"""
Table Orders — Pydantic Schemas
"""
from datetime import datetime, timezone
from pydantic import BaseModel, Field

# orders columns are 32-bit signed integers
INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1


def to_epoch_seconds(value: datetime) -> int:
    # SQLite hands back naive datetimes; everything is stored as UTC
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp())


class OrderCreateRequest(BaseModel):
    dish_id: int = Field(..., ge=INT32_MIN, le=INT32_MAX, examples=[10])


class OrderResponse(BaseModel):
    """Wire form of an order; also the value stored in the idempotency cache."""
    id: int
    table_id: int
    dish_id: int
    ready_time: int  # seconds since the Unix epoch, UTC

    @classmethod
    def from_row(cls, row) -> "OrderResponse":
        return cls(
            id=row.id,
            table_id=row.table_id,
            dish_id=row.dish_id,
            ready_time=to_epoch_seconds(row.ready_time),
        )

