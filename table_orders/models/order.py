"""
Table Orders — Order DB model

Rows are never physically removed; cancelling an order flips `deleted`.
"""
from datetime import datetime
from sqlalchemy import Boolean, DateTime, Index, Integer, false
from sqlalchemy.orm import Mapped, mapped_column
from table_orders.db.database import Base


class Order(Base):
    """
    One dish ordered for one table.
    id is assigned by the database sequence; table_id, dish_id and
    ready_time never change after insert.
    """
    __tablename__ = "orders"
    __table_args__ = (
        # Serves: WHERE table_id = ? AND deleted = false AND id >= ? ORDER BY id
        Index("ix_orders_table_active_id", "table_id", "deleted", "id"),
        {"sqlite_autoincrement": True},
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    table_id: Mapped[int] = mapped_column(Integer, nullable=False)
    dish_id: Mapped[int] = mapped_column(Integer, nullable=False)
    ready_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    deleted: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
