"""
Table Orders — Orders API

  POST   /v1/tables/{table_id}/orders             create (Idempotency-Key optional)
  GET    /v1/tables/{table_id}/orders             list, keyset paged by from_id/limit
  GET    /v1/tables/{table_id}/orders/{order_id}  fetch one
  DELETE /v1/tables/{table_id}/orders/{order_id}  cancel (soft delete)
"""
from fastapi import APIRouter, Depends, Header, Path, Query, Request, Response, status

from table_orders.core.errors import ErrorKind, OrderServiceError
from table_orders.core.idempotency import IDEMPOTENCY_HEADER, parse_idempotency_token
from table_orders.schemas.order import INT32_MAX, INT32_MIN, OrderCreateRequest, OrderResponse
from table_orders.services.order_service import OrderService

router = APIRouter(prefix="/v1/tables/{table_id}/orders", tags=["orders"])

TableId = Path(..., ge=INT32_MIN, le=INT32_MAX)
OrderId = Path(..., ge=INT32_MIN, le=INT32_MAX)


def get_order_service(request: Request) -> OrderService:
    """The service is built once in the app lifespan and parked on app.state."""
    return request.app.state.order_service


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    payload: OrderCreateRequest,
    response: Response,
    table_id: int = TableId,
    idempotency_key: str | None = Header(None, alias=IDEMPOTENCY_HEADER),
    service: OrderService = Depends(get_order_service),
):
    """
    Register a dish for a table. A repeated Idempotency-Key for the same
    table and dish replays the first response (X-Idempotency-Replay: true).
    """
    token = parse_idempotency_token(idempotency_key)
    created = await service.create_order(table_id, payload.dish_id, token)
    if created.replayed:
        response.headers["X-Idempotency-Replay"] = "true"
    return created.order


@router.get("", response_model=list[OrderResponse])
async def list_orders(
    table_id: int = TableId,
    from_id: int | None = Query(None, ge=0, le=INT32_MAX, description="Smallest order id to include"),
    limit: int | None = Query(None, ge=0, le=INT32_MAX, description="Maximum number of orders to return"),
    service: OrderService = Depends(get_order_service),
):
    """Active orders of the table, ascending by id. Next page: from_id = last id + 1."""
    return await service.list_orders(table_id, from_id=from_id, limit=limit)


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    table_id: int = TableId,
    order_id: int = OrderId,
    service: OrderService = Depends(get_order_service),
):
    order = await service.get_order(table_id, order_id)
    if order is None:
        raise OrderServiceError(ErrorKind.NOT_FOUND, "Order not found.")
    return order


@router.delete("/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_order(
    table_id: int = TableId,
    order_id: int = OrderId,
    service: OrderService = Depends(get_order_service),
):
    """Cancel an order. Cancelling it again is still a success."""
    if not await service.delete_order(table_id, order_id):
        raise OrderServiceError(ErrorKind.NOT_FOUND, "Order not found.")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
