"""
Table Orders — FastAPI application entrypoint
"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator

from table_orders.core.config import get_settings
from table_orders.core.errors import OrderServiceError
from table_orders.core.idempotency import IdempotencyCache
from table_orders.core.logging import configure_logging
from table_orders.core.redis_client import create_redis
from table_orders.db.database import Base, SessionLocal, engine
from table_orders.db.order_store import OrderStore
from table_orders.services.order_service import OrderService
from table_orders.api import orders, health

settings = get_settings()
configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: create tables (Alembic handles migrations in production)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    redis = create_redis(settings)
    app.state.order_service = OrderService(
        store=OrderStore(SessionLocal),
        cache=IdempotencyCache(redis),
        settings=settings,
    )
    yield
    # Shutdown
    await redis.aclose()
    await engine.dispose()


app = FastAPI(
    title="Table Orders",
    description="Restaurant table orders with idempotent creation, soft delete and keyset pagination.",
    version=settings.SERVICE_VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url=None,
)

# ── CORS ──────────────────────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Prometheus Metrics ────────────────────────────────────────────────────────
if settings.METRICS_ENABLED:
    Instrumentator().instrument(app).expose(app, endpoint="/metrics")


# ── Errors ────────────────────────────────────────────────────────────────────
@app.exception_handler(OrderServiceError)
async def order_service_error_handler(request: Request, exc: OrderServiceError):
    if exc.status_code >= 500:
        logger.error("%s %s failed (%s): %s", request.method, request.url.path, exc.kind.value, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.public_detail})


# ── Routers ───────────────────────────────────────────────────────────────────
app.include_router(orders.router)
app.include_router(health.router)


@app.get("/")
async def root():
    return {"service": settings.SERVICE_NAME, "version": settings.SERVICE_VERSION}
