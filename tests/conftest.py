"""
Shared fixtures: every test gets a fresh in-memory SQLite order store and a
private fake Redis server, wired into a real OrderService.
"""
import itertools
import os

# Must be in place before table_orders.core.config caches its Settings
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("METRICS_ENABLED", "false")

import fakeredis
import fakeredis.aioredis
import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from table_orders.core.config import Settings
from table_orders.core.idempotency import IdempotencyCache
from table_orders.db.database import Base
from table_orders.db.order_store import OrderStore
from table_orders.main import app
from table_orders.services.order_service import OrderService

# Process-wide source of table ids so tests never share a table
_table_ids = itertools.count(1)


@pytest.fixture
def next_table_id():
    return lambda: next(_table_ids)


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest_asyncio.fixture
async def sessionmaker():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    await engine.dispose()


@pytest.fixture
def redis_server():
    return fakeredis.FakeServer()


@pytest_asyncio.fixture
async def redis_client(redis_server):
    client = fakeredis.aioredis.FakeRedis(server=redis_server, decode_responses=True)
    yield client
    await client.aclose()


@pytest.fixture
def store(sessionmaker) -> OrderStore:
    return OrderStore(sessionmaker)


@pytest.fixture
def cache(redis_client) -> IdempotencyCache:
    return IdempotencyCache(redis_client)


@pytest.fixture
def order_service(store, cache, settings) -> OrderService:
    return OrderService(store=store, cache=cache, settings=settings)


@pytest_asyncio.fixture
async def client(order_service):
    """HTTP client bound to the FastAPI app in-process (lifespan not run)."""
    app.state.order_service = order_service
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
