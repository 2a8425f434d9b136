"""Test config and shared fixtures."""
import pytest
from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession
from mongomock_motor import AsyncMongoMockClient

from framework.database.manager import DatabaseManager
from framework.repository import (
    CounterStore,
    DocumentHandle,
    ModelHandle,
    RepositoryFactory,
    SQLHandle,
)
from apps.orders.models import Order
from apps.products.models import Product
from apps.users.models import User


# In-memory SQLite for tests
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture(scope="function")
async def sql_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create in-memory engine with all tables."""
    # Import all models so they are registered in metadata
    import apps.models  # noqa: F401

    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False
    )

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(sql_engine: AsyncEngine):
    return sessionmaker(sql_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def counters() -> CounterStore:
    """Counter store with database access enabled."""
    store = CounterStore()
    store.enable_db()
    return store


@pytest.fixture
def offline_counters() -> CounterStore:
    """Counter store in degraded mode."""
    return CounterStore()


@pytest.fixture
def sql_handles(session_factory) -> dict:
    """Relational-only handles per entity."""
    return {
        "users": ModelHandle(relational=SQLHandle(User, session_factory)),
        "products": ModelHandle(relational=SQLHandle(Product, session_factory)),
        "orders": ModelHandle(relational=SQLHandle(Order, session_factory)),
    }


@pytest.fixture
def mongo_db():
    client = AsyncMongoMockClient()
    return client["test_db"]


@pytest.fixture
def document_handles(mongo_db) -> dict:
    """Document-only handles per entity."""
    return {
        "users": ModelHandle(document=DocumentHandle(mongo_db["users"])),
        "products": ModelHandle(document=DocumentHandle(mongo_db["products"])),
        "orders": ModelHandle(document=DocumentHandle(mongo_db["orders"])),
    }


@pytest.fixture(autouse=True)
def reset_singletons():
    """Repositories and the manager are process singletons; isolate each test."""
    RepositoryFactory.clear_cache()
    DatabaseManager._instance = None
    yield
    RepositoryFactory.clear_cache()
    DatabaseManager._instance = None
