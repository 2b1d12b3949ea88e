"""
Pytest configuration and fixtures for Storefront tests.

Every test gets its own file-backed SQLite database so the real SQL
(joins, aggregates, uniqueness, rollback) runs.
"""
import os
import pytest
from decimal import Decimal
from typing import AsyncGenerator

# Set test environment before importing app modules
os.environ["ENVIRONMENT"] = "development"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./storefront-test.db"
os.environ["SECRET_KEY"] = "test-key-for-unit-tests-only"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["DB_CREATE_ALL"] = "false"

from httpx import ASGITransport, AsyncClient  # noqa: E402

from storefront.core.database import Database  # noqa: E402
from storefront.core.monitoring import metrics  # noqa: E402
from storefront.core.security import create_access_token, hash_password  # noqa: E402
from storefront.main import create_app  # noqa: E402
from storefront.models import Product, User  # noqa: E402


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def reset_metrics():
    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture
async def database(tmp_path, anyio_backend) -> AsyncGenerator[Database, None]:
    """Fresh schema in a throwaway SQLite file."""
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'store.db'}", transaction_timeout=5.0)
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
def app(database):
    return create_app(database=database)


@pytest.fixture
async def client(app, anyio_backend) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def make_user(database):
    async def _make_user(email: str = "buyer@example.com", is_active: bool = True) -> User:
        async with database.transaction() as session:
            user = User(
                email=email,
                name="Test Buyer",
                hashed_password=hash_password("correct-horse"),
                is_active=is_active,
            )
            session.add(user)
            await session.flush()
        return user

    return _make_user


@pytest.fixture
def make_product(database):
    async def _make_product(
        name: str = "Widget",
        price: str = "10.00",
        stock_quantity: int = 10,
        category: str = "gadgets",
    ) -> Product:
        async with database.transaction() as session:
            product = Product(
                name=name,
                price=Decimal(price),
                category=category,
                stock_quantity=stock_quantity,
            )
            session.add(product)
            await session.flush()
        return product

    return _make_product


def auth_headers(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture
def make_headers():
    return auth_headers


@pytest.fixture
async def user(make_user) -> User:
    return await make_user()


@pytest.fixture
def headers(user) -> dict:
    return auth_headers(user)
