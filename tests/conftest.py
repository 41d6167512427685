"""Pytest fixtures for async SQLite test database."""
import os
from datetime import date, timedelta

# Point the app at SQLite before any sales_api module builds its engine
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("CREATE_TABLES_ON_STARTUP", "false")

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from sales_api.app import app
from sales_api.database.database import Base, get_db
from sales_api.models.sale import Sale


def make_sale(**overrides) -> Sale:
    """Build a Sale with sensible defaults for anything not given."""
    values = {
        "product_id": "P0",
        "product_name": "Test Product",
        "category": "Electronics",
        "discounted_price": 100.0,
        "actual_price": 200.0,
        "discount_percentage": 0.5,
        "rating": 4.0,
        "rating_count": 100,
        "quantity": 1,
        "region": "North",
        "sale_date": date(2024, 1, 1),
    }
    values.update(overrides)
    return Sale(**values)


@pytest.fixture
def sale_factory():
    """Expose make_sale to tests that build their own rows."""
    return make_sale


@pytest_asyncio.fixture
async def db_session():
    """Create an in-memory SQLite async session for testing."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )
    async with session_factory() as session:
        yield session
    await engine.dispose()


@pytest_asyncio.fixture
async def sample_sales(db_session):
    """Five sales across two categories, four regions and three months."""
    sales = [
        # Revenue 500 x 2 = 1000
        make_sale(
            product_id="P1", product_name="Wireless Mouse", category="Electronics",
            discounted_price=500.0, actual_price=1000.0, discount_percentage=0.5,
            rating=4.0, rating_count=250, quantity=2, region="North",
            sale_date=date(2024, 1, 10),
        ),
        # Revenue 200 x 12 = 2400
        make_sale(
            product_id="P2", product_name="USB Cable", category="Electronics",
            discounted_price=200.0, actual_price=250.0, discount_percentage=0.2,
            rating=3.5, rating_count=1200, quantity=12, region="South",
            sale_date=date(2024, 1, 20),
        ),
        # Revenue 300 x 1 = 300
        make_sale(
            product_id="P3", product_name="Coffee Mug", category="Home&Kitchen",
            discounted_price=300.0, actual_price=300.0, discount_percentage=0.0,
            rating=4.5, rating_count=50, quantity=1, region="North",
            sale_date=date(2024, 2, 5),
        ),
        # Revenue 450 x 2 = 900
        make_sale(
            product_id="P1", product_name="Wireless Mouse", category="Electronics",
            discounted_price=450.0, actual_price=1000.0, discount_percentage=0.55,
            rating=4.2, rating_count=260, quantity=2, region="East",
            sale_date=date(2024, 2, 12),
        ),
        # Revenue 1000 x 1 = 1000
        make_sale(
            product_id="P4", product_name="Desk Lamp", category="Home&Kitchen",
            discounted_price=1000.0, actual_price=1500.0, discount_percentage=0.33,
            rating=2.5, rating_count=10, quantity=1, region="West",
            sale_date=date(2024, 3, 1),
        ),
    ]
    db_session.add_all(sales)
    await db_session.commit()
    return sales


@pytest_asyncio.fixture
async def many_sales(db_session):
    """Sixty sales on consecutive days, for paging tests."""
    sales = [
        make_sale(
            product_id=f"P{i}",
            product_name=f"Product {i:02d}",
            rating_count=i * 10,
            sale_date=date(2024, 1, 1) + timedelta(days=i),
        )
        for i in range(60)
    ]
    db_session.add_all(sales)
    await db_session.commit()
    return sales


@pytest_asyncio.fixture
async def client(db_session):
    """HTTP client bound to the app, sharing the test session."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
