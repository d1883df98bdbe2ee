# tests/conftest.py
import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

import os
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("ASYNC_DATABASE_URL", "sqlite+aiosqlite:///./test.db")

from stock_engine.db.session import Base, engine as sync_engine
from stock_engine.db.session_async import AsyncSessionLocal, run_in_transaction
from stock_engine.models.product import Product
from stock_engine.schemas.variant import VariantDocument


# ---------- Fixtures ----------
@pytest.fixture(scope="session", autouse=True)
def setup_database():
    """Create the SQLite tables once per test session."""
    import stock_engine.models.product  # noqa: F401
    import stock_engine.models.inventory  # noqa: F401

    Base.metadata.create_all(bind=sync_engine)
    yield
    Base.metadata.drop_all(bind=sync_engine)


@pytest.fixture(autouse=True)
def clean_tables():
    yield
    with sync_engine.begin() as connection:
        for table in reversed(Base.metadata.sorted_tables):
            connection.execute(table.delete())


@pytest_asyncio.fixture(scope="function")
async def async_db_session() -> AsyncSession:
    """AsyncSession for direct service calls; the test decides when to commit.

    On SQLite every transaction holds the database write lock, so commit or
    roll back before another session needs to write.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.rollback()


@pytest.fixture
def product_factory():
    """Insert a committed product and return its id; ``stock`` defaults to the cell sum."""

    async def _create(
        variants: list[dict[str, Any]],
        *,
        name: str = "Vestido Midi",
        color: str | None = None,
        stock: int | None = None,
    ) -> int:
        async def _insert(session: AsyncSession) -> int:
            if stock is None:
                total = VariantDocument.from_json(variants).total_quantity()
            else:
                total = stock
            product = Product(name=name, color=color, variants=variants, stock=total)
            session.add(product)
            await session.flush()
            return product.id

        return await run_in_transaction(_insert)

    return _create
