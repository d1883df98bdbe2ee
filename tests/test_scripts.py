# tests/test_scripts.py
import asyncio

import pytest
from sqlalchemy import func, select

from scripts import seed_dev_products, verify_stock
from stock_engine.db.session_async import AsyncSessionLocal
from stock_engine.models.product import Product


async def _products() -> list[dict]:
    async with AsyncSessionLocal() as session:
        rows = (await session.execute(select(Product).order_by(Product.id))).scalars().all()
        products = [{"id": p.id, "name": p.name, "stock": p.stock, "variants": p.variants} for p in rows]
        await session.rollback()
        return products


@pytest.mark.asyncio
async def test_seed_dev_products_is_idempotent():
    await seed_dev_products.seed_dev_products()
    first = await _products()
    assert len(first) == len(seed_dev_products.PRODUCTS)

    vestido = next(p for p in first if p["name"] == "Vestido Midi Linho")
    assert vestido["stock"] == 9
    assert vestido["variants"][1]["colorName"] == "Preto"

    await seed_dev_products.seed_dev_products()
    async with AsyncSessionLocal() as session:
        total = (await session.execute(select(func.count(Product.id)))).scalar_one()
        await session.rollback()
    assert total == len(first)


@pytest.mark.asyncio
async def test_verify_stock_reports_and_fixes_drift(product_factory):
    ok = await product_factory([{"colorName": "Azul", "sizeStock": [{"size": "M", "quantity": 2}]}])
    drifted = await product_factory(
        [{"colorName": "Preto", "sizeStock": [{"size": "P", "quantity": 1}, {"size": "G", "quantity": 4}]}],
        stock=12,
    )

    drifts = await verify_stock.reconcile_stock(fix=False)
    assert [d.product_id for d in drifts] == [drifted]
    assert drifts[0].recorded == 12
    assert drifts[0].computed == 5

    await verify_stock.reconcile_stock(fix=True)
    stocks = {p["id"]: p["stock"] for p in await _products()}
    assert stocks == {ok: 2, drifted: 5}
    assert await verify_stock.reconcile_stock(fix=False) == []


@pytest.mark.asyncio
async def test_verify_stock_cli_exit_code_signals_drift(product_factory):
    await product_factory([{"colorName": "Azul", "sizeStock": [{"size": "M", "quantity": 2}]}], stock=0)
    # main() drives its own event loop, so run it off this one
    exit_code = await asyncio.to_thread(verify_stock.main, [])
    assert exit_code == 1
    assert await asyncio.to_thread(verify_stock.main, ["--fix"]) == 0
