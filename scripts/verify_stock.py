"""Report (and optionally repair) products whose aggregate stock drifted from their size cells.

Usage: python scripts/verify_stock.py [--fix]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from stock_engine.core.logging import setup_logging
from stock_engine.db.session_async import AsyncSessionLocal, commit
from stock_engine.models.product import Product
from stock_engine.schemas.variant import VariantDocument
from stock_engine.services.inventory_service import lock_product
from stock_engine.services.stock_mutator import recompute_aggregate


@dataclass(frozen=True, slots=True)
class StockDrift:
    product_id: int
    name: str
    recorded: int
    computed: int


async def find_drift(session: AsyncSession) -> list[StockDrift]:
    rows = (await session.execute(select(Product).order_by(Product.id))).scalars().all()
    drifts: list[StockDrift] = []
    for product in rows:
        computed = recompute_aggregate(VariantDocument.from_json(product.variants))
        recorded = int(product.stock or 0)
        if computed != recorded:
            drifts.append(StockDrift(product.id, product.name, recorded, computed))
    return drifts


async def reconcile_stock(fix: bool = False) -> list[StockDrift]:
    logger = logging.getLogger("verify_stock")
    async with AsyncSessionLocal() as session:
        drifts = await find_drift(session)
        for drift in drifts:
            logger.warning(
                "Product %s (%s): stock=%s but size cells sum to %s",
                drift.product_id, drift.name, drift.recorded, drift.computed,
            )
        if fix and drifts:
            # ascending id, same lock order as sale adjustments
            for drift in drifts:
                product = await lock_product(session, drift.product_id)
                product.stock = recompute_aggregate(VariantDocument.from_json(product.variants))
                product.updated_at = datetime.now(timezone.utc)
            await commit(session)
            logger.info("Repaired %s products", len(drifts))
    if not drifts:
        logger.info("All aggregate stock values match their size cells")
    return drifts


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--fix", action="store_true", help="rewrite drifted aggregates")
    args = parser.parse_args(argv)
    drifts = asyncio.run(reconcile_stock(fix=args.fix))
    return 1 if drifts and not args.fix else 0


if __name__ == "__main__":
    setup_logging()
    sys.exit(main())
