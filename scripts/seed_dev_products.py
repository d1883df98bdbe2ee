"""Seed script for populating development products with variant documents."""

from __future__ import annotations

import asyncio
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Sequence

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from stock_engine.core.config import settings
from stock_engine.core.logging import setup_logging
from stock_engine.db.session_async import AsyncSessionLocal
from stock_engine.models.product import Product
from stock_engine.schemas.variant import VariantDocument
from stock_engine.services.stock_mutator import recompute_aggregate


@dataclass(frozen=True, slots=True)
class VariantSeed:
    color_name: str
    sizes: Sequence[tuple[str, int]] = field(default_factory=tuple)

    def as_json(self) -> dict[str, Any]:
        return {
            "colorName": self.color_name,
            "sizeStock": [{"size": size, "quantity": qty} for size, qty in self.sizes],
        }


@dataclass(frozen=True, slots=True)
class ProductSeed:
    name: str
    color: str | None = None
    variants: Sequence[VariantSeed] = field(default_factory=tuple)


PRODUCTS: tuple[ProductSeed, ...] = (
    ProductSeed(
        name="Vestido Midi Linho",
        color="Azul",
        variants=(
            VariantSeed("Azul", (("P", 2), ("M", 3), ("G", 1))),
            VariantSeed("Preto", (("P", 1), ("M", 2))),
        ),
    ),
    ProductSeed(
        name="Blusa Tricot Rosa",
        color="Rosa",
        variants=(VariantSeed("Rosa", (("Único", 5),)),),
    ),
    ProductSeed(
        name="Calça Alfaiataria",
        color="Branco",
        variants=(
            VariantSeed("Preto", (("38", 2), ("40", 2))),
            VariantSeed("Branco", (("38", 1), ("40", 3))),
        ),
    ),
    ProductSeed(
        name="Lenço Estampado",
        color="Padrão",
        variants=(VariantSeed("Estampado"),),
    ),
)


async def _seed_products(session: AsyncSession, logger: logging.Logger) -> tuple[int, int]:
    created = skipped = 0
    for seed in PRODUCTS:
        existing = (
            await session.execute(select(Product.id).where(Product.name == seed.name))
        ).scalar_one_or_none()
        if existing is not None:
            skipped += 1
            continue

        document = VariantDocument.from_json([variant.as_json() for variant in seed.variants])
        session.add(
            Product(
                name=seed.name,
                color=seed.color,
                variants=document.to_json(),
                stock=recompute_aggregate(document),
            )
        )
        created += 1
        logger.info("Seeded product %s", seed.name)
    return created, skipped


async def seed_dev_products() -> None:
    logger = logging.getLogger("seed_dev_products")
    logger.info("Seeding development products into %s", settings.ASYNC_DATABASE_URL)
    async with AsyncSessionLocal() as session:
        created, skipped = await _seed_products(session, logger)
        await session.commit()
    logger.info("Seed completed: %s created, %s skipped", created, skipped)


async def main() -> None:
    await seed_dev_products()


if __name__ == "__main__":
    setup_logging()
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
