from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Select, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from stock_engine.core.config import settings
from stock_engine.core.logging import get_logger, stock_warning
from stock_engine.core.metrics import record_adjustment, record_fallback
from stock_engine.domain.enums import (
    MOVEMENT_TYPE_BY_OPERATION,
    AdjustmentStatus,
    SkipReason,
    StockOperation,
)
from stock_engine.models.inventory import StockMovement
from stock_engine.models.product import Product
from stock_engine.schemas.variant import VariantDocument
from stock_engine.services.exceptions import ProductNotFoundError, StockError
from stock_engine.services.stock_mutator import MutationResult, apply_delta, validate_quantity
from stock_engine.services.variant_resolver import (
    ColorResolution,
    SizeMatch,
    SizeResolution,
    resolve_color,
    resolve_size,
)

logger = get_logger(__name__)

DEFAULT_SALE_COLOR = "Padrão"
DEFAULT_SALE_SIZE = "Único"

_PRODUCT_ID_KEYS = ("productId", "product_id")
_COLOR_KEYS = ("selectedColor", "colorSelected", "color_selected", "color")
_SIZE_KEYS = ("selectedSize", "sizeSelected", "size_selected", "size")


@dataclass(frozen=True, slots=True)
class StockAdjustment:
    """Outcome of one :func:`adjust_stock` call. Both statuses mean success."""

    product_id: int
    operation: StockOperation
    status: AdjustmentStatus
    color: ColorResolution
    size: SizeResolution
    aggregate_stock: int
    movement_id: int
    skip_reason: SkipReason | None = None
    previous_quantity: int | None = None
    new_quantity: int | None = None

    @property
    def applied(self) -> bool:
        return self.status is AdjustmentStatus.applied


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def product_lock_stmt(product_id: int) -> Select[tuple[Product]]:
    # populate_existing: never trust a copy already sitting in the identity map
    return (
        select(Product)
        .where(Product.id == product_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )


async def lock_product(db: AsyncSession, product_id: int) -> Product:
    """SELECT ... FOR UPDATE the product row; blocks while another transaction holds it."""
    product = (await db.execute(product_lock_stmt(product_id))).scalar_one_or_none()
    if product is None:
        raise ProductNotFoundError(product_id)
    return product


def _movement_notes(
    operation: StockOperation,
    color: str | None,
    size: str | None,
    skip_reason: SkipReason | None = None,
) -> str:
    notes = f"Stock Update ({operation.value}): {color}/{size}"
    if skip_reason is not None:
        notes += f" [skipped: {skip_reason.value}]"
    return notes


async def _append_movement(
    db: AsyncSession,
    product: Product,
    operation: StockOperation,
    quantity: int,
    notes: str,
) -> StockMovement:
    movement = StockMovement(
        product_id=product.id,
        quantity=int(quantity),
        movement_type=MOVEMENT_TYPE_BY_OPERATION[operation],
        notes=notes,
        from_status=settings.STOCK_MOVEMENT_STATUS,
        to_status=settings.STOCK_MOVEMENT_STATUS,
    )
    db.add(movement)
    await db.flush([movement])
    return movement


async def write_ledger(
    db: AsyncSession,
    product: Product,
    document: VariantDocument,
    mutation: MutationResult,
    operation: StockOperation,
    quantity: int,
    notes: str,
) -> StockMovement:
    """Persist document + aggregate on the locked row and append the movement, without commit."""
    product.variants = document.to_json()
    product.stock = mutation.aggregate_stock
    product.updated_at = _utcnow()
    db.add(product)
    await db.flush([product])
    return await _append_movement(db, product, operation, quantity, notes)


def _log_fallbacks(product: Product, document: VariantDocument, color: str | None, size: str | None,
                   color_match: ColorResolution, size_match: SizeResolution | None) -> None:
    variant = document.variants[color_match.variant_index]
    if color_match.is_fallback:
        record_fallback(color_match.kind.value)
        stock_warning(
            f'Color "{color}" matched variant "{variant.label}" by {color_match.kind.value} fallback',
            product_id=product.id,
            product_name=product.name,
            requested_color=color,
            matched_color=variant.label,
            rule=color_match.kind.value,
        )
    if size_match is not None and size_match.is_fallback:
        record_fallback(size_match.kind.value)
        stock_warning(
            f'Size "{size}" matched "{variant.size_stock[size_match.size_index].label}" '
            f"by {size_match.kind.value} fallback",
            product_id=product.id,
            product_name=product.name,
            color=variant.label,
            requested_size=size,
            matched_size=variant.size_stock[size_match.size_index].label,
            rule=size_match.kind.value,
        )


async def _skip(
    db: AsyncSession,
    product: Product,
    document: VariantDocument,
    operation: StockOperation,
    quantity: int,
    color: str | None,
    size: str | None,
    color_match: ColorResolution,
    size_match: SizeResolution,
) -> StockAdjustment:
    reason = SkipReason.no_sizes if size_match.kind is SizeMatch.no_sizes else SkipReason.size_unresolved
    variant = document.variants[color_match.variant_index]
    # TODO: decide whether an unresolved size should block the sale instead of skipping.
    stock_warning(
        f'Size "{size}" not resolved in color "{variant.label}" for product {product.id}; skipping stock update',
        product_id=product.id,
        product_name=product.name,
        color=variant.label,
        requested_size=size,
        available_sizes=[cell.label for cell in variant.size_stock],
        reason=reason.value,
    )
    movement = await _append_movement(
        db, product, operation, quantity, _movement_notes(operation, color, size, reason)
    )
    record_adjustment(operation.value, AdjustmentStatus.skipped.value)
    return StockAdjustment(
        product_id=product.id,
        operation=operation,
        status=AdjustmentStatus.skipped,
        color=color_match,
        size=size_match,
        aggregate_stock=int(product.stock or 0),
        movement_id=movement.id,
        skip_reason=reason,
    )


async def adjust_stock(
    db: AsyncSession,
    product_id: int,
    quantity: int,
    color: str | None,
    size: str | None,
    operation: StockOperation | str = StockOperation.reserve,
) -> StockAdjustment:
    """Reserve (sale) or restore (cancellation/return) stock of one size cell.

    Runs inside the caller's transaction on ``db``: the product row stays locked
    until the caller commits or rolls back. Nothing is committed here. Fatal
    conditions raise :class:`StockError` subclasses and the caller must roll
    back; database errors propagate unchanged.
    """
    operation = StockOperation(operation)
    try:
        validate_quantity(quantity)
        product = await lock_product(db, product_id)
        document = VariantDocument.from_json(product.variants)

        color_match = resolve_color(product, document, color)
        variant = document.variants[color_match.variant_index]
        size_match = resolve_size(variant, size)
        _log_fallbacks(product, document, color, size, color_match, size_match)

        if not size_match.resolved:
            return await _skip(db, product, document, operation, quantity, color, size, color_match, size_match)

        mutation = apply_delta(
            document,
            color_match.variant_index,
            size_match.size_index,
            operation,
            quantity,
            product_name=product.name,
        )
        movement = await write_ledger(
            db, product, document, mutation, operation, quantity, _movement_notes(operation, color, size)
        )
    except (StockError, SQLAlchemyError):
        record_adjustment(operation.value, "failed")
        raise

    record_adjustment(operation.value, AdjustmentStatus.applied.value)
    logger.info(
        "Stock update applied",
        extra={
            "product_id": product.id,
            "operation": operation.value,
            "color": variant.label,
            "size": variant.size_stock[size_match.size_index].label,
            "quantity_change": mutation.new_quantity - mutation.previous_quantity,
            "aggregate_stock": mutation.aggregate_stock,
        },
    )
    return StockAdjustment(
        product_id=product.id,
        operation=operation,
        status=AdjustmentStatus.applied,
        color=color_match,
        size=size_match,
        aggregate_stock=mutation.aggregate_stock,
        movement_id=movement.id,
        previous_quantity=mutation.previous_quantity,
        new_quantity=mutation.new_quantity,
    )


def _first(item: Mapping[str, Any], keys: Iterable[str]) -> Any:
    for key in keys:
        value = item.get(key)
        if value:
            return value
    return None


def _line_quantity(value: Any) -> Any:
    # anything else is left for validate_quantity to reject
    if value is None or value == "":
        return 1
    if isinstance(value, str) and value.strip().isdigit():
        return int(value)
    return value


async def adjust_sale_items(
    db: AsyncSession,
    items: Iterable[Mapping[str, Any]],
    operation: StockOperation | str = StockOperation.reserve,
) -> list[StockAdjustment]:
    """Adjust every line of a sale/order, locking products in ascending id order.

    Lines without a product id are ignored. Missing colors default to "Padrão",
    missing sizes to "Único" and missing quantities to 1. Each product is still
    adjusted independently; atomicity comes from the caller's transaction.
    """
    lines = []
    for item in items:
        product_id = _first(item, _PRODUCT_ID_KEYS)
        if product_id is None:
            continue
        lines.append(
            (
                int(product_id),
                _line_quantity(item.get("quantity")),
                _first(item, _COLOR_KEYS) or DEFAULT_SALE_COLOR,
                _first(item, _SIZE_KEYS) or DEFAULT_SALE_SIZE,
            )
        )

    adjustments: list[StockAdjustment] = []
    for product_id, quantity, color, size in sorted(lines, key=lambda line: line[0]):
        adjustments.append(await adjust_stock(db, product_id, quantity, color, size, operation))
    return adjustments


async def list_movements(
    db: AsyncSession,
    product_id: int,
    limit: int = 50,
    offset: int = 0,
) -> list[dict]:
    stmt = (
        select(StockMovement)
        .where(StockMovement.product_id == product_id)
        .order_by(StockMovement.created_at.desc(), StockMovement.id.desc())
        .offset(int(offset))
        .limit(int(limit))
    )
    result = await db.execute(stmt)
    rows = result.scalars().all()
    return [
        {
            "id": row.id,
            "movement_type": row.movement_type.value,
            "quantity": int(row.quantity),
            "notes": row.notes,
            "from_status": row.from_status,
            "to_status": row.to_status,
            "created_at": row.created_at.isoformat(),
        }
        for row in rows
    ]
