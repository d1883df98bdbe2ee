# stock_engine/services/stock_mutator.py
from __future__ import annotations

from dataclasses import dataclass

from stock_engine.domain.enums import StockOperation
from stock_engine.schemas.variant import VariantDocument
from stock_engine.services.exceptions import InsufficientStockError, InvalidQuantityError


@dataclass(frozen=True, slots=True)
class MutationResult:
    previous_quantity: int
    new_quantity: int
    aggregate_stock: int


def validate_quantity(quantity: int) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise InvalidQuantityError("Quantity must be a positive integer.")
    return quantity


def signed_delta(operation: StockOperation, quantity: int) -> int:
    return -quantity if operation is StockOperation.reserve else quantity


def recompute_aggregate(document: VariantDocument) -> int:
    """Full recount over every cell; the catalog may have edited the document out-of-band."""
    return document.total_quantity()


def apply_delta(
    document: VariantDocument,
    variant_index: int,
    size_index: int,
    operation: StockOperation,
    quantity: int,
    *,
    product_name: str = "",
) -> MutationResult:
    """Write the new cell quantity into ``document`` and return the recomputed totals.

    Reserving more than the cell holds raises :class:`InsufficientStockError`
    and leaves the document untouched. Restores are never capped.
    """
    validate_quantity(quantity)
    variant = document.variants[variant_index]
    cell = variant.size_stock[size_index]
    current = cell.quantity

    if operation is StockOperation.reserve and current < quantity:
        raise InsufficientStockError(product_name, variant.label, cell.label, quantity, current)

    cell.quantity = current + signed_delta(operation, quantity)
    return MutationResult(
        previous_quantity=current,
        new_quantity=cell.quantity,
        aggregate_stock=recompute_aggregate(document),
    )
