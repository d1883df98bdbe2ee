# stock_engine/services/variant_resolver.py
"""Map a requested ``(color, size)`` pair onto one cell of a variant document.

Both lookups try an exact (normalized) match first and then walk an ordered
fallback chain. The outcome is tagged with the rule that matched, so callers
can log degraded matches and tests can pin each rule on its own.

Color rules, first match wins:

1. ``exact``          -- ``colorName`` equals the requested color.
2. ``generic_color``  -- the request is empty or a placeholder ("padrão") -> first variant.
3. ``single_variant`` -- the product has exactly one variant.
4. ``default_color``  -- the variant named like the product's own ``color`` field.

Nothing matched -> :class:`ColorNotFoundError`.

Size rules, applied inside the resolved variant:

1. ``exact``       -- ``size`` equals the requested size.
2. ``one_size``    -- request and cell are both one-size synonyms ("U", "Único").
3. ``single_size`` -- the variant has exactly one size cell.

Nothing matched -> ``unresolved`` (soft; the adjustment is skipped, not failed).
A variant without size cells resolves to ``no_sizes`` before any rule runs.
"""
from __future__ import annotations

import enum
from collections.abc import Iterable
from dataclasses import dataclass

from stock_engine.core.config import settings
from stock_engine.models.product import Product
from stock_engine.schemas.variant import ColorVariant, VariantDocument
from stock_engine.services.exceptions import ColorNotFoundError, NoVariantsError
from stock_engine.utils.text import normalize_label


class ColorMatch(str, enum.Enum):
    exact = "exact"
    generic_color = "generic_color"
    single_variant = "single_variant"
    default_color = "default_color"


class SizeMatch(str, enum.Enum):
    exact = "exact"
    one_size = "one_size"
    single_size = "single_size"
    unresolved = "unresolved"
    no_sizes = "no_sizes"


@dataclass(frozen=True, slots=True)
class ColorResolution:
    kind: ColorMatch
    variant_index: int

    @property
    def is_fallback(self) -> bool:
        return self.kind is not ColorMatch.exact


@dataclass(frozen=True, slots=True)
class SizeResolution:
    kind: SizeMatch
    size_index: int | None = None

    @property
    def resolved(self) -> bool:
        return self.size_index is not None

    @property
    def is_fallback(self) -> bool:
        return self.kind in (SizeMatch.one_size, SizeMatch.single_size)


def _find(labels: Iterable[str], wanted: str) -> int | None:
    for index, label in enumerate(labels):
        if normalize_label(label) == wanted:
            return index
    return None


def resolve_color(
    product: Product,
    document: VariantDocument,
    color: str | None,
    *,
    generic_colors: Iterable[str] | None = None,
) -> ColorResolution:
    variants = document.variants
    if not variants:
        raise NoVariantsError(product.id)

    wanted = normalize_label(color)
    generic = set(settings.STOCK_GENERIC_COLORS if generic_colors is None else generic_colors)

    index = _find((v.label for v in variants), wanted)
    if index is not None:
        return ColorResolution(ColorMatch.exact, index)

    if wanted == "" or wanted in generic:
        return ColorResolution(ColorMatch.generic_color, 0)

    if len(variants) == 1:
        return ColorResolution(ColorMatch.single_variant, 0)

    index = _find((v.label for v in variants), normalize_label(product.color))
    if index is not None:
        return ColorResolution(ColorMatch.default_color, index)

    raise ColorNotFoundError(product.id, product.name, color, document.color_names())


def resolve_size(
    variant: ColorVariant,
    size: str | None,
    *,
    one_size_labels: Iterable[str] | None = None,
) -> SizeResolution:
    cells = variant.size_stock
    if not cells:
        return SizeResolution(SizeMatch.no_sizes)

    wanted = normalize_label(size)
    one_size = set(settings.STOCK_ONE_SIZE_LABELS if one_size_labels is None else one_size_labels)

    index = _find((cell.label for cell in cells), wanted)
    if index is not None:
        return SizeResolution(SizeMatch.exact, index)

    if wanted in one_size:
        for index, cell in enumerate(cells):
            if normalize_label(cell.label) in one_size:
                return SizeResolution(SizeMatch.one_size, index)

    if len(cells) == 1:
        return SizeResolution(SizeMatch.single_size, 0)

    return SizeResolution(SizeMatch.unresolved)
