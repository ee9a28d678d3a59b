"""
Pricing engine — pure function of a selection and a price book.

Plate-style combos add a flat surcharge per premium entree on top of
the combo price. À la carte premium entrees take their price from the
premium size table instead of the regular size price. Nothing is
rounded here; round only for display or persistence.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from posflow.combo import RULES, ComboKind, ComposedSelection
from posflow.menu import Category
from posflow.pricing._tables import PriceBook

CENT = Decimal("0.01")


def price(selection: ComposedSelection, book: PriceBook) -> Decimal:
    """
    Unit price of one composed selection.

    Example:
        price(plate_with_one_premium, book)  # book.base("Plate") + 1.50
    """
    kind = selection.kind

    if kind in RULES:
        surcharge = book.tables.premium_surcharge * selection.premium_count
        return book.base(kind.value) + surcharge

    if kind == ComboKind.APPETIZER:
        return book.base("Appetizer")

    item = selection.item
    size = selection.size
    if item is None or size is None:
        raise ValueError(f"{kind.value} selection without item or size")

    if kind == ComboKind.A_LA_CARTE and item.category == Category.ENTREE and item.is_premium:
        return book.tables.premium_sizes[size.label]

    if size.price_override is not None:
        return size.price_override

    return book.base(size.composite_name(item.category))


def display_amount(value: Decimal) -> Decimal:
    """Round to cents for display / persistence."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def format_money(value: Decimal) -> str:
    return f"${display_amount(value)}"


__all__ = ("price", "display_amount", "format_money", "CENT")
