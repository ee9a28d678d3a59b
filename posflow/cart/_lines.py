"""
Line building — composed selections → priced CartLines.

Ids come from the catalog (base item + one food id per reference), the
price from the locked PriceBook. All lookups run concurrently.
"""

from __future__ import annotations

from collections.abc import Sequence

from combinators import parallel
from kungfu import LazyCoroResult, Ok

from posflow._types import ServiceUnavailable
from posflow.cart._types import CartLine, TransactionEntry
from posflow.combo import RULES, ComboKind, ComposedSelection
from posflow.lift import from_result, service_call
from posflow.menu import Category, MenuCatalog
from posflow.pricing import PriceBook, price


def base_item_name(selection: ComposedSelection) -> str:
    """Catalog name of the composed item, e.g. "Plate" or "Large Entree"."""
    kind = selection.kind
    if kind in RULES or kind == ComboKind.APPETIZER:
        return kind.value
    if selection.item is None or selection.size is None:
        raise ValueError(f"{kind.value} selection without item or size")
    category = Category.DRINK if kind == ComboKind.DRINK else selection.item.category
    return selection.size.composite_name(category)


def build_line(
    selection: ComposedSelection,
    book: PriceBook,
    catalog: MenuCatalog,
) -> LazyCoroResult[CartLine, ServiceUnavailable]:
    """Resolve ids for one selection and price it."""
    unit_price = price(selection, book)
    composite = base_item_name(selection)

    def build(ids: list[int]) -> CartLine:
        return CartLine(
            display_name=selection.display_name,
            unit_price=unit_price,
            is_premium=selection.is_premium,
            transaction_entry=TransactionEntry.of(ids[0], ids[1:]),
        )

    return parallel(
        service_call("get_base_item_id", lambda: catalog.get_base_item_id(composite)),
        *[
            service_call("get_food_id", lambda n=food.name: catalog.get_food_id(n))
            for food in selection.foods
        ],
    ).map(build)


def build_lines(
    selections: Sequence[ComposedSelection],
    book: PriceBook,
    catalog: MenuCatalog,
) -> LazyCoroResult[tuple[CartLine, ...], ServiceUnavailable]:
    """
    Build lines for a batch in the given order.

    Example:
        match await build_lines(selections, book, catalog):
            case Ok(lines): cart.add_line(lines)
            case Error(e): ...  # ServiceUnavailable, cart untouched
    """
    if not selections:
        return from_result(Ok(()))
    return parallel(
        *[build_line(s, book, catalog) for s in selections]
    ).map(tuple)


__all__ = ("base_item_name", "build_line", "build_lines")
