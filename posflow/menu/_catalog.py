"""
Menu catalog — the external read-only collaborator and its boundary.

The catalog may hand back plain names, mappings or ORM-ish objects
exposing `.name`. `normalize_item` folds all of them into MenuItem so
nothing past this module branches on representation.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from decimal import Decimal
from typing import Any, Protocol

from combinators import parallel
from kungfu import LazyCoroResult

from posflow._types import ServiceUnavailable
from posflow.lift import service_call
from posflow.menu._types import Category, MenuItem, MenuSnapshot


# ═══════════════════════════════════════════════════════════════════════════════
# Catalog Protocol
# ═══════════════════════════════════════════════════════════════════════════════


class MenuCatalog(Protocol):
    """
    Read-only menu service.

    All methods are async and may fail (network / service error).
    """

    async def get_menu(self, category: Category) -> Sequence[Any]:
        """Items of a category: names, mappings or objects with `.name`."""
        ...

    async def get_price(self, item_name: str) -> Decimal:
        ...

    async def get_base_item_id(self, composite_name: str) -> int:
        """Id of a composite item, e.g. "Plate" or "Medium Side"."""
        ...

    async def get_food_id(self, item_name: str) -> int:
        ...

    async def get_premium_entrees(self) -> Sequence[str]:
        ...


# ═══════════════════════════════════════════════════════════════════════════════
# Normalization
# ═══════════════════════════════════════════════════════════════════════════════


def _field(raw: Any, *names: str, default: Any = None) -> Any:
    for name in names:
        if isinstance(raw, Mapping) and name in raw:
            return raw[name]
        if not isinstance(raw, Mapping) and hasattr(raw, name):
            return getattr(raw, name)
    return default


def normalize_item(
    raw: Any,
    category: Category,
    premium_names: frozenset[str] = frozenset(),
) -> MenuItem:
    """
    Fold any catalog representation into a MenuItem.

    Premium status comes from the item itself or from the catalog's
    premium-entree list; only entrees can be premium.
    """
    if isinstance(raw, MenuItem):
        name = raw.name
        price = raw.base_price
        premium = raw.is_premium
        in_stock = raw.in_stock
    elif isinstance(raw, str):
        name = raw
        price = Decimal("0")
        premium = False
        in_stock = True
    else:
        name = _field(raw, "name")
        if not isinstance(name, str) or not name:
            raise ValueError(f"Catalog item without a name: {raw!r}")
        price = Decimal(str(_field(raw, "base_price", "price", default="0")))
        premium = bool(_field(raw, "is_premium", "premium", default=False))
        in_stock = bool(_field(raw, "in_stock", default=True))

    premium = category == Category.ENTREE and (premium or name in premium_names)
    return MenuItem(
        name=name,
        category=category,
        base_price=price,
        is_premium=premium,
        in_stock=in_stock,
    )


# ═══════════════════════════════════════════════════════════════════════════════
# Snapshot loading
# ═══════════════════════════════════════════════════════════════════════════════


def load_snapshot(
    catalog: MenuCatalog,
) -> LazyCoroResult[MenuSnapshot, ServiceUnavailable]:
    """
    Fetch every category plus the premium list concurrently.

    Example:
        match await load_snapshot(catalog):
            case Ok(snapshot): ...
            case Error(e): ...  # ServiceUnavailable
    """
    categories = tuple(Category)

    def build(results: list[Any]) -> MenuSnapshot:
        premium = frozenset(results[-1])
        items: list[MenuItem] = []
        for category, raw_items in zip(categories, results[:-1]):
            items.extend(normalize_item(raw, category, premium) for raw in raw_items)
        return MenuSnapshot(tuple(items))

    return parallel(
        *[
            service_call("get_menu", lambda c=c: catalog.get_menu(c))
            for c in categories
        ],
        service_call("get_premium_entrees", catalog.get_premium_entrees),
    ).map(build)


__all__ = (
    "MenuCatalog",
    "normalize_item",
    "load_snapshot",
)
