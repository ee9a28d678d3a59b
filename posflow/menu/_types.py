"""
Menu types — the read-only shapes the core sees.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import StrEnum


# ═══════════════════════════════════════════════════════════════════════════════
# Enums
# ═══════════════════════════════════════════════════════════════════════════════


class Category(StrEnum):
    APPETIZER = "Appetizer"
    SIDE = "Side"
    ENTREE = "Entree"
    DRINK = "Drink"


class SizeLabel(StrEnum):
    SMALL = "Small"
    MEDIUM = "Medium"
    LARGE = "Large"


# ═══════════════════════════════════════════════════════════════════════════════
# MenuItem / SizeTier
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class MenuItem:
    """
    One orderable item as published by the catalog.

    Owned by the catalog; the core only holds snapshots.
    """

    name: str
    category: Category
    base_price: Decimal = Decimal("0")
    is_premium: bool = False
    in_stock: bool = True


@dataclass(frozen=True, slots=True)
class SizeTier:
    """Size choice for drinks and à la carte picks."""

    label: SizeLabel
    price_override: Decimal | None = None

    def composite_name(self, category: Category) -> str:
        """Catalog name of the sized composite, e.g. "Medium Side"."""
        return f"{self.label.value} {category.value}"


SMALL = SizeTier(SizeLabel.SMALL)
MEDIUM = SizeTier(SizeLabel.MEDIUM)
LARGE = SizeTier(SizeLabel.LARGE)


# ═══════════════════════════════════════════════════════════════════════════════
# MenuSnapshot
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class MenuSnapshot:
    """Items per category at one point in time."""

    items: tuple[MenuItem, ...]

    def find(self, category: Category, name: str) -> MenuItem | None:
        for item in self.items:
            if item.category == category and item.name == name:
                return item
        return None

    def in_category(self, category: Category) -> tuple[MenuItem, ...]:
        return tuple(i for i in self.items if i.category == category)

    def available(self, category: Category) -> tuple[MenuItem, ...]:
        """Selectable items; out-of-stock ones are disabled at the source."""
        return tuple(i for i in self.in_category(category) if i.in_stock)


__all__ = (
    "Category",
    "SizeLabel",
    "MenuItem",
    "SizeTier",
    "SMALL",
    "MEDIUM",
    "LARGE",
    "MenuSnapshot",
)
