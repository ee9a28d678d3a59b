"""
Combo types — kinds, arity rules, composed selections and errors.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from posflow.menu import Category, MenuItem, SizeTier


# ═══════════════════════════════════════════════════════════════════════════════
# Kinds & Rules
# ═══════════════════════════════════════════════════════════════════════════════


class ComboKind(StrEnum):
    APPETIZER = "Appetizer"
    PLATE = "Plate"
    BIGGER_PLATE = "Bigger Plate"
    BOWL = "Bowl"
    A_LA_CARTE = "A La Carte"
    DRINK = "Drink"


@dataclass(frozen=True, slots=True)
class ComboRule:
    """Exact side/entree arity of a plate-style combo."""

    sides: int
    entrees: int


RULES: dict[ComboKind, ComboRule] = {
    ComboKind.BOWL: ComboRule(sides=1, entrees=1),
    ComboKind.PLATE: ComboRule(sides=1, entrees=2),
    ComboKind.BIGGER_PLATE: ComboRule(sides=1, entrees=3),
}

MULTI_SELECT: frozenset[ComboKind] = frozenset({ComboKind.APPETIZER, ComboKind.DRINK})
SIZED: frozenset[ComboKind] = frozenset({ComboKind.DRINK, ComboKind.A_LA_CARTE})

ITEM_CATEGORIES: dict[ComboKind, frozenset[Category]] = {
    ComboKind.APPETIZER: frozenset({Category.APPETIZER}),
    ComboKind.DRINK: frozenset({Category.DRINK}),
    ComboKind.A_LA_CARTE: frozenset({Category.SIDE, Category.ENTREE}),
}


# ═══════════════════════════════════════════════════════════════════════════════
# ComposedSelection — validated, immutable
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class ComposedSelection:
    """
    A bundle that satisfied its combo rule.

    Plate-style kinds fill `sides`/`entrees`; every other kind carries a
    single `item` (one selection per unit), sized where the kind is sized.
    """

    kind: ComboKind
    sides: tuple[MenuItem, ...] = ()
    entrees: tuple[MenuItem, ...] = ()
    item: MenuItem | None = None
    size: SizeTier | None = None

    @property
    def foods(self) -> tuple[MenuItem, ...]:
        """Food references in transaction-entry order."""
        if self.item is not None:
            return (self.item,)
        return (*self.sides, *self.entrees)

    @property
    def premium_count(self) -> int:
        return sum(1 for food in self.foods if food.is_premium)

    @property
    def is_premium(self) -> bool:
        return self.premium_count > 0

    @property
    def display_name(self) -> str:
        if self.kind in RULES:
            names = ", ".join(food.name for food in self.foods)
            return f"{self.kind.value} ({names})"
        assert self.item is not None
        if self.size is not None:
            return f"{self.size.label.value} {self.item.name}"
        return self.item.name


# ═══════════════════════════════════════════════════════════════════════════════
# Errors
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class IncompleteSelection:
    """Combo rule not met yet. Blocks add-to-cart only."""

    kind: ComboKind
    message: str


@dataclass(frozen=True, slots=True)
class InvalidItem:
    """Item is unknown to the catalog, out of stock, or in the wrong slot."""

    name: str
    reason: str


type ComboError = IncompleteSelection | InvalidItem


__all__ = (
    "ComboKind",
    "ComboRule",
    "RULES",
    "MULTI_SELECT",
    "SIZED",
    "ITEM_CATEGORIES",
    "ComposedSelection",
    "IncompleteSelection",
    "InvalidItem",
    "ComboError",
)
