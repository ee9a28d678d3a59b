"""
Cart types — priced lines and their on-the-wire transaction entries.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import NamedTuple

FOOD_SLOTS = 4


class TransactionEntry(NamedTuple):
    """
    Fixed 5-slot entry persisted per line: (item, food1..food4).

    Slot 0 is always the composed item's own id; unused food slots are 0.
    """

    base_item_id: int
    food1: int = 0
    food2: int = 0
    food3: int = 0
    food4: int = 0

    @classmethod
    def of(cls, base_item_id: int, food_ids: Sequence[int]) -> TransactionEntry:
        if len(food_ids) > FOOD_SLOTS:
            raise ValueError(f"At most {FOOD_SLOTS} foods per line, got {len(food_ids)}")
        padded = (*food_ids, *([0] * (FOOD_SLOTS - len(food_ids))))
        return cls(base_item_id, *padded)

    @property
    def food_ids(self) -> tuple[int, int, int, int]:
        return (self.food1, self.food2, self.food3, self.food4)

    @property
    def nonzero_foods(self) -> tuple[int, ...]:
        return tuple(f for f in self.food_ids if f != 0)


@dataclass(frozen=True, slots=True)
class CartLine:
    """A priced line; its price never changes after creation."""

    display_name: str
    unit_price: Decimal
    is_premium: bool
    transaction_entry: TransactionEntry


__all__ = ("FOOD_SLOTS", "TransactionEntry", "CartLine")
