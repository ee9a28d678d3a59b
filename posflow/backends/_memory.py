"""
In-memory catalog and order service.

Used by tests, the demo app and anywhere a real backend is not wired.
Both accept failure injection so every error path can be driven.
"""

from __future__ import annotations

import asyncio
from collections import Counter
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from posflow._types import ServiceUnavailable
from posflow.checkout import TransactionLineItem, TransactionRecord
from posflow.menu import Category
from posflow.pricing import COMPOSITES

# ═══════════════════════════════════════════════════════════════════════════════
# Seed data
# ═══════════════════════════════════════════════════════════════════════════════

SEED_MENU: Mapping[Category, tuple[dict[str, Any], ...]] = {
    Category.APPETIZER: (
        {"name": "Chicken Egg Roll"},
        {"name": "Veggie Spring Roll"},
        {"name": "Cream Cheese Rangoon"},
    ),
    Category.SIDE: (
        {"name": "Chow Mein"},
        {"name": "Fried Rice"},
        {"name": "White Steamed Rice"},
        {"name": "Super Greens"},
    ),
    Category.ENTREE: (
        {"name": "Orange Chicken"},
        {"name": "Beijing Beef"},
        {"name": "Kung Pao Chicken"},
        {"name": "Broccoli Beef"},
        {"name": "Grilled Teriyaki Chicken"},
        {"name": "Honey Walnut Shrimp"},
        {"name": "Black Pepper Angus Steak"},
    ),
    Category.DRINK: (
        {"name": "Fountain Drink"},
        {"name": "Bottled Water"},
        {"name": "Apple Juice"},
    ),
}

SEED_PREMIUM: tuple[str, ...] = ("Honey Walnut Shrimp", "Black Pepper Angus Steak")

SEED_PRICES: Mapping[str, Decimal] = {
    "Bowl": Decimal("8.30"),
    "Plate": Decimal("9.80"),
    "Bigger Plate": Decimal("11.30"),
    "Appetizer": Decimal("2.00"),
    "Small Drink": Decimal("2.10"),
    "Medium Drink": Decimal("2.30"),
    "Large Drink": Decimal("2.50"),
    "Small Side": Decimal("4.40"),
    "Medium Side": Decimal("5.40"),
    "Large Side": Decimal("6.40"),
    "Small Entree": Decimal("5.20"),
    "Medium Entree": Decimal("8.50"),
    "Large Entree": Decimal("11.20"),
}


def _seed_ids(names: Iterable[str], start: int) -> dict[str, int]:
    return {name: i for i, name in enumerate(names, start=start)}


# ═══════════════════════════════════════════════════════════════════════════════
# Failure injection
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(slots=True)
class FailurePlan:
    """
    Operations that should raise, and how many times.

    A count of None fails forever. `fail_on("create_transaction_line_item", times=1)`
    fails the first call only.
    """

    remaining: dict[str, int | None] = field(default_factory=dict)
    matchers: dict[str, Any] = field(default_factory=dict)

    def add(self, operation: str, times: int | None, when: Any = None) -> None:
        self.remaining[operation] = times
        if when is not None:
            self.matchers[operation] = when

    def clear(self) -> None:
        self.remaining.clear()
        self.matchers.clear()

    def check(self, operation: str, argument: Any = None) -> None:
        if operation not in self.remaining:
            return
        when = self.matchers.get(operation)
        if when is not None and argument != when:
            return
        left = self.remaining[operation]
        if left is not None:
            if left <= 0:
                return
            self.remaining[operation] = left - 1
        raise ServiceUnavailable(operation, "injected failure")


# ═══════════════════════════════════════════════════════════════════════════════
# MemoryCatalog
# ═══════════════════════════════════════════════════════════════════════════════


class MemoryCatalog:
    """Seeded menu. Items map to the catalog's wire shapes (mappings)."""

    def __init__(
        self,
        menu: Mapping[Category, Sequence[Any]] = SEED_MENU,
        prices: Mapping[str, Decimal] = SEED_PRICES,
        premium: Sequence[str] = SEED_PREMIUM,
    ) -> None:
        self.menu = {category: list(items) for category, items in menu.items()}
        self.prices = dict(prices)
        self.premium = tuple(premium)
        self.base_item_ids = _seed_ids(COMPOSITES, start=1)
        foods = [
            item if isinstance(item, str) else item["name"]
            for items in self.menu.values()
            for item in items
        ]
        self.food_ids = _seed_ids(foods, start=101)
        self.failures = FailurePlan()

    def fail_on(self, operation: str, times: int | None = None, when: Any = None) -> None:
        self.failures.add(operation, times, when)

    def set_in_stock(self, name: str, in_stock: bool) -> None:
        for items in self.menu.values():
            for i, item in enumerate(items):
                if isinstance(item, Mapping) and item["name"] == name:
                    items[i] = {**item, "in_stock": in_stock}

    async def get_menu(self, category: Category) -> Sequence[Any]:
        self.failures.check("get_menu", category)
        return tuple(self.menu.get(category, ()))

    async def get_price(self, item_name: str) -> Decimal:
        self.failures.check("get_price", item_name)
        return self.prices[item_name]

    async def get_base_item_id(self, composite_name: str) -> int:
        self.failures.check("get_base_item_id", composite_name)
        return self.base_item_ids[composite_name]

    async def get_food_id(self, item_name: str) -> int:
        self.failures.check("get_food_id", item_name)
        return self.food_ids[item_name]

    async def get_premium_entrees(self) -> Sequence[str]:
        self.failures.check("get_premium_entrees")
        return self.premium


# ═══════════════════════════════════════════════════════════════════════════════
# MemoryOrderService
# ═══════════════════════════════════════════════════════════════════════════════


class MemoryOrderService:
    """
    Transactions, line items and inventory counters in dicts.

    `latency` adds an `asyncio.sleep` to every call so concurrent
    sessions interleave.
    """

    def __init__(self, latency: float = 0.0) -> None:
        self.transactions: dict[int, TransactionRecord] = {}
        self.line_items: dict[tuple[int, int], TransactionLineItem] = {}
        self.food_decrements: Counter[int] = Counter()
        self.item_type_decrements: Counter[int] = Counter()
        self.voided: list[int] = []
        self.failures = FailurePlan()
        self.latency = latency
        self.calls: list[str] = []

    def fail_on(self, operation: str, times: int | None = None, when: Any = None) -> None:
        self.failures.add(operation, times, when)

    async def _enter(self, operation: str, argument: Any = None) -> None:
        self.calls.append(operation)
        if self.latency:
            await asyncio.sleep(self.latency)
        self.failures.check(operation, argument)

    def lines_of(self, transaction_id: int) -> list[TransactionLineItem]:
        return [
            item for (tid, _), item in sorted(self.line_items.items())
            if tid == transaction_id
        ]

    async def get_latest_transaction_id(self) -> int:
        await self._enter("get_latest_transaction_id")
        return max(self.transactions, default=0)

    async def create_transaction(self, record: TransactionRecord) -> None:
        await self._enter("create_transaction", record.transaction_id)
        if record.transaction_id in self.transactions:
            raise ServiceUnavailable(
                "create_transaction", f"duplicate transaction id {record.transaction_id}"
            )
        self.transactions[record.transaction_id] = record

    async def create_transaction_line_item(self, item: TransactionLineItem) -> None:
        await self._enter("create_transaction_line_item", item.line_number)
        self.line_items[(item.transaction_id, item.line_number)] = item

    async def decrement_inventory_by_food(self, food_id: int) -> None:
        await self._enter("decrement_inventory_by_food", food_id)
        self.food_decrements[food_id] += 1

    async def decrement_inventory_by_item_type(self, item_id: int) -> None:
        await self._enter("decrement_inventory_by_item_type", item_id)
        self.item_type_decrements[item_id] += 1

    async def void_transaction(self, transaction_id: int) -> None:
        await self._enter("void_transaction", transaction_id)
        self.transactions.pop(transaction_id, None)
        for key in [k for k in self.line_items if k[0] == transaction_id]:
            del self.line_items[key]
        self.voided.append(transaction_id)


__all__ = (
    "SEED_MENU",
    "SEED_PRICES",
    "SEED_PREMIUM",
    "FailurePlan",
    "MemoryCatalog",
    "MemoryOrderService",
)
