"""
Order service — the external persistence / inventory collaborator,
and transaction id allocation on top of it.
"""

from __future__ import annotations

import asyncio
from typing import Protocol, runtime_checkable

from posflow.checkout._types import TransactionLineItem, TransactionRecord

# ═══════════════════════════════════════════════════════════════════════════════
# OrderService Protocol
# ═══════════════════════════════════════════════════════════════════════════════


class OrderService(Protocol):
    """
    Transaction persistence and inventory ledger.

    Every call is async and may fail independently.
    `create_transaction_line_item` must tolerate a retry of the same
    (transaction_id, line_number).
    """

    async def get_latest_transaction_id(self) -> int:
        ...

    async def create_transaction(self, record: TransactionRecord) -> None:
        ...

    async def create_transaction_line_item(self, item: TransactionLineItem) -> None:
        ...

    async def decrement_inventory_by_food(self, food_id: int) -> None:
        ...

    async def decrement_inventory_by_item_type(self, item_id: int) -> None:
        ...

    async def void_transaction(self, transaction_id: int) -> None:
        """Remove a transaction header and its line items (compensation)."""
        ...


# ═══════════════════════════════════════════════════════════════════════════════
# Transaction id allocation
# ═══════════════════════════════════════════════════════════════════════════════


@runtime_checkable
class TransactionIdAllocator(Protocol):
    async def allocate_transaction_id(self) -> int:
        ...


class SequenceAllocator:
    """
    Read-latest-then-next, serialized for every session of this process.

    The high-water mark covers ids handed out whose headers are not
    persisted yet, so two sessions never receive the same id. Several
    processes sharing one service need an allocator backed by the
    service itself (see SQLAlchemyOrderService).
    """

    def __init__(self, service: OrderService) -> None:
        self._service = service
        self._lock = asyncio.Lock()
        self._high_water = 0

    async def allocate_transaction_id(self) -> int:
        async with self._lock:
            latest = await self._service.get_latest_transaction_id()
            next_id = max(latest, self._high_water) + 1
            self._high_water = next_id
            return next_id


def default_allocator(service: OrderService) -> TransactionIdAllocator:
    """Use the service's own atomic allocator when it has one."""
    if isinstance(service, TransactionIdAllocator):
        return service
    return SequenceAllocator(service)


__all__ = (
    "OrderService",
    "TransactionIdAllocator",
    "SequenceAllocator",
    "default_allocator",
)
