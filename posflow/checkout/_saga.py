"""
Finalize saga — allocate, persist, decrement, with compensation.

    allocate id ─► header ─► line 1..n ─► commit point ─► decrements ─► receipt
                     │           │
                     └─ void ◄───┘   (on failure or cancellation before commit)

Header and line items are one logical batch: a failure there voids the
transaction and the cart stays intact for a retry. A void that keeps
failing leaves the id open; the session voids it before the next
attempt writes anything. Past the commit point the order is placed;
inventory decrements are best effort and their failures are reported
as PartialInventoryFailure.
"""

from __future__ import annotations

import random
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal

from kungfu import Error, LazyCoroResult, Ok, Result
from loguru import logger

from posflow._types import ServiceUnavailable
from posflow.cart import CartLine
from posflow.checkout._service import OrderService, TransactionIdAllocator
from posflow.checkout._types import (
    CheckoutError,
    CheckoutReceipt,
    CustomerInfo,
    DecrementKind,
    FailedDecrement,
    InventoryDecrement,
    PartialInventoryFailure,
    SessionCancelled,
    SessionContext,
    TransactionLineItem,
    TransactionRecord,
    UnvoidedTransaction,
)
from posflow.lift import RetryPolicy, retried_call
from posflow.pricing import display_amount

# ═══════════════════════════════════════════════════════════════════════════════
# Compensation log
# ═══════════════════════════════════════════════════════════════════════════════

type Compensator = Callable[[], Awaitable[Result[None, ServiceUnavailable]]]


@dataclass(slots=True)
class CompensationLog:
    """Compensators recorded by successful steps, run in reverse."""

    entries: list[tuple[str, Compensator]] = field(default_factory=list)

    def record(self, name: str, compensate: Compensator) -> None:
        self.entries.append((name, compensate))

    async def rollback(self) -> tuple[int, int]:
        """Run compensators in reverse. Returns (run, failed)."""
        comp_run = 0
        comp_failed = 0
        for name, comp in reversed(self.entries):
            match await comp():
                case Ok(_):
                    comp_run += 1
                case Error(e):
                    comp_failed += 1
                    logger.error("Compensation {} failed: {}", name, e.message)
        self.entries.clear()
        return comp_run, comp_failed


# ═══════════════════════════════════════════════════════════════════════════════
# Plan — everything one finalize needs
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class ReadyWindow:
    min_minutes: int = 5
    max_minutes: int = 10

    def ready_time(self, now: datetime, rng: random.Random) -> datetime:
        seconds = rng.uniform(self.min_minutes * 60, self.max_minutes * 60)
        return now + timedelta(seconds=seconds)


@dataclass(frozen=True, slots=True)
class FinalizePlan:
    context: SessionContext
    lines: tuple[CartLine, ...]
    payment_method: str
    customer: CustomerInfo
    service: OrderService
    allocator: TransactionIdAllocator
    retry: RetryPolicy
    window: ReadyWindow
    clock: Callable[[], datetime]
    rng: random.Random
    is_current: Callable[[], bool]
    commit: Callable[[], None]


def _call[T](
    plan: FinalizePlan,
    operation: str,
    fn: Callable[[], Awaitable[T]],
) -> LazyCoroResult[T, ServiceUnavailable]:
    return retried_call(operation, fn, plan.retry)


# ═══════════════════════════════════════════════════════════════════════════════
# Steps
# ═══════════════════════════════════════════════════════════════════════════════


async def _persist_lines(
    plan: FinalizePlan,
    transaction_id: int,
) -> Result[tuple[TransactionLineItem, ...], CheckoutError]:
    items: list[TransactionLineItem] = []
    for number, line in enumerate(plan.lines, start=1):
        if not plan.is_current():
            return Error(SessionCancelled(transaction_id))
        item = TransactionLineItem.from_entry(transaction_id, number, line.transaction_entry)
        match await _call(
            plan,
            "create_transaction_line_item",
            lambda i=item: plan.service.create_transaction_line_item(i),
        ):
            case Ok(_):
                items.append(item)
            case Error(e):
                return Error(e)
    return Ok(tuple(items))


def _decrement_call(
    plan: FinalizePlan,
    decrement: InventoryDecrement,
) -> LazyCoroResult[None, ServiceUnavailable]:
    if decrement.kind == DecrementKind.FOOD:
        return _call(
            plan,
            "decrement_inventory_by_food",
            lambda: plan.service.decrement_inventory_by_food(decrement.target_id),
        )
    return _call(
        plan,
        "decrement_inventory_by_item_type",
        lambda: plan.service.decrement_inventory_by_item_type(decrement.target_id),
    )


async def _decrement_inventory(
    plan: FinalizePlan,
    transaction_id: int,
    items: Sequence[TransactionLineItem],
) -> PartialInventoryFailure | None:
    """Issue every decrement independently; collect the failures."""
    failed: list[FailedDecrement] = []
    for item in items:
        for decrement in InventoryDecrement.for_line_item(item):
            match await _decrement_call(plan, decrement):
                case Ok(_):
                    pass
                case Error(e):
                    failed.append(FailedDecrement(decrement, e))
    if not failed:
        return None
    return PartialInventoryFailure(transaction_id, tuple(failed))


# ═══════════════════════════════════════════════════════════════════════════════
# run_finalize()
# ═══════════════════════════════════════════════════════════════════════════════


async def run_finalize(plan: FinalizePlan) -> Result[CheckoutReceipt, CheckoutError]:
    """
    Execute one finalize.

    Ordering inside the session is strict: id allocation, header, every
    line item, then inventory. Between persistence steps the session is
    checked; a cancelled session stops, voids what was written, and
    returns SessionCancelled. If the void itself keeps failing the
    result is UnvoidedTransaction instead.
    """
    log = logger.bind(employee_id=plan.context.employee_id, terminal=plan.context.terminal_id)
    compensations = CompensationLog()
    written: int | None = None

    async def abort(error: CheckoutError) -> Result[CheckoutReceipt, CheckoutError]:
        comp_run, comp_failed = await compensations.rollback()
        log.warning(
            "Finalize aborted: {!r} (compensations run={}, failed={})",
            error, comp_run, comp_failed,
        )
        if comp_failed and written is not None:
            return Error(UnvoidedTransaction(written, error))
        return Error(error)

    # 1. Transaction id
    match await _call(plan, "allocate_transaction_id", plan.allocator.allocate_transaction_id):
        case Ok(transaction_id):
            pass
        case Error(e):
            return await abort(e)
    log = log.bind(transaction_id=transaction_id)

    if not plan.is_current():
        return await abort(SessionCancelled(None))

    # 2. Header
    total = sum((line.unit_price for line in plan.lines), Decimal(0))
    record = TransactionRecord(
        transaction_id=transaction_id,
        employee_id=plan.context.employee_id,
        total=display_amount(total),
        timestamp=plan.clock().isoformat(),
        payment_method=plan.payment_method,
    )
    match await _call(plan, "create_transaction", lambda: plan.service.create_transaction(record)):
        case Ok(_):
            written = transaction_id
            compensations.record(
                "void_transaction",
                lambda: _call(
                    plan,
                    "void_transaction",
                    lambda: plan.service.void_transaction(transaction_id),
                ),
            )
        case Error(e):
            return await abort(e)

    # 3. Line items
    match await _persist_lines(plan, transaction_id):
        case Ok(items):
            pass
        case Error(e):
            return await abort(e)

    # Commit point: check and mark with no await in between
    if not plan.is_current():
        return await abort(SessionCancelled(transaction_id))
    plan.commit()
    log.info("Transaction persisted with {} line(s), total {}", len(items), record.total)

    # 4. Inventory
    failure = await _decrement_inventory(plan, transaction_id, items)
    if failure is not None:
        log.bind(failed=[(f.decrement.kind.name, f.decrement.target_id) for f in failure.failed]).warning(
            "{} inventory decrement(s) failed; order stays complete", len(failure.failed)
        )

    # 5. Ready time
    ready = plan.window.ready_time(plan.clock(), plan.rng)

    return Ok(CheckoutReceipt(
        record=record,
        line_items=items,
        ready_time=ready,
        customer=plan.customer,
        inventory_failure=failure,
    ))


# ═══════════════════════════════════════════════════════════════════════════════
# void_open_transactions() — settle voids left over from earlier attempts
# ═══════════════════════════════════════════════════════════════════════════════


async def void_open_transactions(
    service: OrderService,
    open_ids: list[int],
    policy: RetryPolicy,
) -> Result[None, UnvoidedTransaction]:
    """
    Void every id in `open_ids`, oldest first.

    Voided ids are removed from the list. Stops at the first id that
    still cannot be voided.
    """
    while open_ids:
        transaction_id = open_ids[0]
        match await retried_call(
            "void_transaction",
            lambda: service.void_transaction(transaction_id),
            policy,
        ):
            case Ok(_):
                open_ids.pop(0)
                logger.info("Voided open transaction {}", transaction_id)
            case Error(e):
                return Error(UnvoidedTransaction(transaction_id, e))
    return Ok(None)


__all__ = (
    "CompensationLog",
    "ReadyWindow",
    "FinalizePlan",
    "run_finalize",
    "void_open_transactions",
)
