"""
Checkout types — states, records, receipts and errors.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum, auto
from typing import Any

from posflow._types import ServiceUnavailable
from posflow.cart import TransactionEntry

# ═══════════════════════════════════════════════════════════════════════════════
# State — Checkout Lifecycle
# ═══════════════════════════════════════════════════════════════════════════════


class CheckoutState(Enum):
    """
    Lifecycle of one session.

        BUILDING → AWAITING_PAYMENT → AWAITING_CUSTOMER_INFO → SUBMITTING → COMPLETE

    Every state but COMPLETE can go back to BUILDING by cancellation.
    """

    BUILDING = auto()
    AWAITING_PAYMENT = auto()
    AWAITING_CUSTOMER_INFO = auto()
    SUBMITTING = auto()
    COMPLETE = auto()


# ═══════════════════════════════════════════════════════════════════════════════
# Session inputs
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class SessionContext:
    """Who is ringing the order up. Passed in, never read from ambient state."""

    employee_id: int
    terminal_id: str = "register-1"


@dataclass(frozen=True, slots=True)
class CustomerInfo:
    name: str | None = None


# ═══════════════════════════════════════════════════════════════════════════════
# Persisted records
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class TransactionRecord:
    transaction_id: int
    employee_id: int
    total: Decimal
    timestamp: str  # ISO 8601
    payment_method: str


@dataclass(frozen=True, slots=True)
class TransactionLineItem:
    """A cart line's transaction entry with the transaction id prepended."""

    transaction_id: int
    line_number: int
    item_id: int
    food_ids: tuple[int, int, int, int]

    @classmethod
    def from_entry(
        cls, transaction_id: int, line_number: int, entry: TransactionEntry
    ) -> TransactionLineItem:
        return cls(
            transaction_id=transaction_id,
            line_number=line_number,
            item_id=entry.base_item_id,
            food_ids=entry.food_ids,
        )


class DecrementKind(Enum):
    FOOD = auto()
    ITEM_TYPE = auto()


@dataclass(frozen=True, slots=True)
class InventoryDecrement:
    """One imperative decrement call. Never persisted by the core."""

    kind: DecrementKind
    target_id: int

    @classmethod
    def by_food(cls, food_id: int) -> InventoryDecrement:
        return cls(DecrementKind.FOOD, food_id)

    @classmethod
    def by_item_type(cls, item_id: int) -> InventoryDecrement:
        return cls(DecrementKind.ITEM_TYPE, item_id)

    @classmethod
    def for_line_item(cls, item: TransactionLineItem) -> tuple[InventoryDecrement, ...]:
        """One per nonzero food id, then one for the item type."""
        foods = tuple(cls.by_food(f) for f in item.food_ids if f != 0)
        return (*foods, cls.by_item_type(item.item_id))


# ═══════════════════════════════════════════════════════════════════════════════
# Errors
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class MissingPaymentMethod:
    message: str = "Select a payment method"


@dataclass(frozen=True, slots=True)
class EmptyCart:
    message: str = "Add at least one item before checkout"


@dataclass(frozen=True, slots=True)
class InvalidTransition:
    state: CheckoutState
    action: str

    @property
    def message(self) -> str:
        return f"Cannot {self.action} while {self.state.name}"


@dataclass(frozen=True, slots=True)
class FinalizeConflict:
    """Another finalize with the same attempt key is still running."""

    key: str


@dataclass(frozen=True, slots=True)
class SessionCancelled:
    """The session was cancelled while finalize was in flight."""

    transaction_id: int | None


@dataclass(frozen=True, slots=True)
class UnvoidedTransaction:
    """
    A written transaction could not be voided after a failed finalize.

    The session refuses to submit again until the void goes through.
    """

    transaction_id: int
    cause: CheckoutError

    @property
    def message(self) -> str:
        return f"Transaction {self.transaction_id} is still open; retry to void it"


@dataclass(frozen=True, slots=True)
class FailedDecrement:
    decrement: InventoryDecrement
    error: ServiceUnavailable


@dataclass(frozen=True, slots=True)
class PartialInventoryFailure:
    """
    Some decrements failed after the transaction was persisted.

    The order stays complete; this is reported, not rolled back.
    """

    transaction_id: int
    failed: tuple[FailedDecrement, ...]


type CheckoutError = (
    MissingPaymentMethod
    | EmptyCart
    | InvalidTransition
    | FinalizeConflict
    | SessionCancelled
    | UnvoidedTransaction
    | ServiceUnavailable
)


# ═══════════════════════════════════════════════════════════════════════════════
# Receipt
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CheckoutReceipt:
    record: TransactionRecord
    line_items: tuple[TransactionLineItem, ...]
    ready_time: datetime
    customer: CustomerInfo = CustomerInfo()
    inventory_failure: PartialInventoryFailure | None = None

    @property
    def transaction_id(self) -> int:
        return self.record.transaction_id

    def to_dict(self) -> dict[str, Any]:
        """JSON-safe form, used by durable finalize stores."""
        failure = self.inventory_failure
        return {
            "record": {
                "transaction_id": self.record.transaction_id,
                "employee_id": self.record.employee_id,
                "total": str(self.record.total),
                "timestamp": self.record.timestamp,
                "payment_method": self.record.payment_method,
            },
            "line_items": [
                [li.line_number, li.item_id, *li.food_ids] for li in self.line_items
            ],
            "ready_time": self.ready_time.isoformat(),
            "customer": self.customer.name,
            "inventory_failure": None if failure is None else [
                [f.decrement.kind.name, f.decrement.target_id, f.error.operation, f.error.message]
                for f in failure.failed
            ],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CheckoutReceipt:
        rec = data["record"]
        record = TransactionRecord(
            transaction_id=rec["transaction_id"],
            employee_id=rec["employee_id"],
            total=Decimal(rec["total"]),
            timestamp=rec["timestamp"],
            payment_method=rec["payment_method"],
        )
        tid = record.transaction_id
        line_items = tuple(
            TransactionLineItem(tid, row[0], row[1], (row[2], row[3], row[4], row[5]))
            for row in data["line_items"]
        )
        failure = None
        if data.get("inventory_failure") is not None:
            failure = PartialInventoryFailure(
                transaction_id=tid,
                failed=tuple(
                    FailedDecrement(
                        InventoryDecrement(DecrementKind[kind], target),
                        ServiceUnavailable(operation, message),
                    )
                    for kind, target, operation, message in data["inventory_failure"]
                ),
            )
        return cls(
            record=record,
            line_items=line_items,
            ready_time=datetime.fromisoformat(data["ready_time"]),
            customer=CustomerInfo(data.get("customer")),
            inventory_failure=failure,
        )


__all__ = (
    "CheckoutState",
    "SessionContext",
    "CustomerInfo",
    "TransactionRecord",
    "TransactionLineItem",
    "DecrementKind",
    "InventoryDecrement",
    "MissingPaymentMethod",
    "EmptyCart",
    "InvalidTransition",
    "FinalizeConflict",
    "SessionCancelled",
    "UnvoidedTransaction",
    "FailedDecrement",
    "PartialInventoryFailure",
    "CheckoutError",
    "CheckoutReceipt",
)
