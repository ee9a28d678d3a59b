"""
Request / response models for the HTTP surface.

Requests convert with `to_domain()`, responses with `from_domain()`.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field, model_validator

from posflow._types import ServiceUnavailable
from posflow.cart import CartLine
from posflow.checkout import (
    CheckoutReceipt,
    CheckoutSession,
    CustomerInfo,
    EmptyCart,
    FinalizeConflict,
    InvalidTransition,
    MissingPaymentMethod,
    SessionCancelled,
    SessionContext,
    UnvoidedTransaction,
)
from posflow.combo import (
    ITEM_CATEGORIES,
    RULES,
    ComboDraft,
    ComboKind,
    IncompleteSelection,
    InvalidItem,
    draft,
)
from posflow.menu import Category, MenuItem, MenuSnapshot, SizeLabel, SizeTier
from posflow.pricing import display_amount

# ═══════════════════════════════════════════════════════════════════════════════
# Menu
# ═══════════════════════════════════════════════════════════════════════════════


class MenuItemOut(BaseModel):
    name: str
    category: Category
    is_premium: bool
    in_stock: bool

    @classmethod
    def from_domain(cls, item: MenuItem) -> "MenuItemOut":
        return cls(
            name=item.name,
            category=item.category,
            is_premium=item.is_premium,
            in_stock=item.in_stock,
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Sessions
# ═══════════════════════════════════════════════════════════════════════════════


class CreateSessionIn(BaseModel):
    employee_id: int
    terminal_id: str = "register-1"

    def to_domain(self) -> SessionContext:
        return SessionContext(employee_id=self.employee_id, terminal_id=self.terminal_id)


class CartLineOut(BaseModel):
    display_name: str
    unit_price: Decimal
    is_premium: bool
    transaction_entry: list[int]

    @classmethod
    def from_domain(cls, line: CartLine) -> "CartLineOut":
        return cls(
            display_name=line.display_name,
            unit_price=display_amount(line.unit_price),
            is_premium=line.is_premium,
            transaction_entry=list(line.transaction_entry),
        )


class SessionOut(BaseModel):
    session_id: str
    state: str
    lines: list[CartLineOut]
    total: Decimal
    payment_method: str | None = None
    customer_name: str | None = None

    @classmethod
    def from_domain(cls, session_id: str, session: CheckoutSession) -> "SessionOut":
        return cls(
            session_id=session_id,
            state=session.state.name,
            lines=[CartLineOut.from_domain(line) for line in session.cart.lines],
            total=display_amount(session.cart.total()),
            payment_method=session.payment_method,
            customer_name=session.customer.name,
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Selections
# ═══════════════════════════════════════════════════════════════════════════════


def _lookup(snapshot: MenuSnapshot, name: str, expected: tuple[Category, ...]) -> MenuItem:
    """
    Resolve a name to the snapshot's item.

    A name from another category is kept with that category so the
    validator reports the wrong slot; an unknown name is kept under the
    expected category so it reports the item as unknown.
    """
    for category in (*expected, *Category):
        if (item := snapshot.find(category, name)) is not None:
            return item
    return MenuItem(name=name, category=expected[0])


class SelectionIn(BaseModel):
    kind: ComboKind
    sides: list[str] = Field(default_factory=list)
    entrees: list[str] = Field(default_factory=list)
    items: list[str] = Field(default_factory=list)
    size: SizeLabel | None = None

    @model_validator(mode="after")
    def _check_counts(self) -> "SelectionIn":
        """Reject picks the draft would otherwise toggle off or replace."""
        for slot in (self.sides, self.entrees, self.items):
            if len(set(slot)) != len(slot):
                raise ValueError("Each item may be listed once")
        if self.kind == ComboKind.A_LA_CARTE and len(self.items) > 1:
            raise ValueError("A La Carte takes one item per selection")
        if (rule := RULES.get(self.kind)) is not None:
            if len(self.sides) > rule.sides or len(self.entrees) > rule.entrees:
                raise ValueError(
                    f"{self.kind.value} takes {rule.sides} side(s) and {rule.entrees} entree(s)"
                )
        return self

    def to_domain(self, snapshot: MenuSnapshot) -> ComboDraft:
        """Replay the selection as draft events."""
        d = draft(self.kind)
        for name in self.sides:
            d = d.toggle_side(_lookup(snapshot, name, (Category.SIDE,)))
        for name in self.entrees:
            d = d.toggle_entree(_lookup(snapshot, name, (Category.ENTREE,)))
        if self.items:
            expected = tuple(ITEM_CATEGORIES.get(self.kind, ())) or tuple(Category)
            for name in self.items:
                d = d.toggle_item(_lookup(snapshot, name, expected))
        if self.size is not None:
            d = d.choose_size(SizeTier(self.size))
        return d


class PaymentIn(BaseModel):
    method: str | None = None


class CustomerIn(BaseModel):
    name: str | None = None

    def to_domain(self) -> CustomerInfo:
        return CustomerInfo(self.name)


# ═══════════════════════════════════════════════════════════════════════════════
# Receipt
# ═══════════════════════════════════════════════════════════════════════════════


class FailedDecrementOut(BaseModel):
    kind: str
    target_id: int
    message: str


class ReceiptOut(BaseModel):
    transaction_id: int
    employee_id: int
    total: Decimal
    payment_method: str
    timestamp: str
    ready_time: datetime
    line_count: int
    customer_name: str | None = None
    inventory_failures: list[FailedDecrementOut] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, receipt: CheckoutReceipt) -> "ReceiptOut":
        record = receipt.record
        failed = receipt.inventory_failure.failed if receipt.inventory_failure else ()
        return cls(
            transaction_id=record.transaction_id,
            employee_id=record.employee_id,
            total=record.total,
            payment_method=record.payment_method,
            timestamp=record.timestamp,
            ready_time=receipt.ready_time,
            line_count=len(receipt.line_items),
            customer_name=receipt.customer.name,
            inventory_failures=[
                FailedDecrementOut(
                    kind=f.decrement.kind.name,
                    target_id=f.decrement.target_id,
                    message=str(f.error),
                )
                for f in failed
            ],
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Errors
# ═══════════════════════════════════════════════════════════════════════════════


class ErrorOut(BaseModel):
    code: str
    message: str

    @classmethod
    def from_domain(cls, error: Any) -> tuple[int, "ErrorOut"]:
        """HTTP status and body for a domain error."""
        match error:
            case IncompleteSelection(message=m):
                return 422, cls(code="incomplete_selection", message=m)
            case InvalidItem(name=n, reason=r):
                return 422, cls(code="invalid_item", message=f"{n}: {r}")
            case EmptyCart(message=m):
                return 422, cls(code="empty_cart", message=m)
            case MissingPaymentMethod(message=m):
                return 422, cls(code="missing_payment_method", message=m)
            case InvalidTransition():
                return 409, cls(code="invalid_transition", message=error.message)
            case FinalizeConflict():
                return 409, cls(code="finalize_conflict", message="Finalize already in progress")
            case UnvoidedTransaction():
                return 503, cls(code="unvoided_transaction", message=error.message)
            case SessionCancelled():
                return 409, cls(code="session_cancelled", message="Session was cancelled")
            case ServiceUnavailable():
                return 503, cls(code="service_unavailable", message=str(error))
            case _:
                return 500, cls(code="internal_error", message=repr(error))


__all__ = (
    "MenuItemOut",
    "CreateSessionIn",
    "CartLineOut",
    "SessionOut",
    "SelectionIn",
    "PaymentIn",
    "CustomerIn",
    "FailedDecrementOut",
    "ReceiptOut",
    "ErrorOut",
)
