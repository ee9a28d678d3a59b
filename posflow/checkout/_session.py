"""
Checkout session — the per-register state machine.

    BUILDING ──begin_checkout──► AWAITING_PAYMENT ──select_payment──►
    AWAITING_CUSTOMER_INFO ──finalize──► SUBMITTING ──► COMPLETE

`cancel()` returns to BUILDING with the cart kept, `abandon()` with the
cart cleared. Actions in the wrong state return InvalidTransition.
"""

from __future__ import annotations

import random
import uuid
from collections.abc import Callable, Sequence
from datetime import UTC, datetime, timedelta

from kungfu import Error, Ok, Result
from loguru import logger

from posflow.cart import Cart, CartLine
from posflow.checkout._guard import FinalizeStore, MemoryFinalizeStore, run_guarded
from posflow.checkout._saga import (
    FinalizePlan,
    ReadyWindow,
    run_finalize,
    void_open_transactions,
)
from posflow.checkout._service import OrderService, TransactionIdAllocator, default_allocator
from posflow.checkout._types import (
    CheckoutError,
    CheckoutReceipt,
    CheckoutState,
    CustomerInfo,
    EmptyCart,
    FinalizeConflict,
    InvalidTransition,
    MissingPaymentMethod,
    SessionContext,
    UnvoidedTransaction,
)
from posflow.config import Settings, get_settings
from posflow.lift import RetryPolicy


def _utcnow() -> datetime:
    return datetime.now(UTC)


# ═══════════════════════════════════════════════════════════════════════════════
# Orchestrator — shared collaborators for every session
# ═══════════════════════════════════════════════════════════════════════════════


class CheckoutOrchestrator:
    """
    Holds the external services and policies; hands out sessions.

    Sessions share only what lives here: the order service, the id
    allocator and the finalize store.

    Example:
        orchestrator = CheckoutOrchestrator(service)
        session = orchestrator.session(SessionContext(employee_id=7))
    """

    def __init__(
        self,
        service: OrderService,
        *,
        allocator: TransactionIdAllocator | None = None,
        store: FinalizeStore | None = None,
        retry_policy: RetryPolicy = RetryPolicy(),
        ready_window: ReadyWindow = ReadyWindow(),
        finalize_ttl: timedelta | None = timedelta(days=1),
        clock: Callable[[], datetime] = _utcnow,
        rng: random.Random | None = None,
    ) -> None:
        self.service = service
        self.allocator = allocator if allocator is not None else default_allocator(service)
        self.store = store if store is not None else MemoryFinalizeStore()
        self.retry_policy = retry_policy
        self.ready_window = ready_window
        self.finalize_ttl = finalize_ttl
        self.clock = clock
        self.rng = rng if rng is not None else random.Random()

    @classmethod
    def from_settings(
        cls,
        service: OrderService,
        settings: Settings | None = None,
        **overrides,
    ) -> CheckoutOrchestrator:
        settings = settings or get_settings()
        options = {
            "retry_policy": RetryPolicy(
                settings.service_retry_times, settings.service_retry_delay
            ),
            "ready_window": ReadyWindow(
                settings.ready_min_minutes, settings.ready_max_minutes
            ),
            "finalize_ttl": timedelta(seconds=settings.finalize_ttl_seconds),
        }
        options.update(overrides)
        return cls(service, **options)

    def session(self, context: SessionContext) -> CheckoutSession:
        return CheckoutSession(self, context)


# ═══════════════════════════════════════════════════════════════════════════════
# Session
# ═══════════════════════════════════════════════════════════════════════════════


class CheckoutSession:
    def __init__(self, orchestrator: CheckoutOrchestrator, context: SessionContext) -> None:
        self._orchestrator = orchestrator
        self.context = context
        self.cart = Cart()
        self._state = CheckoutState.BUILDING
        self._payment_method: str | None = None
        self._customer = CustomerInfo()
        self._attempt_key: str | None = None
        self._receipt: CheckoutReceipt | None = None
        # Bumped by cancel(); a finalize started under an older epoch is stale
        self._epoch = 0
        # Epoch whose finalize passed the commit point
        self._committed_epoch: int | None = None
        # Written but not yet voided by a failed attempt
        self._open_transactions: list[int] = []

    # ─── Introspection ───────────────────────────────────────────────────────

    @property
    def state(self) -> CheckoutState:
        return self._state

    @property
    def payment_method(self) -> str | None:
        return self._payment_method

    @property
    def customer(self) -> CustomerInfo:
        return self._customer

    @property
    def attempt_key(self) -> str | None:
        return self._attempt_key

    @property
    def receipt(self) -> CheckoutReceipt | None:
        return self._receipt

    @property
    def open_transactions(self) -> tuple[int, ...]:
        return tuple(self._open_transactions)

    @property
    def can_finalize(self) -> bool:
        return (
            self._state == CheckoutState.AWAITING_CUSTOMER_INFO
            and bool(self._payment_method)
            and not self.cart.is_empty
        )

    def _invalid[T](self, action: str) -> Result[T, CheckoutError]:
        return Error(InvalidTransition(self._state, action))

    # ─── Cart editing ────────────────────────────────────────────────────────

    def add_lines(self, lines: CartLine | Sequence[CartLine]) -> Result[int, CheckoutError]:
        """Append lines; returns the new line count."""
        if self._state != CheckoutState.BUILDING:
            return self._invalid("add items")
        self.cart.add_line(lines)
        return Ok(len(self.cart))

    def remove_line(self, index: int) -> Result[CartLine, CheckoutError]:
        """Remove by index. An out-of-range index raises IndexError."""
        if self._state != CheckoutState.BUILDING:
            return self._invalid("remove items")
        return Ok(self.cart.remove_line(index))

    # ─── Transitions ─────────────────────────────────────────────────────────

    def begin_checkout(self) -> Result[CheckoutState, CheckoutError]:
        if self._state != CheckoutState.BUILDING:
            return self._invalid("begin checkout")
        if self.cart.is_empty:
            return Error(EmptyCart())
        self._attempt_key = uuid.uuid4().hex
        self._state = CheckoutState.AWAITING_PAYMENT
        return Ok(self._state)

    def select_payment(self, method: str | None) -> Result[CheckoutState, CheckoutError]:
        if self._state not in (
            CheckoutState.AWAITING_PAYMENT,
            CheckoutState.AWAITING_CUSTOMER_INFO,
        ):
            return self._invalid("select payment")
        if method is None or not method.strip():
            return Error(MissingPaymentMethod())
        self._payment_method = method.strip()
        self._state = CheckoutState.AWAITING_CUSTOMER_INFO
        return Ok(self._state)

    def provide_customer(self, info: CustomerInfo) -> Result[CheckoutState, CheckoutError]:
        if self._state != CheckoutState.AWAITING_CUSTOMER_INFO:
            return self._invalid("record customer")
        name = info.name.strip() if info.name else None
        self._customer = CustomerInfo(name or None)
        return Ok(self._state)

    def cancel(self) -> Result[CheckoutState, CheckoutError]:
        """Back to BUILDING, cart kept. Stops an uncommitted finalize."""
        if self._state == CheckoutState.COMPLETE:
            return self._invalid("cancel")
        if self._state == CheckoutState.SUBMITTING and self._committed_epoch == self._epoch:
            return self._invalid("cancel")
        if self._state == CheckoutState.SUBMITTING:
            logger.bind(attempt_key=self._attempt_key).info("Cancelling in-flight finalize")
        self._epoch += 1
        self._state = CheckoutState.BUILDING
        self._payment_method = None
        self._customer = CustomerInfo()
        self._attempt_key = None
        return Ok(self._state)

    def abandon(self) -> Result[CheckoutState, CheckoutError]:
        """Like cancel, but the cart is cleared."""
        match self.cancel():
            case Ok(state):
                self.cart.clear()
                return Ok(state)
            case Error(e):
                return Error(e)

    # ─── Finalize ────────────────────────────────────────────────────────────

    async def finalize(self) -> Result[CheckoutReceipt, CheckoutError]:
        """
        Persist the order and complete the session.

        Repeats return the receipt of the first success. A failure before
        the order is committed leaves the session in
        AWAITING_CUSTOMER_INFO with the cart intact. Transactions left open
        by an earlier attempt are voided first; while one cannot be voided
        nothing new is written.
        """
        match self._state:
            case CheckoutState.COMPLETE if self._receipt is not None:
                return Ok(self._receipt)
            case CheckoutState.SUBMITTING:
                return Error(FinalizeConflict(self._attempt_key or ""))
            case CheckoutState.BUILDING if self.cart.is_empty:
                return Error(EmptyCart())
            case CheckoutState.BUILDING | CheckoutState.AWAITING_PAYMENT:
                return Error(MissingPaymentMethod())
            case CheckoutState.AWAITING_CUSTOMER_INFO:
                pass
            case _:
                return self._invalid("finalize")

        if self.cart.is_empty:
            return Error(EmptyCart())
        if not self._payment_method:
            return Error(MissingPaymentMethod())

        key = self._attempt_key or uuid.uuid4().hex
        self._attempt_key = key
        epoch = self._epoch
        self._committed_epoch = None
        self._state = CheckoutState.SUBMITTING
        orchestrator = self._orchestrator

        def commit() -> None:
            self._committed_epoch = epoch

        plan = FinalizePlan(
            context=self.context,
            lines=self.cart.lines,
            payment_method=self._payment_method,
            customer=self._customer,
            service=orchestrator.service,
            allocator=orchestrator.allocator,
            retry=orchestrator.retry_policy,
            window=orchestrator.ready_window,
            clock=orchestrator.clock,
            rng=orchestrator.rng,
            is_current=lambda: self._epoch == epoch,
            commit=commit,
        )

        async def attempt() -> Result[CheckoutReceipt, CheckoutError]:
            match await void_open_transactions(
                orchestrator.service, self._open_transactions, orchestrator.retry_policy
            ):
                case Ok(_):
                    return await run_finalize(plan)
                case Error(e):
                    return Error(e)

        try:
            result = await run_guarded(key, orchestrator.store, orchestrator.finalize_ttl, attempt)
        except BaseException:
            if self._epoch == epoch:
                self._state = CheckoutState.AWAITING_CUSTOMER_INFO
            raise

        match result:
            case Ok(guarded) if self._epoch != epoch:
                return Ok(guarded.receipt)
            case Ok(guarded):
                self._receipt = guarded.receipt
                self._state = CheckoutState.COMPLETE
                self.cart.clear()
                logger.bind(
                    transaction_id=guarded.receipt.transaction_id,
                    employee_id=self.context.employee_id,
                ).info("Order complete, ready at {}", guarded.receipt.ready_time.isoformat())
                return Ok(guarded.receipt)
            case Error(e):
                if isinstance(e, UnvoidedTransaction) and e.transaction_id not in self._open_transactions:
                    self._open_transactions.append(e.transaction_id)
                if self._epoch == epoch:
                    self._state = CheckoutState.AWAITING_CUSTOMER_INFO
                return Error(e)


__all__ = ("CheckoutOrchestrator", "CheckoutSession")
