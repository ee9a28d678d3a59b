"""
Checkout — session state machine, finalize saga and idempotency guard.

    from posflow.checkout import CheckoutOrchestrator, SessionContext

    orchestrator = CheckoutOrchestrator(service)
    session = orchestrator.session(SessionContext(employee_id=7))
    session.add_lines(lines)
    session.begin_checkout()
    session.select_payment("Card")
    match await session.finalize():
        case Ok(receipt): ...
        case Error(e): ...
"""

from posflow.checkout._guard import (
    AttemptRecord,
    AttemptState,
    FinalizeStore,
    Guarded,
    MemoryFinalizeStore,
    StoreError,
    run_guarded,
)
from posflow.checkout._saga import (
    CompensationLog,
    FinalizePlan,
    ReadyWindow,
    run_finalize,
    void_open_transactions,
)
from posflow.checkout._service import (
    OrderService,
    SequenceAllocator,
    TransactionIdAllocator,
    default_allocator,
)
from posflow.checkout._session import CheckoutOrchestrator, CheckoutSession
from posflow.checkout._types import (
    CheckoutError,
    CheckoutReceipt,
    CheckoutState,
    CustomerInfo,
    DecrementKind,
    EmptyCart,
    FailedDecrement,
    FinalizeConflict,
    InvalidTransition,
    InventoryDecrement,
    MissingPaymentMethod,
    PartialInventoryFailure,
    SessionCancelled,
    SessionContext,
    TransactionLineItem,
    TransactionRecord,
    UnvoidedTransaction,
)

__all__ = (
    # Session
    "CheckoutOrchestrator",
    "CheckoutSession",
    "CheckoutState",
    "SessionContext",
    "CustomerInfo",
    # Records
    "TransactionRecord",
    "TransactionLineItem",
    "InventoryDecrement",
    "DecrementKind",
    "CheckoutReceipt",
    # Errors
    "CheckoutError",
    "MissingPaymentMethod",
    "EmptyCart",
    "InvalidTransition",
    "FinalizeConflict",
    "SessionCancelled",
    "UnvoidedTransaction",
    "FailedDecrement",
    "PartialInventoryFailure",
    # Services
    "OrderService",
    "TransactionIdAllocator",
    "SequenceAllocator",
    "default_allocator",
    # Saga
    "FinalizePlan",
    "ReadyWindow",
    "CompensationLog",
    "run_finalize",
    "void_open_transactions",
    # Guard
    "FinalizeStore",
    "MemoryFinalizeStore",
    "AttemptState",
    "AttemptRecord",
    "StoreError",
    "Guarded",
    "run_guarded",
)
