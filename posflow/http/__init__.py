"""
HTTP surface — FastAPI app over catalog + checkout.

    from posflow.http import create_app
"""

from posflow.http._app import ApiError, SessionRegistry, create_app, demo_app
from posflow.http._schemas import (
    CartLineOut,
    CreateSessionIn,
    CustomerIn,
    ErrorOut,
    FailedDecrementOut,
    MenuItemOut,
    PaymentIn,
    ReceiptOut,
    SelectionIn,
    SessionOut,
)

__all__ = (
    "create_app",
    "demo_app",
    "ApiError",
    "SessionRegistry",
    # Schemas
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
