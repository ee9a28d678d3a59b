"""
posflow — point-of-sale ordering core for a combo-style restaurant.

    from posflow import combo as K     # Combo drafts and validation
    from posflow import pricing as P   # Price book and pricing engine
    from posflow import cart as CA     # Cart lines and totals
    from posflow import checkout as CO # Session state machine, finalize saga

Backends (`posflow.backends`) and the HTTP surface (`posflow.http`) are
imported on demand.
"""

from posflow import menu
from posflow import combo
from posflow import pricing
from posflow import cart
from posflow import checkout
from posflow import lift
from posflow._types import (
    Lazy,
    Pure,
    LCR,
    ServiceUnavailable,
)

__version__ = "0.1.0"

__all__ = (
    "menu",
    "combo",
    "pricing",
    "cart",
    "checkout",
    "lift",
    "Lazy",
    "Pure",
    "LCR",
    "ServiceUnavailable",
)
