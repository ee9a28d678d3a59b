"""
Cart — priced lines awaiting checkout.

    from posflow import cart as CA

    cart = CA.Cart()
    match await CA.build_lines(selections, book, catalog):
        case Ok(lines):
            cart.add_line(lines)
"""

from posflow.cart._types import FOOD_SLOTS, TransactionEntry, CartLine
from posflow.cart._cart import Cart
from posflow.cart._lines import base_item_name, build_line, build_lines

__all__ = (
    "FOOD_SLOTS",
    "TransactionEntry",
    "CartLine",
    "Cart",
    "base_item_name",
    "build_line",
    "build_lines",
)
