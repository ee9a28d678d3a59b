"""
Pricing — base price + premium surcharge + size tier.

    from posflow import pricing as P

    book = await P.load_price_book(catalog)   # Result[PriceBook, ServiceUnavailable]
    amount = P.price(selection, book)
"""

from posflow.pricing._tables import (
    PricingTables,
    PriceBook,
    COMPOSITES,
    load_price_book,
)
from posflow.pricing._engine import price, display_amount, format_money, CENT

__all__ = (
    "PricingTables",
    "PriceBook",
    "COMPOSITES",
    "load_price_book",
    "price",
    "display_amount",
    "format_money",
    "CENT",
)
