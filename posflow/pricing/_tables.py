"""
Pricing tables and the locked price book.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType

from combinators import parallel
from kungfu import LazyCoroResult

from posflow._types import ServiceUnavailable
from posflow.config import Settings
from posflow.lift import service_call
from posflow.menu import Category, MenuCatalog, SizeLabel

# ═══════════════════════════════════════════════════════════════════════════════
# Surcharge tables
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class PricingTables:
    """
    Premium pricing.

    `premium_surcharge` is added per premium entree on plate-style combos;
    `premium_sizes` replaces the size price of a premium à la carte entree.
    """

    premium_surcharge: Decimal = Decimal("1.50")
    premium_sizes: Mapping[SizeLabel, Decimal] = field(
        default_factory=lambda: MappingProxyType({
            SizeLabel.SMALL: Decimal("6.70"),
            SizeLabel.MEDIUM: Decimal("11.50"),
            SizeLabel.LARGE: Decimal("15.70"),
        })
    )

    @classmethod
    def from_settings(cls, settings: Settings) -> PricingTables:
        return cls(
            premium_surcharge=settings.premium_surcharge,
            premium_sizes=MappingProxyType({
                SizeLabel.SMALL: settings.premium_small,
                SizeLabel.MEDIUM: settings.premium_medium,
                SizeLabel.LARGE: settings.premium_large,
            }),
        )


# ═══════════════════════════════════════════════════════════════════════════════
# PriceBook — snapshot of composite prices
# ═══════════════════════════════════════════════════════════════════════════════

FLAT_COMPOSITES: tuple[str, ...] = ("Plate", "Bigger Plate", "Bowl", "Appetizer")
SIZED_COMPOSITES: tuple[str, ...] = tuple(
    f"{size.value} {category.value}"
    for category in (Category.DRINK, Category.SIDE, Category.ENTREE)
    for size in SizeLabel
)
COMPOSITES: tuple[str, ...] = FLAT_COMPOSITES + SIZED_COMPOSITES


@dataclass(frozen=True, slots=True)
class PriceBook:
    """
    Prices as they were when the book was loaded.

    Lines priced from a book keep that price even if the catalog
    changes afterwards.
    """

    prices: Mapping[str, Decimal]
    tables: PricingTables = field(default_factory=PricingTables)

    def base(self, composite_name: str) -> Decimal:
        try:
            return self.prices[composite_name]
        except KeyError:
            raise KeyError(f"No price for {composite_name!r} in price book") from None


def load_price_book(
    catalog: MenuCatalog,
    tables: PricingTables | None = None,
    names: Iterable[str] | None = None,
) -> LazyCoroResult[PriceBook, ServiceUnavailable]:
    """
    Fetch composite prices concurrently.

    `names` narrows the book to the composites a caller is about to
    price; a composite the catalog lacks then only fails the orders
    that need it. Defaults to every composite.
    """
    book_tables = tables if tables is not None else PricingTables()
    wanted = tuple(dict.fromkeys(names)) if names is not None else COMPOSITES

    def build(results: list[Decimal]) -> PriceBook:
        prices = {name: Decimal(str(p)) for name, p in zip(wanted, results)}
        return PriceBook(MappingProxyType(prices), book_tables)

    return parallel(
        *[
            service_call("get_price", lambda n=name: catalog.get_price(n))
            for name in wanted
        ]
    ).map(build)


__all__ = (
    "PricingTables",
    "PriceBook",
    "COMPOSITES",
    "load_price_book",
)
