"""Pricing engine: combo base prices, premium surcharges and size tiers."""

from decimal import Decimal

import pytest

from posflow.combo import ComboKind, ComposedSelection
from posflow.config import Settings
from posflow.menu import LARGE, MEDIUM, SMALL, Category, SizeLabel, SizeTier
from posflow.pricing import COMPOSITES, PricingTables, display_amount, format_money, load_price_book, price

S = Category.SIDE
E = Category.ENTREE


def plate(item, kind, *entrees):
    return ComposedSelection(
        kind=kind,
        sides=(item(S, "Chow Mein"),),
        entrees=tuple(item(E, n) for n in entrees),
    )


class TestPlatePricing:
    """Premium entrees add a flat surcharge on plate-style combos."""

    def test_plate_without_premium_is_base(self, item, book):
        sel = plate(item, ComboKind.PLATE, "Orange Chicken", "Beijing Beef")

        assert price(sel, book) == Decimal("9.80")

    def test_plate_with_one_premium(self, item, book):
        sel = plate(item, ComboKind.PLATE, "Orange Chicken", "Honey Walnut Shrimp")

        assert price(sel, book) == Decimal("9.80") + Decimal("1.50")

    def test_plate_with_two_premiums(self, item, book):
        sel = plate(item, ComboKind.PLATE, "Black Pepper Angus Steak", "Honey Walnut Shrimp")

        assert price(sel, book) == Decimal("12.80")

    def test_bigger_plate_surcharge(self, item, book):
        sel = plate(
            item, ComboKind.BIGGER_PLATE,
            "Orange Chicken", "Black Pepper Angus Steak", "Honey Walnut Shrimp",
        )

        assert price(sel, book) == Decimal("11.30") + Decimal("3.00")

    def test_bowl_with_premium(self, item, book):
        sel = plate(item, ComboKind.BOWL, "Honey Walnut Shrimp")

        assert price(sel, book) == Decimal("9.80")

    def test_surcharge_comes_from_tables(self, item, catalog, run, ok):
        tables = PricingTables(premium_surcharge=Decimal("2.00"))
        book = ok(run(load_price_book(catalog, tables)))
        sel = plate(item, ComboKind.PLATE, "Orange Chicken", "Honey Walnut Shrimp")

        assert price(sel, book) == Decimal("11.80")


class TestSizedPricing:
    """À la carte and drinks are priced by size tier."""

    def test_premium_a_la_carte_replaces_size_price(self, item, book):
        sel = ComposedSelection(ComboKind.A_LA_CARTE, item=item(E, "Honey Walnut Shrimp"), size=LARGE)

        assert price(sel, book) == Decimal("15.70")

    @pytest.mark.parametrize(
        ("size", "expected"),
        [(SMALL, "6.70"), (MEDIUM, "11.50"), (LARGE, "15.70")],
    )
    def test_premium_size_table(self, item, book, size, expected):
        sel = ComposedSelection(ComboKind.A_LA_CARTE, item=item(E, "Black Pepper Angus Steak"), size=size)

        assert price(sel, book) == Decimal(expected)

    def test_regular_a_la_carte_uses_size_price(self, item, book):
        entree = ComposedSelection(ComboKind.A_LA_CARTE, item=item(E, "Orange Chicken"), size=MEDIUM)
        side = ComposedSelection(ComboKind.A_LA_CARTE, item=item(S, "Fried Rice"), size=SMALL)

        assert price(entree, book) == Decimal("8.50")
        assert price(side, book) == Decimal("4.40")

    def test_drink_size_override_wins(self, item, book):
        tier = SizeTier(SizeLabel.SMALL, price_override=Decimal("1.00"))
        sel = ComposedSelection(ComboKind.DRINK, item=item(Category.DRINK, "Bottled Water"), size=tier)

        assert price(sel, book) == Decimal("1.00")

    def test_drink_uses_composite_price(self, item, book):
        sel = ComposedSelection(ComboKind.DRINK, item=item(Category.DRINK, "Fountain Drink"), size=LARGE)

        assert price(sel, book) == Decimal("2.50")

    def test_appetizer_uses_flat_price(self, item, book):
        sel = ComposedSelection(ComboKind.APPETIZER, item=item(Category.APPETIZER, "Chicken Egg Roll"))

        assert price(sel, book) == Decimal("2.00")


class TestPriceBook:
    def test_book_holds_every_composite(self, book):
        assert set(book.prices) == set(COMPOSITES)

    def test_book_is_locked_after_load(self, catalog, book):
        """Catalog changes after loading do not reach the book."""
        catalog.prices["Plate"] = Decimal("99.00")

        assert book.base("Plate") == Decimal("9.80")

    def test_catalog_failure_is_service_unavailable(self, catalog, run, err):
        catalog.fail_on("get_price", when="Bowl")

        error = err(run(load_price_book(catalog)))
        assert error.operation == "get_price"

    def test_narrowed_book_skips_other_composites(self, catalog, run, ok):
        """A composite missing from the catalog only matters to orders that need it."""
        del catalog.prices["Bowl"]

        book = ok(run(load_price_book(catalog, names=["Plate", "Medium Drink", "Plate"])))

        assert dict(book.prices) == {"Plate": Decimal("9.80"), "Medium Drink": Decimal("2.30")}
        with pytest.raises(KeyError):
            book.base("Bowl")

    def test_tables_from_settings(self):
        settings = Settings(premium_surcharge=Decimal("2.25"), premium_large=Decimal("16.00"))
        tables = PricingTables.from_settings(settings)

        assert tables.premium_surcharge == Decimal("2.25")
        assert tables.premium_sizes[SizeLabel.LARGE] == Decimal("16.00")


class TestRounding:
    def test_display_amount_rounds_half_up(self):
        assert display_amount(Decimal("2.675")) == Decimal("2.68")
        assert display_amount(Decimal("2.665")) == Decimal("2.67")

    def test_format_money(self):
        assert format_money(Decimal("9.8")) == "$9.80"
