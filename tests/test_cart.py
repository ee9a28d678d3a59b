"""Cart totals, index alignment and line building."""

from decimal import Decimal

import pytest

from posflow.cart import Cart, TransactionEntry, base_item_name, build_lines
from posflow.combo import ComboKind, ComposedSelection, draft, validate
from posflow.menu import LARGE, MEDIUM, Category

S = Category.SIDE
E = Category.ENTREE


class TestCartTotals:
    """Totals are the exact sum of current line prices."""

    def test_total_after_removal(self, line):
        cart = Cart()
        cart.add_line([line("4.40"), line("11.50"), line("1.50")])

        assert cart.total() == Decimal("17.40")

        removed = cart.remove_line(1)
        assert removed.unit_price == Decimal("11.50")
        assert cart.total() == Decimal("5.90")

    def test_empty_cart_total_is_zero(self):
        cart = Cart()

        assert cart.total() == Decimal("0")
        assert cart.is_empty
        assert not cart.can_checkout

    def test_lines_and_entries_stay_aligned(self, line):
        cart = Cart()
        cart.add_line(line("1.00", base_id=1))
        cart.add_line([line("2.00", base_id=2), line("3.00", base_id=3)])
        cart.remove_line(0)

        assert len(cart) == 2
        assert [e.base_item_id for e in cart.entries] == [2, 3]
        assert [l.transaction_entry for l in cart.lines] == list(cart.entries)

    @pytest.mark.parametrize("index", [-1, 3, 10])
    def test_remove_out_of_range_raises(self, line, index):
        cart = Cart()
        cart.add_line([line("1.00"), line("2.00"), line("3.00")])

        with pytest.raises(IndexError):
            cart.remove_line(index)
        assert len(cart) == 3

    def test_clear(self, line):
        cart = Cart()
        cart.add_line(line("1.00"))
        cart.clear()

        assert cart.is_empty
        assert cart.entries == ()


class TestTransactionEntry:
    def test_unused_slots_are_zero(self):
        entry = TransactionEntry.of(1, [104, 108])

        assert tuple(entry) == (1, 104, 108, 0, 0)
        assert entry.nonzero_foods == (104, 108)

    def test_more_than_four_foods_rejected(self):
        with pytest.raises(ValueError):
            TransactionEntry.of(1, [1, 2, 3, 4, 5])


class TestBuildLines:
    """Selections become priced lines with catalog ids."""

    def test_bigger_plate_line(self, item, snapshot, book, catalog, run, ok):
        d = draft(ComboKind.BIGGER_PLATE).toggle_side(item(S, "Fried Rice"))
        for name in ("Orange Chicken", "Beijing Beef", "Honey Walnut Shrimp"):
            d = d.toggle_entree(item(E, name))
        selections = ok(validate(d, snapshot))

        (built,) = ok(run(build_lines(selections, book, catalog)))

        ids = catalog.food_ids
        assert built.transaction_entry == TransactionEntry(
            catalog.base_item_ids["Bigger Plate"],
            ids["Fried Rice"], ids["Orange Chicken"], ids["Beijing Beef"], ids["Honey Walnut Shrimp"],
        )
        assert built.unit_price == Decimal("12.80")
        assert built.is_premium

    def test_a_la_carte_uses_sized_composite(self, item, catalog, book, run, ok):
        sel = ComposedSelection(ComboKind.A_LA_CARTE, item=item(E, "Orange Chicken"), size=LARGE)

        assert base_item_name(sel) == "Large Entree"
        (built,) = ok(run(build_lines([sel], book, catalog)))
        assert built.transaction_entry.base_item_id == catalog.base_item_ids["Large Entree"]
        assert built.transaction_entry.nonzero_foods == (catalog.food_ids["Orange Chicken"],)

    def test_drink_uses_drink_composite(self, item):
        sel = ComposedSelection(ComboKind.DRINK, item=item(Category.DRINK, "Apple Juice"), size=MEDIUM)

        assert base_item_name(sel) == "Medium Drink"

    def test_batch_keeps_order(self, item, catalog, book, run, ok):
        sels = [
            ComposedSelection(ComboKind.APPETIZER, item=item(Category.APPETIZER, n))
            for n in ("Veggie Spring Roll", "Chicken Egg Roll")
        ]

        built = ok(run(build_lines(sels, book, catalog)))
        assert [l.display_name for l in built] == ["Veggie Spring Roll", "Chicken Egg Roll"]

    def test_empty_batch(self, catalog, book, run, ok):
        assert ok(run(build_lines([], book, catalog))) == ()

    def test_id_lookup_failure(self, item, catalog, book, run, err):
        catalog.fail_on("get_food_id")
        sel = ComposedSelection(ComboKind.APPETIZER, item=item(Category.APPETIZER, "Chicken Egg Roll"))

        error = err(run(build_lines([sel], book, catalog)))
        assert error.operation == "get_food_id"
