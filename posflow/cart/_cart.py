"""
Cart — ordered lines plus their index-aligned transaction entries.

Checkout zips `lines` and `entries` together, so every mutation
touches both sequences at the same index.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from posflow.cart._types import CartLine, TransactionEntry


class Cart:
    """In-progress order for one session."""

    def __init__(self) -> None:
        self._lines: list[CartLine] = []
        self._entries: list[TransactionEntry] = []

    def add_line(self, line: CartLine | Sequence[CartLine]) -> None:
        """Append one line or a batch, preserving the given order."""
        batch = (line,) if isinstance(line, CartLine) else tuple(line)
        for item in batch:
            self._lines.append(item)
            self._entries.append(item.transaction_entry)

    def remove_line(self, index: int) -> CartLine:
        """Remove the line at `index` from both sequences."""
        if not 0 <= index < len(self._lines):
            raise IndexError(f"No cart line at index {index}")
        del self._entries[index]
        return self._lines.pop(index)

    def clear(self) -> None:
        self._lines.clear()
        self._entries.clear()

    def total(self) -> Decimal:
        """Exact sum of unit prices; round only for display."""
        return sum((line.unit_price for line in self._lines), Decimal("0"))

    @property
    def lines(self) -> tuple[CartLine, ...]:
        return tuple(self._lines)

    @property
    def entries(self) -> tuple[TransactionEntry, ...]:
        return tuple(self._entries)

    @property
    def is_empty(self) -> bool:
        return not self._lines

    @property
    def can_checkout(self) -> bool:
        return not self.is_empty

    def __len__(self) -> int:
        return len(self._lines)

    def __repr__(self) -> str:
        return f"Cart(lines={len(self._lines)}, total={self.total()})"


__all__ = ("Cart",)
