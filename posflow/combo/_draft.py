"""
Combo draft — selection state machine driven by explicit events.

Every event returns a new draft; nothing here renders or reads global
state. The validator turns a finished draft into ComposedSelections.

    d = draft(ComboKind.PLATE)
    d = d.toggle_side(chow_mein).toggle_entree(orange).toggle_entree(beef)
    d.is_complete  # True
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from posflow.combo._types import MULTI_SELECT, RULES, SIZED, ComboKind
from posflow.menu import MenuItem, SizeTier


def _toggle(
    selected: tuple[MenuItem, ...],
    item: MenuItem,
    limit: int | None,
) -> tuple[MenuItem, ...]:
    if item in selected:
        return tuple(i for i in selected if i != item)
    if limit is not None and len(selected) >= limit:
        return selected
    return (*selected, item)


@dataclass(frozen=True, slots=True)
class ComboDraft:
    """
    In-progress selection for one combo kind.

    Toggling a selected item deselects it; toggling past the kind's
    arity is ignored. Events that do not apply to the kind are no-ops.
    """

    kind: ComboKind
    sides: tuple[MenuItem, ...] = ()
    entrees: tuple[MenuItem, ...] = ()
    items: tuple[MenuItem, ...] = ()
    size: SizeTier | None = None

    # ───────────────────────────────────────────────────────────────────────────
    # Events
    # ───────────────────────────────────────────────────────────────────────────

    def toggle_side(self, item: MenuItem) -> ComboDraft:
        rule = RULES.get(self.kind)
        if rule is None:
            return self
        return replace(self, sides=_toggle(self.sides, item, rule.sides))

    def toggle_entree(self, item: MenuItem) -> ComboDraft:
        rule = RULES.get(self.kind)
        if rule is None:
            return self
        return replace(self, entrees=_toggle(self.entrees, item, rule.entrees))

    def toggle_item(self, item: MenuItem) -> ComboDraft:
        """
        Appetizer/Drink: multi-select toggle.
        À la carte: pick one item, which then waits for a size.
        """
        if self.kind in MULTI_SELECT:
            return replace(self, items=_toggle(self.items, item, None))
        if self.kind == ComboKind.A_LA_CARTE:
            if self.items == (item,):
                return replace(self, items=(), size=None)
            return replace(self, items=(item,), size=None)
        return self

    def choose_size(self, size: SizeTier) -> ComboDraft:
        if self.kind not in SIZED:
            return self
        return replace(self, size=size)

    def reset(self) -> ComboDraft:
        return ComboDraft(self.kind)

    # ───────────────────────────────────────────────────────────────────────────
    # Queries
    # ───────────────────────────────────────────────────────────────────────────

    @property
    def awaiting_size(self) -> bool:
        return self.kind in SIZED and bool(self.items) and self.size is None

    @property
    def is_complete(self) -> bool:
        """Arity (and size, where sized) satisfied; stock is checked by validate."""
        rule = RULES.get(self.kind)
        if rule is not None:
            return len(self.sides) == rule.sides and len(self.entrees) == rule.entrees
        if not self.items:
            return False
        return self.kind not in SIZED or self.size is not None


def draft(kind: ComboKind) -> ComboDraft:
    """Start an empty draft."""
    return ComboDraft(kind)


def can_add_to_cart(d: ComboDraft) -> bool:
    return d.is_complete


__all__ = ("ComboDraft", "draft", "can_add_to_cart")
