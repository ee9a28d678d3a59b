"""
Combo validation — draft + menu snapshot → composed selections.
"""

from __future__ import annotations

from kungfu import Error, Ok, Result

from posflow.combo._draft import ComboDraft
from posflow.combo._types import (
    ITEM_CATEGORIES,
    RULES,
    SIZED,
    ComboError,
    ComboKind,
    ComposedSelection,
    IncompleteSelection,
    InvalidItem,
)
from posflow.menu import Category, MenuItem, MenuSnapshot


def _resolve(
    item: MenuItem,
    allowed: frozenset[Category],
    snapshot: MenuSnapshot,
) -> Result[MenuItem, InvalidItem]:
    """Look the item up in the snapshot; the snapshot's copy wins."""
    if item.category not in allowed:
        return Error(InvalidItem(item.name, f"{item.category.value} not allowed here"))
    current = snapshot.find(item.category, item.name)
    if current is None:
        return Error(InvalidItem(item.name, "unknown to catalog"))
    if not current.in_stock:
        return Error(InvalidItem(item.name, "out of stock"))
    return Ok(current)


def _resolve_all(
    items: tuple[MenuItem, ...],
    allowed: frozenset[Category],
    snapshot: MenuSnapshot,
) -> Result[tuple[MenuItem, ...], InvalidItem]:
    resolved: list[MenuItem] = []
    for item in items:
        match _resolve(item, allowed, snapshot):
            case Ok(current):
                resolved.append(current)
            case Error(e):
                return Error(e)
    return Ok(tuple(resolved))


def _validate_plate(
    d: ComboDraft,
    snapshot: MenuSnapshot,
) -> Result[tuple[ComposedSelection, ...], ComboError]:
    rule = RULES[d.kind]

    match _resolve_all(d.sides, frozenset({Category.SIDE}), snapshot):
        case Ok(sides):
            pass
        case Error(e):
            return Error(e)

    match _resolve_all(d.entrees, frozenset({Category.ENTREE}), snapshot):
        case Ok(entrees):
            pass
        case Error(e):
            return Error(e)

    if len(sides) != rule.sides or len(entrees) != rule.entrees:
        return Error(IncompleteSelection(
            d.kind,
            f"{d.kind.value} needs {rule.sides} side(s) and {rule.entrees} entree(s), "
            f"got {len(sides)} and {len(entrees)}",
        ))

    return Ok((ComposedSelection(kind=d.kind, sides=sides, entrees=entrees),))


def _validate_units(
    d: ComboDraft,
    snapshot: MenuSnapshot,
) -> Result[tuple[ComposedSelection, ...], ComboError]:
    match _resolve_all(d.items, ITEM_CATEGORIES[d.kind], snapshot):
        case Ok(items):
            pass
        case Error(e):
            return Error(e)

    if not items:
        return Error(IncompleteSelection(d.kind, f"Choose at least one {d.kind.value} item"))
    if d.awaiting_size:
        return Error(IncompleteSelection(d.kind, "Choose a size"))

    size = d.size if d.kind in SIZED else None
    return Ok(tuple(ComposedSelection(kind=d.kind, item=item, size=size) for item in items))


def validate(
    d: ComboDraft,
    snapshot: MenuSnapshot,
) -> Result[tuple[ComposedSelection, ...], ComboError]:
    """
    Check a draft against its combo rule and the current menu.

    Returns one selection for plate-style kinds and one per unit for
    appetizers, drinks and à la carte picks.

    Example:
        match validate(d, snapshot):
            case Ok(selections): ...
            case Error(IncompleteSelection()): ...  # keep selecting
            case Error(InvalidItem(name=n)): ...    # item excluded
    """
    if d.kind in RULES:
        return _validate_plate(d, snapshot)
    if d.kind in (ComboKind.APPETIZER, ComboKind.DRINK, ComboKind.A_LA_CARTE):
        return _validate_units(d, snapshot)
    raise ValueError(f"Unsupported combo kind: {d.kind}")


__all__ = ("validate",)
