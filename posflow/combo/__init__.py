"""
Combo — selection rules and validation.

    from posflow import combo as K

    d = K.draft(K.ComboKind.PLATE).toggle_side(rice).toggle_entree(orange)
    match K.validate(d, snapshot):
        case Ok(selections): ...
        case Error(e): ...
"""

from posflow.combo._types import (
    ComboKind,
    ComboRule,
    RULES,
    MULTI_SELECT,
    SIZED,
    ITEM_CATEGORIES,
    ComposedSelection,
    IncompleteSelection,
    InvalidItem,
    ComboError,
)
from posflow.combo._draft import ComboDraft, draft, can_add_to_cart
from posflow.combo._validate import validate

__all__ = (
    "ComboKind",
    "ComboRule",
    "RULES",
    "MULTI_SELECT",
    "SIZED",
    "ITEM_CATEGORIES",
    "ComposedSelection",
    "IncompleteSelection",
    "InvalidItem",
    "ComboError",
    "ComboDraft",
    "draft",
    "can_add_to_cart",
    "validate",
)
