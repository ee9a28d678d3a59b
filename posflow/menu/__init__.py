"""
Menu — read-only catalog boundary.

    from posflow import menu as M

    snapshot = await M.load_snapshot(catalog)
    sides = snapshot.available(M.Category.SIDE)
"""

from posflow.menu._types import (
    Category,
    SizeLabel,
    MenuItem,
    SizeTier,
    SMALL,
    MEDIUM,
    LARGE,
    MenuSnapshot,
)
from posflow.menu._catalog import (
    MenuCatalog,
    normalize_item,
    load_snapshot,
)

__all__ = (
    "Category",
    "SizeLabel",
    "MenuItem",
    "SizeTier",
    "SMALL",
    "MEDIUM",
    "LARGE",
    "MenuSnapshot",
    "MenuCatalog",
    "normalize_item",
    "load_snapshot",
)
