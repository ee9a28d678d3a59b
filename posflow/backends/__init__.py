"""
Backends — concrete catalog, order service and finalize store.

    from posflow.backends import MemoryCatalog, MemoryOrderService
    from posflow.backends import create_database, SQLAlchemyOrderService
"""

from posflow.backends._memory import (
    SEED_MENU,
    SEED_PREMIUM,
    SEED_PRICES,
    FailurePlan,
    MemoryCatalog,
    MemoryOrderService,
)
from posflow.backends._sqlalchemy import (
    SQLAlchemyFinalizeStore,
    SQLAlchemyOrderService,
    create_database,
)

__all__ = (
    # Memory
    "MemoryCatalog",
    "MemoryOrderService",
    "FailurePlan",
    "SEED_MENU",
    "SEED_PRICES",
    "SEED_PREMIUM",
    # SQLAlchemy
    "create_database",
    "SQLAlchemyOrderService",
    "SQLAlchemyFinalizeStore",
)
