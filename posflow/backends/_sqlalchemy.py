"""
SQLAlchemy backend — order service and finalize store.

Usage:
    session_factory, engine = await create_database("sqlite+aiosqlite:///pos.db")
    service = SQLAlchemyOrderService(session_factory)
    store = SQLAlchemyFinalizeStore(session_factory)
    orchestrator = CheckoutOrchestrator(service, store=store)

The service allocates transaction ids itself (counter row, one UPDATE
per id), so every process sharing the database gets distinct ids.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, cast

from kungfu import Error, Ok, Result
from sqlalchemy import (
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    delete,
    func,
    select,
    update,
)
from sqlalchemy.engine import CursorResult
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql.expression import Update

from posflow._types import ServiceUnavailable
from posflow.checkout import (
    AttemptRecord,
    AttemptState,
    CheckoutReceipt,
    StoreError,
    TransactionLineItem,
    TransactionRecord,
)

# ═══════════════════════════════════════════════════════════════════════════════
# Base
# ═══════════════════════════════════════════════════════════════════════════════


class Base(DeclarativeBase):
    pass


# ═══════════════════════════════════════════════════════════════════════════════
# Tables
# ═══════════════════════════════════════════════════════════════════════════════


class TransactionTable(Base):
    __tablename__ = "transactions"

    transaction_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    employee_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    total: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    timestamp: Mapped[str] = mapped_column(String(40), nullable=False)
    payment_method: Mapped[str] = mapped_column(String(50), nullable=False)


class TransactionLineItemTable(Base):
    __tablename__ = "transaction_line_items"

    transaction_id: Mapped[int] = mapped_column(
        ForeignKey("transactions.transaction_id"), primary_key=True
    )
    line_number: Mapped[int] = mapped_column(Integer, primary_key=True)
    item_id: Mapped[int] = mapped_column(Integer, nullable=False)
    food1: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    food2: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    food3: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    food4: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class FoodInventoryTable(Base):
    __tablename__ = "food_inventory"

    food_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class ItemTypeInventoryTable(Base):
    __tablename__ = "item_type_inventory"

    item_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class CounterTable(Base):
    __tablename__ = "counters"

    name: Mapped[str] = mapped_column(String(50), primary_key=True)
    value: Mapped[int] = mapped_column(Integer, nullable=False)


class FinalizeAttemptTable(Base):
    __tablename__ = "finalize_attempts"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    receipt: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)


# ═══════════════════════════════════════════════════════════════════════════════
# Database Setup
# ═══════════════════════════════════════════════════════════════════════════════


async def create_database(
    url: str = "sqlite+aiosqlite:///:memory:",
) -> tuple[async_sessionmaker[AsyncSession], AsyncEngine]:
    """Create schema and return (session_factory, engine)."""
    engine = create_async_engine(url, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    return async_sessionmaker(engine, expire_on_commit=False), engine


# ═══════════════════════════════════════════════════════════════════════════════
# SQLAlchemyOrderService
# ═══════════════════════════════════════════════════════════════════════════════

TRANSACTION_COUNTER = "transaction_id"


class SQLAlchemyOrderService:
    """OrderService and TransactionIdAllocator over one database."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session = session_factory

    async def seed_inventory(
        self,
        foods: Mapping[int, int] | None = None,
        item_types: Mapping[int, int] | None = None,
    ) -> None:
        """Set stock levels (food id / item id → quantity)."""
        async with self._session() as session, session.begin():
            for food_id, quantity in (foods or {}).items():
                await session.merge(FoodInventoryTable(food_id=food_id, quantity=quantity))
            for item_id, quantity in (item_types or {}).items():
                await session.merge(ItemTypeInventoryTable(item_id=item_id, quantity=quantity))

    async def get_latest_transaction_id(self) -> int:
        async with self._session() as session:
            latest = await session.scalar(
                select(func.coalesce(func.max(TransactionTable.transaction_id), 0))
            )
            return int(latest or 0)

    async def allocate_transaction_id(self) -> int:
        async with self._session() as session, session.begin():
            value = await session.scalar(
                update(CounterTable)
                .where(CounterTable.name == TRANSACTION_COUNTER)
                .values(value=CounterTable.value + 1)
                .returning(CounterTable.value)
            )
            if value is None:
                # First allocation: start after whatever is already persisted
                latest = await session.scalar(
                    select(func.coalesce(func.max(TransactionTable.transaction_id), 0))
                )
                value = int(latest or 0) + 1
                session.add(CounterTable(name=TRANSACTION_COUNTER, value=value))
            return int(value)

    async def create_transaction(self, record: TransactionRecord) -> None:
        async with self._session() as session, session.begin():
            session.add(TransactionTable(
                transaction_id=record.transaction_id,
                employee_id=record.employee_id,
                total=record.total,
                timestamp=record.timestamp,
                payment_method=record.payment_method,
            ))

    async def create_transaction_line_item(self, item: TransactionLineItem) -> None:
        f1, f2, f3, f4 = item.food_ids
        async with self._session() as session, session.begin():
            # merge: a retried line overwrites itself instead of duplicating
            await session.merge(TransactionLineItemTable(
                transaction_id=item.transaction_id,
                line_number=item.line_number,
                item_id=item.item_id,
                food1=f1, food2=f2, food3=f3, food4=f4,
            ))

    async def _decrement(self, operation: str, key: int, statement: Update) -> None:
        async with self._session() as session, session.begin():
            result = cast(CursorResult[Any], await session.execute(statement))
            if result.rowcount == 0:
                raise ServiceUnavailable(operation, f"no inventory row for {key}")

    async def decrement_inventory_by_food(self, food_id: int) -> None:
        await self._decrement(
            "decrement_inventory_by_food",
            food_id,
            update(FoodInventoryTable)
            .where(FoodInventoryTable.food_id == food_id)
            .values(quantity=FoodInventoryTable.quantity - 1),
        )

    async def decrement_inventory_by_item_type(self, item_id: int) -> None:
        await self._decrement(
            "decrement_inventory_by_item_type",
            item_id,
            update(ItemTypeInventoryTable)
            .where(ItemTypeInventoryTable.item_id == item_id)
            .values(quantity=ItemTypeInventoryTable.quantity - 1),
        )

    async def void_transaction(self, transaction_id: int) -> None:
        async with self._session() as session, session.begin():
            await session.execute(
                delete(TransactionLineItemTable)
                .where(TransactionLineItemTable.transaction_id == transaction_id)
            )
            await session.execute(
                delete(TransactionTable)
                .where(TransactionTable.transaction_id == transaction_id)
            )

    # ─── Reads for reporting and tests ───────────────────────────────────────

    async def get_transaction(self, transaction_id: int) -> TransactionRecord | None:
        async with self._session() as session:
            row = await session.get(TransactionTable, transaction_id)
            if row is None:
                return None
            return TransactionRecord(
                transaction_id=row.transaction_id,
                employee_id=row.employee_id,
                total=Decimal(row.total),
                timestamp=row.timestamp,
                payment_method=row.payment_method,
            )

    async def get_line_items(self, transaction_id: int) -> list[TransactionLineItem]:
        async with self._session() as session:
            rows = await session.scalars(
                select(TransactionLineItemTable)
                .where(TransactionLineItemTable.transaction_id == transaction_id)
                .order_by(TransactionLineItemTable.line_number)
            )
            return [
                TransactionLineItem(
                    r.transaction_id, r.line_number, r.item_id,
                    (r.food1, r.food2, r.food3, r.food4),
                )
                for r in rows
            ]

    async def get_food_quantity(self, food_id: int) -> int | None:
        async with self._session() as session:
            row = await session.get(FoodInventoryTable, food_id)
            return None if row is None else row.quantity

    async def get_item_type_quantity(self, item_id: int) -> int | None:
        async with self._session() as session:
            row = await session.get(ItemTypeInventoryTable, item_id)
            return None if row is None else row.quantity


# ═══════════════════════════════════════════════════════════════════════════════
# SQLAlchemyFinalizeStore
# ═══════════════════════════════════════════════════════════════════════════════


class AttemptStatus:
    """Values of finalize_attempts.status."""
    PENDING = "pending"
    COMPLETED = "completed"


class SQLAlchemyFinalizeStore:
    """FinalizeStore persisting attempt records; receipts stored as JSON."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session = session_factory

    async def get(self, key: str) -> Result[AttemptRecord | None, StoreError]:
        try:
            async with self._session() as session:
                row = await session.get(FinalizeAttemptTable, key)
                if row is None or self._expired(row):
                    return Ok(None)
                return Ok(self._to_record(row))
        except Exception as e:
            return Error(StoreError(f"Failed to get: {e}", e))

    async def set_pending(self, key: str, ttl: timedelta | None) -> Result[bool, StoreError]:
        try:
            async with self._session() as session, session.begin():
                row = await session.get(FinalizeAttemptTable, key)
                if row is not None and not self._expired(row):
                    return Ok(False)
                if row is not None:
                    await session.delete(row)
                    await session.flush()
                now = datetime.now()
                session.add(FinalizeAttemptTable(
                    key=key,
                    status=AttemptStatus.PENDING,
                    receipt=None,
                    created_at=now,
                    expires_at=now + ttl if ttl else None,
                ))
            return Ok(True)
        except IntegrityError:
            return Ok(False)
        except Exception as e:
            return Error(StoreError(f"Failed to set pending: {e}", e))

    async def set_completed(
        self, key: str, receipt: CheckoutReceipt, ttl: timedelta | None
    ) -> Result[None, StoreError]:
        try:
            async with self._session() as session, session.begin():
                row = await session.get(FinalizeAttemptTable, key)
                if row is None:
                    return Error(StoreError(f"Record not found: {key}"))
                row.status = AttemptStatus.COMPLETED
                row.receipt = json.dumps(receipt.to_dict())
                if ttl:
                    row.expires_at = datetime.now() + ttl
            return Ok(None)
        except Exception as e:
            return Error(StoreError(f"Failed to complete: {e}", e))

    async def delete(self, key: str) -> Result[bool, StoreError]:
        try:
            async with self._session() as session, session.begin():
                row = await session.get(FinalizeAttemptTable, key)
                if row is None:
                    return Ok(False)
                await session.delete(row)
            return Ok(True)
        except Exception as e:
            return Error(StoreError(f"Failed to delete: {e}", e))

    @staticmethod
    def _expired(row: FinalizeAttemptTable) -> bool:
        return row.expires_at is not None and datetime.now() > row.expires_at

    @staticmethod
    def _to_record(row: FinalizeAttemptTable) -> AttemptRecord:
        completed = row.status == AttemptStatus.COMPLETED
        receipt = None
        if completed and row.receipt is not None:
            receipt = CheckoutReceipt.from_dict(json.loads(row.receipt))
        return AttemptRecord(
            key=row.key,
            state=AttemptState.COMPLETED if completed else AttemptState.PENDING,
            receipt=receipt,
            created_at=row.created_at,
            expires_at=row.expires_at,
        )


__all__ = (
    "Base",
    "TransactionTable",
    "TransactionLineItemTable",
    "FoodInventoryTable",
    "ItemTypeInventoryTable",
    "CounterTable",
    "FinalizeAttemptTable",
    "create_database",
    "SQLAlchemyOrderService",
    "SQLAlchemyFinalizeStore",
)
