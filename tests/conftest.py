"""Shared pytest fixtures: seeded in-memory backends and async helpers."""

import asyncio
import random
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

import pytest
from kungfu import Error, Ok, Result

from posflow.backends import MemoryCatalog, MemoryOrderService
from posflow.cart import CartLine, TransactionEntry
from posflow.checkout import CheckoutOrchestrator, ReadyWindow, SessionContext
from posflow.lift import NO_RETRY
from posflow.menu import Category, MenuItem, MenuSnapshot, load_snapshot
from posflow.pricing import PriceBook, PricingTables, load_price_book

FIXED_NOW = datetime(2026, 3, 14, 12, 0, tzinfo=UTC)


def run_sync[T](awaitable: Awaitable[T]) -> T:
    """Drive one awaitable (coroutine or LazyCoroResult) to completion."""

    async def _main() -> T:
        return await awaitable

    return asyncio.run(_main())


def unwrap_ok[T](result: Result[T, Any]) -> T:
    match result:
        case Ok(value):
            return value
        case Error(e):
            pytest.fail(f"expected Ok, got Error({e!r})")


def unwrap_error(result: Result[Any, Any]) -> Any:
    match result:
        case Ok(value):
            pytest.fail(f"expected Error, got Ok({value!r})")
        case Error(e):
            return e


@pytest.fixture
def run() -> Callable[[Awaitable[Any]], Any]:
    return run_sync


@pytest.fixture
def ok() -> Callable[[Result[Any, Any]], Any]:
    return unwrap_ok


@pytest.fixture
def err() -> Callable[[Result[Any, Any]], Any]:
    return unwrap_error


@pytest.fixture
def catalog() -> MemoryCatalog:
    """Seeded menu with two premium entrees."""
    return MemoryCatalog()


@pytest.fixture
def service() -> MemoryOrderService:
    return MemoryOrderService()


@pytest.fixture
def snapshot(catalog: MemoryCatalog) -> MenuSnapshot:
    return unwrap_ok(run_sync(load_snapshot(catalog)))


@pytest.fixture
def book(catalog: MemoryCatalog) -> PriceBook:
    return unwrap_ok(run_sync(load_price_book(catalog, PricingTables())))


@pytest.fixture
def orchestrator(service: MemoryOrderService) -> CheckoutOrchestrator:
    """No retries, fixed clock, seeded rng."""
    return CheckoutOrchestrator(
        service,
        retry_policy=NO_RETRY,
        ready_window=ReadyWindow(5, 10),
        clock=lambda: FIXED_NOW,
        rng=random.Random(42),
    )


@pytest.fixture
def context() -> SessionContext:
    return SessionContext(employee_id=7, terminal_id="register-2")


@pytest.fixture
def item(snapshot: MenuSnapshot) -> Callable[[Category, str], MenuItem]:
    """Look up a seeded item by category and name."""

    def _item(category: Category, name: str) -> MenuItem:
        found = snapshot.find(category, name)
        assert found is not None, name
        return found

    return _item


def make_line(price: str, base_id: int = 1, foods: tuple[int, ...] = (104,)) -> CartLine:
    return CartLine(
        display_name=f"line {price}",
        unit_price=Decimal(price),
        is_premium=False,
        transaction_entry=TransactionEntry.of(base_id, foods),
    )


@pytest.fixture
def line() -> Callable[..., CartLine]:
    return make_line
