"""SQLAlchemy order service and finalize store over a temporary SQLite file.

Each test drives one coroutine end to end: the engine's connections
belong to the event loop that opened them.
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from posflow._types import ServiceUnavailable
from posflow.backends import SQLAlchemyFinalizeStore, SQLAlchemyOrderService, create_database
from posflow.checkout import (
    AttemptState,
    CheckoutOrchestrator,
    CheckoutState,
    SessionContext,
    TransactionLineItem,
    TransactionRecord,
    default_allocator,
)
from posflow.lift import NO_RETRY

from conftest import FIXED_NOW


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'pos.db'}"


def record(transaction_id: int, total: str = "9.80") -> TransactionRecord:
    return TransactionRecord(
        transaction_id=transaction_id,
        employee_id=3,
        total=Decimal(total),
        timestamp=FIXED_NOW.isoformat(),
        payment_method="Cash",
    )


class TestOrderService:
    """Persistence and id allocation."""

    def test_allocation_continues_after_existing_rows(self, db_url, run):
        async def scenario():
            factory, engine = await create_database(db_url)
            service = SQLAlchemyOrderService(factory)
            await service.create_transaction(record(10))
            ids = [await service.allocate_transaction_id() for _ in range(3)]
            latest = await service.get_latest_transaction_id()
            await engine.dispose()
            return ids, latest

        ids, latest = run(scenario())
        assert ids == [11, 12, 13]
        assert latest == 10

    def test_service_is_its_own_allocator(self, db_url, run):
        async def scenario():
            factory, engine = await create_database(db_url)
            service = SQLAlchemyOrderService(factory)
            await engine.dispose()
            return service

        service = run(scenario())
        assert default_allocator(service) is service

    def test_line_item_retry_does_not_duplicate(self, db_url, run):
        async def scenario():
            factory, engine = await create_database(db_url)
            service = SQLAlchemyOrderService(factory)
            await service.create_transaction(record(1))
            item = TransactionLineItem(1, 1, 2, (104, 108, 109, 0))
            await service.create_transaction_line_item(item)
            await service.create_transaction_line_item(item)
            items = await service.get_line_items(1)
            await engine.dispose()
            return items

        assert run(scenario()) == [TransactionLineItem(1, 1, 2, (104, 108, 109, 0))]

    def test_void_removes_header_and_lines(self, db_url, run):
        async def scenario():
            factory, engine = await create_database(db_url)
            service = SQLAlchemyOrderService(factory)
            await service.create_transaction(record(1))
            await service.create_transaction_line_item(TransactionLineItem(1, 1, 2, (104, 0, 0, 0)))
            await service.void_transaction(1)
            result = (await service.get_transaction(1), await service.get_line_items(1))
            await engine.dispose()
            return result

        assert run(scenario()) == (None, [])

    def test_decrements(self, db_url, run):
        async def scenario():
            factory, engine = await create_database(db_url)
            service = SQLAlchemyOrderService(factory)
            await service.seed_inventory(foods={104: 5}, item_types={1: 2})
            await service.decrement_inventory_by_food(104)
            await service.decrement_inventory_by_item_type(1)
            try:
                await service.decrement_inventory_by_food(999)
            except ServiceUnavailable as e:
                missing = e
            else:
                missing = None
            result = (
                await service.get_food_quantity(104),
                await service.get_item_type_quantity(1),
                missing,
            )
            await engine.dispose()
            return result

        food, item_type, missing = run(scenario())
        assert (food, item_type) == (4, 1)
        assert missing is not None
        assert missing.operation == "decrement_inventory_by_food"


class TestFinalizeStore:
    def test_claim_complete_and_replay(self, db_url, run, ok, sample_receipt):
        async def scenario():
            factory, engine = await create_database(db_url)
            store = SQLAlchemyFinalizeStore(factory)
            claimed = ok(await store.set_pending("k1", timedelta(hours=1)))
            again = ok(await store.set_pending("k1", timedelta(hours=1)))
            pending = ok(await store.get("k1"))
            ok(await store.set_completed("k1", sample_receipt, timedelta(hours=1)))
            completed = ok(await store.get("k1"))
            deleted = ok(await store.delete("k1"))
            gone = ok(await store.get("k1"))
            await engine.dispose()
            return claimed, again, pending, completed, deleted, gone

        claimed, again, pending, completed, deleted, gone = run(scenario())
        assert (claimed, again) == (True, False)
        assert pending.state == AttemptState.PENDING
        assert completed.state == AttemptState.COMPLETED
        assert completed.receipt == sample_receipt
        assert deleted is True
        assert gone is None

    def test_expired_record_can_be_reclaimed(self, db_url, run, ok):
        async def scenario():
            factory, engine = await create_database(db_url)
            store = SQLAlchemyFinalizeStore(factory)
            ok(await store.set_pending("k2", timedelta(seconds=-1)))
            expired = ok(await store.get("k2"))
            reclaimed = ok(await store.set_pending("k2", None))
            await engine.dispose()
            return expired, reclaimed

        assert run(scenario()) == (None, True)


@pytest.fixture
def sample_receipt(orchestrator, context, run, ok, line):
    """A receipt produced by the in-memory stack, for store round trips."""
    session = orchestrator.session(context)
    ok(session.add_lines([line("9.80"), line("2.30", base_id=6, foods=(117,))]))
    ok(session.begin_checkout())
    ok(session.select_payment("Card"))
    return ok(run(session.finalize()))


class TestEndToEnd:
    """Finalize through the orchestrator against the database."""

    def test_finalize_persists_and_decrements(self, db_url, catalog, run, ok, line):
        plate_id = catalog.base_item_ids["Plate"]
        ids = catalog.food_ids
        foods = (ids["Chow Mein"], ids["Orange Chicken"], ids["Honey Walnut Shrimp"])

        async def scenario():
            factory, engine = await create_database(db_url)
            service = SQLAlchemyOrderService(factory)
            store = SQLAlchemyFinalizeStore(factory)
            await service.seed_inventory(
                foods={f: 10 for f in foods}, item_types={plate_id: 10}
            )
            orchestrator = CheckoutOrchestrator(service, store=store, retry_policy=NO_RETRY)
            session = orchestrator.session(SessionContext(employee_id=3))
            ok(session.add_lines(line("11.30", base_id=plate_id, foods=foods)))
            ok(session.begin_checkout())
            ok(session.select_payment("Cash"))

            receipt = ok(await session.finalize())
            replay = ok(await session.finalize())
            stored = await service.get_transaction(receipt.transaction_id)
            items = await service.get_line_items(receipt.transaction_id)
            quantities = [await service.get_food_quantity(f) for f in foods]
            plates = await service.get_item_type_quantity(plate_id)
            attempt = ok(await store.get(session.attempt_key))
            await engine.dispose()
            return session.state, receipt, replay, stored, items, quantities, plates, attempt

        state, receipt, replay, stored, items, quantities, plates, attempt = run(scenario())
        assert state == CheckoutState.COMPLETE
        assert replay == receipt
        assert stored == receipt.record
        assert stored.total == Decimal("11.30")
        assert [i.food_ids for i in items] == [(*foods, 0)]
        assert quantities == [9, 9, 9]
        assert plates == 9
        assert attempt.receipt == receipt
