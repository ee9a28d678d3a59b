"""
Finalize guard — at most one finalize per checkout attempt.

Each attempt key moves through:

    (none) → PENDING → COMPLETED          (receipt cached until TTL)
                     → (deleted)          (failure, retry allowed)

A repeat finalize with a COMPLETED key returns the cached receipt
instead of writing a second transaction. A repeat while PENDING is a
FinalizeConflict.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum, auto
from typing import Any, Protocol

from kungfu import Error, Ok, Result
from loguru import logger

from posflow._types import ServiceUnavailable
from posflow.checkout._types import CheckoutError, CheckoutReceipt, FinalizeConflict

# ═══════════════════════════════════════════════════════════════════════════════
# Records
# ═══════════════════════════════════════════════════════════════════════════════


class AttemptState(Enum):
    PENDING = auto()
    COMPLETED = auto()


@dataclass(frozen=True, slots=True)
class AttemptRecord:
    key: str
    state: AttemptState
    receipt: CheckoutReceipt | None
    created_at: datetime
    expires_at: datetime | None

    @property
    def is_expired(self) -> bool:
        if self.expires_at is None:
            return False
        return datetime.now() > self.expires_at


@dataclass(frozen=True)
class StoreError:
    """Storage operation error."""

    message: str
    cause: Exception | None = None


# ═══════════════════════════════════════════════════════════════════════════════
# Store Protocol — Result-based
# ═══════════════════════════════════════════════════════════════════════════════


class FinalizeStore(Protocol):
    async def get(self, key: str) -> Result[AttemptRecord | None, StoreError]:
        """Existing record, Ok(None) if absent or expired."""
        ...

    async def set_pending(self, key: str, ttl: timedelta | None) -> Result[bool, StoreError]:
        """
        Atomically claim the key.

        Ok(True) if claimed, Ok(False) if a live record already exists.
        """
        ...

    async def set_completed(
        self, key: str, receipt: CheckoutReceipt, ttl: timedelta | None
    ) -> Result[None, StoreError]:
        ...

    async def delete(self, key: str) -> Result[bool, StoreError]:
        ...


# ═══════════════════════════════════════════════════════════════════════════════
# Memory Store
# ═══════════════════════════════════════════════════════════════════════════════


class MemoryFinalizeStore:
    """
    In-process finalize store.

    Single-instance only: no cross-process lock, lost on restart.
    """

    def __init__(self) -> None:
        self._records: dict[str, AttemptRecord] = {}
        self._lock = asyncio.Lock()

    def _live(self, key: str) -> AttemptRecord | None:
        record = self._records.get(key)
        if record is not None and record.is_expired:
            del self._records[key]
            return None
        return record

    async def get(self, key: str) -> Result[AttemptRecord | None, StoreError]:
        async with self._lock:
            return Ok(self._live(key))

    async def set_pending(self, key: str, ttl: timedelta | None) -> Result[bool, StoreError]:
        async with self._lock:
            if self._live(key) is not None:
                return Ok(False)
            now = datetime.now()
            self._records[key] = AttemptRecord(
                key=key,
                state=AttemptState.PENDING,
                receipt=None,
                created_at=now,
                expires_at=now + ttl if ttl else None,
            )
            return Ok(True)

    async def set_completed(
        self, key: str, receipt: CheckoutReceipt, ttl: timedelta | None
    ) -> Result[None, StoreError]:
        async with self._lock:
            existing = self._records.get(key)
            if existing is None:
                return Error(StoreError(f"No pending record for key: {key}"))
            now = datetime.now()
            self._records[key] = AttemptRecord(
                key=key,
                state=AttemptState.COMPLETED,
                receipt=receipt,
                created_at=existing.created_at,
                expires_at=now + ttl if ttl else None,
            )
            return Ok(None)

    async def delete(self, key: str) -> Result[bool, StoreError]:
        async with self._lock:
            return Ok(self._records.pop(key, None) is not None)


# ═══════════════════════════════════════════════════════════════════════════════
# Guard
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class Guarded:
    receipt: CheckoutReceipt
    from_cache: bool


def _store_failure(err: StoreError) -> ServiceUnavailable:
    return ServiceUnavailable("finalize_guard", err.message)


def _cached(record: AttemptRecord | None) -> CheckoutReceipt | None:
    if record is not None and record.state == AttemptState.COMPLETED:
        return record.receipt
    return None


async def _release(store: FinalizeStore, key: str, log: Any) -> None:
    match await store.delete(key):
        case Error(err):
            # The key stays pending until its TTL runs out
            log.error("Could not release attempt key: {}", err.message)
        case Ok(_):
            pass


async def run_guarded(
    key: str,
    store: FinalizeStore,
    ttl: timedelta | None,
    operation: Callable[[], Awaitable[Result[CheckoutReceipt, CheckoutError]]],
) -> Result[Guarded, CheckoutError]:
    """Run `operation` once per key; replay the receipt on repeats."""
    log = logger.bind(attempt_key=key)

    match await store.get(key):
        case Error(err):
            return Error(_store_failure(err))
        case Ok(record):
            if (receipt := _cached(record)) is not None:
                log.info("Finalize replayed from cache")
                return Ok(Guarded(receipt, from_cache=True))
            if record is not None:
                return Error(FinalizeConflict(key))

    match await store.set_pending(key, ttl):
        case Error(err):
            return Error(_store_failure(err))
        case Ok(False):
            # Lost the race; the winner may already be done
            match await store.get(key):
                case Ok(record) if (receipt := _cached(record)) is not None:
                    return Ok(Guarded(receipt, from_cache=True))
                case _:
                    return Error(FinalizeConflict(key))
        case Ok(True):
            pass

    try:
        result = await operation()
    except BaseException:
        await _release(store, key, log)
        raise

    match result:
        case Ok(receipt):
            match await store.set_completed(key, receipt, ttl):
                case Error(err):
                    # The order is persisted; only the replay cache is missing
                    log.error("Could not cache finalize result: {}", err.message)
                case Ok(_):
                    pass
            return Ok(Guarded(receipt, from_cache=False))
        case Error(e):
            await _release(store, key, log)
            return Error(e)


__all__ = (
    "AttemptState",
    "AttemptRecord",
    "StoreError",
    "FinalizeStore",
    "MemoryFinalizeStore",
    "Guarded",
    "run_guarded",
)
