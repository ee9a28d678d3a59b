"""
Lift — turn external service calls into lazy Results.

Every collaborator call (catalog lookup, transaction write, inventory
decrement) goes through `service_call`, so the core only ever sees
Result[T, ServiceUnavailable] and never a raw exception.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import timedelta

from combinators import flow, lift as L
from kungfu import LazyCoroResult, Result

from posflow._types import ServiceUnavailable


# ═══════════════════════════════════════════════════════════════════════════════
# service_call() — catching wrapper with a named operation
# ═══════════════════════════════════════════════════════════════════════════════


def _as_unavailable(operation: str, exc: Exception) -> ServiceUnavailable:
    if isinstance(exc, ServiceUnavailable):
        return exc
    return ServiceUnavailable(operation, str(exc) or type(exc).__name__)


def service_call[T](
    operation: str,
    fn: Callable[[], Awaitable[T]],
) -> LazyCoroResult[T, ServiceUnavailable]:
    """
    Lift an async service call into LazyCoroResult.

    Example:
        price = await service_call("get_price", lambda: catalog.get_price("Plate"))
    """
    return L.catching_async(fn, on_error=lambda e: _as_unavailable(operation, e))


def from_result[T, E](result: Result[T, E]) -> LazyCoroResult[T, E]:
    """Lift a Result into LazyCoroResult."""
    async def _run() -> Result[T, E]:
        return result
    return LazyCoroResult(_run)


# ═══════════════════════════════════════════════════════════════════════════════
# Retry
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Retry settings applied via combinators.flow().retry(...)."""

    times: int = 2
    delay: timedelta = timedelta(milliseconds=200)


NO_RETRY = RetryPolicy(times=0, delay=timedelta(0))


def with_retry[T, E](
    call: LazyCoroResult[T, E],
    policy: RetryPolicy,
) -> LazyCoroResult[T, E]:
    """
    Re-run a lazy call on Error per the policy; the last error is returned.

    Example:
        txn = await with_retry(service_call("create_transaction", write), policy)
    """
    if policy.times <= 0:
        return call
    return (
        flow(call)
        .retry(times=policy.times, delay_seconds=policy.delay.total_seconds())
        .compile()
    )


def retried_call[T](
    operation: str,
    fn: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
) -> LazyCoroResult[T, ServiceUnavailable]:
    """service_call() with the policy applied."""
    return with_retry(service_call(operation, fn), policy)


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "service_call",
    "from_result",
    "RetryPolicy",
    "NO_RETRY",
    "with_retry",
    "retried_call",
)
