"""
Core types for posflow.

Re-exports from kungfu/combinators + the shared service error.
"""

from __future__ import annotations

from typing import Never

# Re-export from kungfu
from kungfu import Result, Ok, Error, LazyCoroResult

# Re-export from combinators
from combinators import LCR

# ═══════════════════════════════════════════════════════════════════════════════
# Lazy Computation Aliases
# ═══════════════════════════════════════════════════════════════════════════════

type Lazy[T, E] = LazyCoroResult[T, E]
"""Lazy async computation that may fail."""

type Pure[T] = Lazy[T, Never]
"""Lazy computation that cannot fail."""

# ═══════════════════════════════════════════════════════════════════════════════
# Service Error — every external call can fail this way
# ═══════════════════════════════════════════════════════════════════════════════


class ServiceUnavailable(Exception):
    """
    An external call (catalog, order service, inventory) failed.

    Recoverable: surfaced to the cashier as a retry prompt, never
    corrupts cart state. Backends may raise it directly; the core
    lifts every call so it arrives as Error(ServiceUnavailable).
    """

    def __init__(self, operation: str, message: str) -> None:
        super().__init__(f"{operation}: {message}")
        self.operation = operation
        self.message = message

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ServiceUnavailable):
            return NotImplemented
        return (self.operation, self.message) == (other.operation, other.message)

    def __hash__(self) -> int:
        return hash((self.operation, self.message))

    def __repr__(self) -> str:
        return f"ServiceUnavailable({self.operation!r}, {self.message!r})"


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    # Re-exports from kungfu
    "Result",
    "Ok",
    "Error",
    "LazyCoroResult",
    # Re-exports from combinators
    "LCR",
    # Type aliases
    "Lazy",
    "Pure",
    # Errors
    "ServiceUnavailable",
)
