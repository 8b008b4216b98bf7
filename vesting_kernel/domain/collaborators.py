"""
Collaborator contracts the accounting engine depends on.

Responsibility:
    Declares the ports through which the kernel reaches the outside world:
    value movement (ValueLedger), controller authorization (AuthorityCheck)
    and audit emission (AuditLog).  Concrete adapters live outside the
    kernel (see ``vesting_services``) or in kernel services that persist
    data (``AuditorService``).

Architecture position:
    Kernel > Domain -- interface declarations only, zero I/O.

Success signalling:
    Ledgers in the wild report success differently.  ``transfer_succeeded``
    normalizes them: ``None`` (no return value), ``True``, or a
    ``TransferResult`` with ``success=True`` are success.  Everything else
    is failure, uniformly.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from vesting_kernel.domain.dtos import AuditRecord


@dataclass(frozen=True, slots=True)
class TransferResult:
    """Explicit ledger outcome."""

    success: bool
    reason: str = ""

    @classmethod
    def ok(cls) -> TransferResult:
        return cls(success=True)

    @classmethod
    def failed(cls, reason: str) -> TransferResult:
        return cls(success=False, reason=reason)


@runtime_checkable
class ValueLedger(Protocol):
    """Moves value into and out of custody."""

    def transfer_in(self, source: str, asset: str, amount: int) -> Any:
        """Pull ``amount`` of ``asset`` from ``source`` into custody."""
        ...

    def transfer_out(self, destination: str, asset: str, amount: int) -> Any:
        """Pay ``amount`` of ``asset`` out of custody to ``destination``."""
        ...

    def held_balance(self, asset: str) -> int:
        """Custody balance of ``asset``."""
        ...


@runtime_checkable
class AuthorityCheck(Protocol):
    """Answers whether an identity holds the controller role."""

    def is_controller(self, identity: str) -> bool:
        ...


@runtime_checkable
class AuditLog(Protocol):
    """Receives structured audit records."""

    def record(self, audit_record: AuditRecord) -> Any:
        ...


def transfer_succeeded(result: Any) -> bool:
    """True iff a ledger return value signals success."""
    if result is None or result is True:
        return True
    if isinstance(result, TransferResult):
        return result.success
    return False


def failure_reason(result: Any) -> str:
    """Human-readable reason for a failed ledger return value."""
    if isinstance(result, TransferResult) and result.reason:
        return result.reason
    return f"ledger returned {result!r}"
