"""
Data Transfer Objects for the accounting engine boundary.

Responsibility:
    Frozen value types passed into and returned from AccountingEngine:
    the explicit caller context, claim and revocation results, pending
    ledger transfers, and structured audit records.

Architecture position:
    Kernel > Domain -- pure data, zero I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping


@dataclass(frozen=True, slots=True)
class Caller:
    """
    Authenticated identity on whose behalf an engine call runs.

    Contract:
        The engine never reads identity from ambient state.  Whoever
        authenticates the request builds a Caller and passes it in.
    """

    identity: str
    correlation_id: str | None = None


class TransferDirection(str, Enum):
    """Which way value moves relative to custody."""

    IN = "in"
    OUT = "out"


@dataclass(frozen=True, slots=True)
class PendingTransfer:
    """
    A ledger transfer collected in phase 1 and executed in phase 2.

    ``schedule_indexes`` lists the schedules whose state change this
    transfer settles (several when payouts are batched per asset).
    """

    direction: TransferDirection
    counterparty: str
    asset: str
    amount: int
    schedule_indexes: tuple[int, ...] = ()


@dataclass(frozen=True, slots=True)
class Release:
    """Amount released from one schedule by a claim."""

    index: int
    asset: str
    amount: int


@dataclass(frozen=True, slots=True)
class ClaimResult:
    """Outcome of a claim: one Release per schedule that paid out."""

    beneficiary: str
    claimed_at: int
    releases: tuple[Release, ...] = ()

    @property
    def total_released(self) -> int:
        return sum(r.amount for r in self.releases)

    def released_by_asset(self) -> dict[str, int]:
        totals: dict[str, int] = {}
        for r in self.releases:
            totals[r.asset] = totals.get(r.asset, 0) + r.amount
        return totals

    @property
    def is_noop(self) -> bool:
        return not self.releases


@dataclass(frozen=True, slots=True)
class RevocationResult:
    """Outcome of a revocation."""

    beneficiary: str
    index: int
    asset: str
    revoked_at: int
    vested: int
    refund: int
    unclaimed: int


class AuditEventType(str, Enum):
    """Audit record kinds emitted by the engine."""

    CREATED = "created"
    CLAIMED = "claimed"
    REVOKED = "revoked"


@dataclass(frozen=True)
class AuditRecord:
    """Structured record handed to the AuditLog collaborator."""

    event: AuditEventType
    beneficiary: str
    asset: str
    schedule_index: int
    actor: str
    timestamp: int
    amounts: Mapping[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "amounts", MappingProxyType(dict(self.amounts)))
