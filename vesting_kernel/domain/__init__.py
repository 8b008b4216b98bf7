"""Pure domain layer: schedule snapshots, vesting math, DTOs, collaborator ports."""

from vesting_kernel.domain.clock import Clock, DeterministicClock, SequentialClock, SystemClock
from vesting_kernel.domain.collaborators import (
    AuditLog,
    AuthorityCheck,
    TransferResult,
    ValueLedger,
    transfer_succeeded,
)
from vesting_kernel.domain.dtos import (
    AuditEventType,
    AuditRecord,
    Caller,
    ClaimResult,
    PendingTransfer,
    Release,
    RevocationResult,
    TransferDirection,
)
from vesting_kernel.domain.schedule import VestingSchedule, VestingStatus
from vesting_kernel.domain.vesting_math import (
    outstanding_amount,
    releasable_amount,
    vested_amount,
    vesting_status,
)

__all__ = [
    "AuditEventType",
    "AuditLog",
    "AuditRecord",
    "AuthorityCheck",
    "Caller",
    "ClaimResult",
    "Clock",
    "DeterministicClock",
    "PendingTransfer",
    "Release",
    "RevocationResult",
    "SequentialClock",
    "SystemClock",
    "TransferDirection",
    "TransferResult",
    "ValueLedger",
    "VestingSchedule",
    "VestingStatus",
    "outstanding_amount",
    "releasable_amount",
    "transfer_succeeded",
    "vested_amount",
    "vesting_status",
]
