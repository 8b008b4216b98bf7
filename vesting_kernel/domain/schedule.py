"""
VestingSchedule -- immutable snapshot of one entitlement.

Responsibility:
    The domain-side representation of a vesting schedule.  VestingMath
    operates only on this type; the ORM row (``VestingScheduleModel``)
    converts to it via ``to_snapshot()``.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    None at construction.  Snapshots mirror persisted rows, which are
    validated by AccountingEngine on creation and by db.immutability on
    every flush.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class VestingStatus(str, Enum):
    """Derived lifecycle position of a schedule at a given instant."""

    PENDING = "pending"
    VESTING = "vesting"
    FULLY_VESTED = "fully_vested"
    REVOKED = "revoked"
    SETTLED = "settled"


@dataclass(frozen=True, slots=True)
class VestingSchedule:
    """
    One entitlement instance.

    Contract:
        ``(beneficiary, index)`` is the stable address of the schedule.
        Amounts are indivisible integer units; times are integer seconds.
    """

    beneficiary: str
    index: int
    asset: str
    start_time: int
    duration: int
    cliff: int
    total_amount: int
    released_amount: int
    is_revocable: bool
    revoked: bool = False
    revoked_at: int | None = None

    @property
    def cliff_time(self) -> int:
        """First instant at which anything can be vested."""
        return self.start_time + self.cliff

    @property
    def end_time(self) -> int:
        """Instant at which the schedule is 100% vested."""
        return self.start_time + self.duration

    @property
    def outstanding_amount(self) -> int:
        """Liability still held in custody for this schedule."""
        return self.total_amount - self.released_amount

    @property
    def is_settled(self) -> bool:
        return self.released_amount == self.total_amount
