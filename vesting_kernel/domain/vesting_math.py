"""
VestingMath -- pure vesting and release computations.

Responsibility:
    Computes how much of a schedule has vested, and how much of that is
    still releasable, at a query instant.  No side effects, no I/O.

Architecture position:
    Kernel > Domain -- pure functional core.  Depends only on
    ``domain.schedule``.

Invariants enforced:
    RELEASE_CEILING -- ``releasable_amount`` raises InvariantViolationError
        when released_amount exceeds the vested amount.  It never clamps.

Precision:
    Linear accrual is ``total_amount * elapsed // duration``: multiply
    first, then floor-divide.  Python integers are unbounded so the product
    cannot overflow.  Truncation is always downward, so the formula can
    under-release by strictly less than one unit at any instant and never
    over-releases; the shortfall disappears at ``end_time`` where the full
    ``total_amount`` vests.
"""

from __future__ import annotations

from vesting_kernel.domain.schedule import VestingSchedule, VestingStatus
from vesting_kernel.exceptions import InvariantViolationError
from vesting_kernel.invariants import VestingInvariant


def vested_amount(schedule: VestingSchedule, now: int) -> int:
    """
    Amount of ``schedule`` vested at instant ``now``.

    - before ``start_time + cliff``: 0
    - at or after ``start_time + duration``, or once revoked: ``total_amount``
      (a revoked schedule's total has already been frozen at the vested
      amount, so this branch is exact)
    - otherwise: ``floor(total_amount * (now - start_time) / duration)``
    """
    if now < schedule.start_time + schedule.cliff:
        return 0
    if now >= schedule.start_time + schedule.duration or schedule.revoked:
        return schedule.total_amount
    elapsed = now - schedule.start_time
    return schedule.total_amount * elapsed // schedule.duration


def releasable_amount(schedule: VestingSchedule, now: int) -> int:
    """
    Vested amount not yet released.

    Raises:
        InvariantViolationError: released_amount exceeds the vested amount.
    """
    releasable = vested_amount(schedule, now) - schedule.released_amount
    if releasable < 0:
        raise InvariantViolationError(
            VestingInvariant.RELEASE_CEILING.value,
            f"{schedule.beneficiary!r}[{schedule.index}] released "
            f"{schedule.released_amount} exceeds vested "
            f"{releasable + schedule.released_amount} at {now}",
        )
    return releasable


def outstanding_amount(schedule: VestingSchedule) -> int:
    """Custody liability for the schedule: total minus released."""
    return schedule.total_amount - schedule.released_amount


def vesting_status(schedule: VestingSchedule, now: int) -> VestingStatus:
    """Derived lifecycle position of ``schedule`` at ``now``."""
    if schedule.is_settled and vested_amount(schedule, now) == schedule.total_amount:
        return VestingStatus.SETTLED
    if schedule.revoked:
        return VestingStatus.REVOKED
    if now < schedule.cliff_time:
        return VestingStatus.PENDING
    if now >= schedule.end_time:
        return VestingStatus.FULLY_VESTED
    return VestingStatus.VESTING
