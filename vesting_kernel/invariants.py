"""
Kernel Invariants Contract.

These invariants are structural law. They are hardcoded in the accounting
engine, the vesting math, and the ORM flush listeners. No configuration
flag may switch them off (``verify_solvency`` only controls whether the
engine re-derives SOLVENCY against the ledger after each operation; the
ordering that establishes it is unconditional).

This module exists solely to declare these invariants explicitly. The
enforcement is distributed across AccountingEngine, vesting_math, and
db.immutability.
"""

from enum import Enum, unique


@unique
class VestingInvariant(str, Enum):
    """Non-configurable invariants enforced by the kernel."""

    SOLVENCY = "solvency"
    """For every asset, held custody balance equals the sum of
    (total_amount - released_amount) over that asset's schedules. Emerges
    from the per-operation ordering in AccountingEngine; re-checked by
    AccountingEngine.check_solvency()."""

    RELEASE_CEILING = "release_ceiling"
    """released_amount <= vested_amount(now) <= total_amount. Enforced by
    vesting_math.releasable_amount (raises, never clamps) and by the
    VestingSchedule flush listener."""

    MONOTONIC_RELEASE = "monotonic_release"
    """released_amount never decreases. Enforced by db.immutability."""

    TOTAL_NEVER_RAISED = "total_never_raised"
    """total_amount never increases and only decreases at revocation.
    Enforced by db.immutability."""

    ONE_WAY_REVOCATION = "one_way_revocation"
    """revoked transitions false -> true at most once. Enforced by
    AccountingEngine.revoke and db.immutability."""

    APPEND_ONLY_SCHEDULES = "append_only_schedules"
    """Schedules are never deleted and indexes are never reused. Enforced
    by ScheduleStore and db.immutability."""

    EFFECTS_BEFORE_TRANSFER = "effects_before_transfer"
    """All schedule mutations for an operation are flushed before any
    ledger transfer is requested. Enforced by AccountingEngine's two-phase
    structure."""


# The kernel package may not import from these packages.
# This is enforced by tests/architecture/test_vesting_boundaries.py.
FORBIDDEN_KERNEL_IMPORTS: tuple[str, ...] = (
    "vesting_config",
    "vesting_services",
)
