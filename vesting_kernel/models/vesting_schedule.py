"""
Module: vesting_kernel.models.vesting_schedule
Responsibility: ORM persistence for vesting schedules -- the arena of schedule
    records addressed by (beneficiary, schedule_index).
Architecture position: Kernel > Models.  May import from db/base.py and the
    pure domain snapshot type only.

Invariants enforced:
    APPEND_ONLY_SCHEDULES -- (beneficiary, schedule_index) is UNIQUE; rows are
        never deleted (db.immutability).
    Terms are frozen at creation: beneficiary, schedule_index, asset,
        start_time, duration, cliff, is_revocable (db.immutability).
    MONOTONIC_RELEASE / TOTAL_NEVER_RAISED / ONE_WAY_REVOCATION
        (db.immutability).

Failure modes:
    - IntegrityError on a duplicate (beneficiary, schedule_index).
    - ImmutabilityViolationError on any forbidden change at flush time.

Audit relevance:
    created_by records the controller identity that funded the schedule.
    revoked_at records the instant whose vested amount was frozen.
"""

from __future__ import annotations

from sqlalchemy import Boolean, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from vesting_kernel.db.base import TrackedBase, UnitAmount
from vesting_kernel.domain.schedule import VestingSchedule


class VestingScheduleModel(TrackedBase):
    """
    Persistent storage for one vesting schedule.

    Contract:
        Each row is one entitlement.  Only AccountingEngine (through
        ScheduleStore.mutate) changes released_amount, total_amount,
        revoked and revoked_at.

    Non-goals:
        - Does NOT compute vested amounts; see domain.vesting_math.
        - Does NOT validate creation arguments; AccountingEngine does.
    """

    __tablename__ = "vesting_schedules"

    __table_args__ = (
        UniqueConstraint("beneficiary", "schedule_index", name="uq_schedule_beneficiary_index"),
        # Query: solvency aggregation per asset
        Index("idx_schedule_asset", "asset"),
    )

    beneficiary: Mapped[str] = mapped_column(String(100), nullable=False)

    # Stable position within the beneficiary's sequence, 0-based
    schedule_index: Mapped[int] = mapped_column(nullable=False)

    asset: Mapped[str] = mapped_column(String(100), nullable=False)

    start_time: Mapped[int] = mapped_column(nullable=False)
    duration: Mapped[int] = mapped_column(nullable=False)
    cliff: Mapped[int] = mapped_column(nullable=False)

    # INVARIANT: lowered once at revocation, never raised
    total_amount: Mapped[int] = mapped_column(UnitAmount(), nullable=False)

    # INVARIANT: monotonically non-decreasing, <= total_amount
    released_amount: Mapped[int] = mapped_column(UnitAmount(), nullable=False, default=0)

    is_revocable: Mapped[bool] = mapped_column(Boolean, nullable=False)

    # INVARIANT: false -> true at most once
    revoked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    revoked_at: Mapped[int | None] = mapped_column(nullable=True)

    def to_snapshot(self) -> VestingSchedule:
        """Immutable domain view of this row."""
        return VestingSchedule(
            beneficiary=self.beneficiary,
            index=self.schedule_index,
            asset=self.asset,
            start_time=self.start_time,
            duration=self.duration,
            cliff=self.cliff,
            total_amount=self.total_amount,
            released_amount=self.released_amount,
            is_revocable=self.is_revocable,
            revoked=self.revoked,
            revoked_at=self.revoked_at,
        )

    def __repr__(self) -> str:
        return (
            f"<VestingSchedule {self.beneficiary}[{self.schedule_index}] "
            f"{self.released_amount}/{self.total_amount} {self.asset}"
            f"{' revoked' if self.revoked else ''}>"
        )
