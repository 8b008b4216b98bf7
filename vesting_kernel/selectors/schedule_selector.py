"""
Module: vesting_kernel.selectors.schedule_selector
Responsibility: Read-only aggregate queries over vesting schedules:
    outstanding liability per asset (the right-hand side of the solvency
    invariant) and per-beneficiary position summaries.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Liability is always derived from schedule rows (total - released);
      there is no stored running balance to drift.
    - Sums are computed in Python over exact ints, never in SQL.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import select

from vesting_kernel.domain.schedule import VestingSchedule, VestingStatus
from vesting_kernel.domain.vesting_math import releasable_amount, vested_amount, vesting_status
from vesting_kernel.models.vesting_schedule import VestingScheduleModel
from vesting_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class SchedulePosition:
    """One schedule evaluated at an instant."""

    schedule: VestingSchedule
    as_of: int
    vested: int
    releasable: int
    status: VestingStatus


@dataclass(frozen=True)
class BeneficiarySummary:
    """All of a beneficiary's schedules evaluated at an instant."""

    beneficiary: str
    as_of: int
    positions: tuple[SchedulePosition, ...]

    @property
    def releasable_by_asset(self) -> dict[str, int]:
        totals: dict[str, int] = {}
        for p in self.positions:
            totals[p.schedule.asset] = totals.get(p.schedule.asset, 0) + p.releasable
        return totals

    @property
    def outstanding_by_asset(self) -> dict[str, int]:
        totals: dict[str, int] = {}
        for p in self.positions:
            asset = p.schedule.asset
            totals[asset] = totals.get(asset, 0) + p.schedule.outstanding_amount
        return totals


class ScheduleSelector(BaseSelector[VestingScheduleModel]):
    """Read-only schedule queries."""

    def outstanding_for_asset(self, asset: str) -> int:
        """Sum of (total_amount - released_amount) over ``asset``'s schedules."""
        rows = self.session.execute(
            select(VestingScheduleModel.total_amount, VestingScheduleModel.released_amount)
            .where(VestingScheduleModel.asset == asset)
        ).all()
        return sum(total - released for total, released in rows)

    def outstanding_by_asset(self) -> dict[str, int]:
        rows = self.session.execute(
            select(
                VestingScheduleModel.asset,
                VestingScheduleModel.total_amount,
                VestingScheduleModel.released_amount,
            )
        ).all()
        totals: dict[str, int] = {}
        for asset, total, released in rows:
            totals[asset] = totals.get(asset, 0) + (total - released)
        return totals

    def summary(self, beneficiary: str, as_of: int) -> BeneficiarySummary:
        """Evaluate every schedule of ``beneficiary`` at ``as_of``."""
        rows = self.session.execute(
            select(VestingScheduleModel)
            .where(VestingScheduleModel.beneficiary == beneficiary)
            .order_by(VestingScheduleModel.schedule_index)
        ).scalars().all()
        positions = []
        for row in rows:
            snap = row.to_snapshot()
            positions.append(
                SchedulePosition(
                    schedule=snap,
                    as_of=as_of,
                    vested=vested_amount(snap, as_of),
                    releasable=releasable_amount(snap, as_of),
                    status=vesting_status(snap, as_of),
                )
            )
        return BeneficiarySummary(beneficiary=beneficiary, as_of=as_of, positions=tuple(positions))
