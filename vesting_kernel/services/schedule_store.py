"""
ScheduleStore -- append-only collection of vesting schedules.

Responsibility:
    Owns the schedule arena: appends new schedules to a beneficiary's
    sequence, resolves (beneficiary, index) to a schedule, and exposes the
    single narrowly-scoped mutation path used by claim and revoke.

Architecture position:
    Kernel > Services -- the leaf of the engine's three layers.  Knows
    nothing about vesting math, ledgers or authority.

Invariants enforced:
    APPEND_ONLY_SCHEDULES -- ``create`` assigns index == current count; no
        method removes a row or reassigns an index.  The unique constraint
        on (beneficiary, schedule_index) and the delete listener back this
        up at the database and ORM layers.

Failure modes:
    - ScheduleNotFoundError for an out-of-range (beneficiary, index).
"""

from __future__ import annotations

from typing import Callable

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from vesting_kernel.domain.schedule import VestingSchedule
from vesting_kernel.exceptions import ScheduleNotFoundError
from vesting_kernel.logging_config import get_logger
from vesting_kernel.models.vesting_schedule import VestingScheduleModel
from vesting_kernel.services.base import BaseService

logger = get_logger("services.schedule_store")


class ScheduleStore(BaseService[VestingScheduleModel]):
    """
    Append-only, index-addressed schedule storage.

    Guarantees:
        - Indexes are 0-based, dense and stable per beneficiary.
        - ``get`` and ``list_for`` return immutable snapshots; the ORM row
          is only reachable through ``mutate``.
    """

    def __init__(self, session: Session):
        super().__init__(session)

    def count(self, beneficiary: str) -> int:
        return self.session.execute(
            select(func.count())
            .select_from(VestingScheduleModel)
            .where(VestingScheduleModel.beneficiary == beneficiary)
        ).scalar_one()

    def create(
        self,
        beneficiary: str,
        *,
        asset: str,
        start_time: int,
        duration: int,
        cliff: int,
        total_amount: int,
        is_revocable: bool,
        created_by: str,
    ) -> int:
        """
        Append a schedule to ``beneficiary``'s sequence.

        Postconditions:
            - The new row is flushed with released_amount=0, revoked=False.
            - Returns its index, equal to the count before the call.
        """
        index = self.count(beneficiary)
        row = VestingScheduleModel(
            beneficiary=beneficiary,
            schedule_index=index,
            asset=asset,
            start_time=start_time,
            duration=duration,
            cliff=cliff,
            total_amount=total_amount,
            released_amount=0,
            is_revocable=is_revocable,
            revoked=False,
            revoked_at=None,
            created_by=created_by,
        )
        self.session.add(row)
        self.session.flush()
        logger.debug(
            "schedule_appended",
            extra={"beneficiary": beneficiary, "schedule_index": index, "asset": asset},
        )
        return index

    def _row(self, beneficiary: str, index: int) -> VestingScheduleModel:
        row = None
        if isinstance(index, int) and not isinstance(index, bool) and index >= 0:
            row = self.session.execute(
                select(VestingScheduleModel).where(
                    VestingScheduleModel.beneficiary == beneficiary,
                    VestingScheduleModel.schedule_index == index,
                )
            ).scalar_one_or_none()
        if row is None:
            raise ScheduleNotFoundError(beneficiary, index, self.count(beneficiary))
        return row

    def get(self, beneficiary: str, index: int) -> VestingSchedule:
        """Snapshot of ``beneficiary``'s schedule at ``index``."""
        return self._row(beneficiary, index).to_snapshot()

    def list_for(self, beneficiary: str) -> list[VestingSchedule]:
        """All of ``beneficiary``'s schedules in index order."""
        rows = self.session.execute(
            select(VestingScheduleModel)
            .where(VestingScheduleModel.beneficiary == beneficiary)
            .order_by(VestingScheduleModel.schedule_index)
        ).scalars().all()
        return [row.to_snapshot() for row in rows]

    def mutate(
        self,
        beneficiary: str,
        index: int,
        fn: Callable[[VestingScheduleModel], None],
    ) -> VestingSchedule:
        """
        Apply ``fn`` to the schedule row and flush immediately.

        The flush is what makes the change visible to any re-entrant call
        before the caller goes on to request a ledger transfer.
        """
        row = self._row(beneficiary, index)
        fn(row)
        self.session.flush()
        return row.to_snapshot()
