"""
AccountingEngine -- create, claim and revoke vesting schedules.

Responsibility:
    Orchestrates the three state-changing operations over ScheduleStore,
    VestingMath and the external collaborators (ValueLedger, AuthorityCheck,
    AuditLog), and exposes the read-only query surface.

Architecture position:
    Kernel > Services -- top of the engine's three layers.  Depends on
    ScheduleStore, ScheduleSelector and domain.vesting_math; reaches the
    outside world only through the ports in domain.collaborators.

Invariants enforced:
    EFFECTS_BEFORE_TRANSFER -- every transfer is preceded by the state
        change it pays for (mutate and flush the schedule rows, then call
        the ledger).  A ledger that calls back into the engine during the
        transfer sees the already-raised released_amount / frozen
        total_amount and cannot release the same window twice.
    SOLVENCY -- follows from the ordering.  When ``verify_solvency`` is on,
        re-derived against the ledger after every outermost operation.
    ONE_WAY_REVOCATION -- revoke refuses already-revoked schedules.

Failure policy (mutate-then-transfer, roll back on failure):
    Each operation runs inside ``session.begin_nested()``.  Precondition
    errors abort before anything is touched.  A failed transfer rolls the
    savepoint back, so no schedule is left mutated without its transfer.
    A claim settles its payouts (per schedule, or per asset when batching)
    one at a time, each in its own savepoint that is closed before the
    next one opens.  The releasable amount is recomputed from the row
    inside that savepoint.  When payout k fails only savepoint k is rolled
    back; payouts 0..k-1, and whatever re-entrant calls did during their
    transfers, stand.  The TransferFailedError lists those releases.

Failure modes:
    UnauthorizedError, InvalidArgumentError, ScheduleNotFoundError,
    NoSchedulesError, NotRevocableError, AlreadyRevokedError,
    TransferFailedError, InvariantViolationError, SolvencyViolationError.
"""

from __future__ import annotations

from collections.abc import Iterable
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator

from sqlalchemy.orm import Session

from vesting_kernel.domain.clock import Clock, SystemClock
from vesting_kernel.domain.collaborators import (
    AuditLog,
    AuthorityCheck,
    ValueLedger,
    failure_reason,
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
from vesting_kernel.domain.schedule import VestingSchedule
from vesting_kernel.domain.vesting_math import releasable_amount, vested_amount
from vesting_kernel.exceptions import (
    AlreadyRevokedError,
    InvalidArgumentError,
    NoSchedulesError,
    NotRevocableError,
    SolvencyViolationError,
    TransferFailedError,
    UnauthorizedError,
)
from vesting_kernel.logging_config import LogContext, get_logger
from vesting_kernel.models.vesting_schedule import VestingScheduleModel
from vesting_kernel.selectors.schedule_selector import BeneficiarySummary, ScheduleSelector
from vesting_kernel.services.schedule_store import ScheduleStore

logger = get_logger("services.accounting_engine")


@dataclass
class _Operation:
    """Bookkeeping for one running engine operation."""

    name: str
    now: int
    assets: set[str] = field(default_factory=set)


@dataclass
class _Payout:
    """One claim transfer: an asset and the schedule indexes it settles."""

    asset: str
    indexes: list[int] = field(default_factory=list)


def _require_identity(argument: str, value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidArgumentError(argument, value, "must be a non-empty identity")
    return value


def _require_int(argument: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgumentError(argument, value, "must be an integer")
    return value


def _release_vested(now: int, sink: list[Release]) -> Callable[[VestingScheduleModel], None]:
    # Amount comes from the row as flushed, not from an earlier snapshot
    def apply(row: VestingScheduleModel) -> None:
        amount = releasable_amount(row.to_snapshot(), now)
        if amount > 0:
            row.released_amount = row.released_amount + amount
            sink.append(Release(row.schedule_index, row.asset, amount))

    return apply


def _revoke_at(now: int, vested: int) -> Callable[[VestingScheduleModel], None]:
    def apply(row: VestingScheduleModel) -> None:
        row.revoked = True
        row.total_amount = vested
        row.revoked_at = now

    return apply


class AccountingEngine:
    """
    Custody accounting over append-only vesting schedules.

    Contract:
        Every call names its caller explicitly through a ``Caller``.
        State changes are flushed to the caller's session but never
        committed; the caller owns the outer transaction.

    Guarantees:
        - No schedule is mutated without its ledger transfer succeeding.
        - released_amount never exceeds the vested amount.
        - A no-op claim (nothing releasable) succeeds and changes nothing.

    Non-goals:
        - Does NOT lock.  Serializability comes from the caller running
          operations one at a time on a session; re-entrancy safety comes
          from ordering.
    """

    def __init__(
        self,
        session: Session,
        ledger: ValueLedger,
        authority: AuthorityCheck,
        clock: Clock | None = None,
        audit_log: AuditLog | None = None,
        *,
        verify_solvency: bool = True,
        batch_payouts_per_asset: bool = False,
    ):
        self._session = session
        self._ledger = ledger
        self._authority = authority
        self._clock = clock or SystemClock()
        self._audit_log = audit_log
        self._verify_solvency = verify_solvency
        self._batch_payouts = batch_payouts_per_asset
        self._store = ScheduleStore(session)
        self._selector = ScheduleSelector(session)
        self._depth = 0

    # ------------------------------------------------------------------
    # Operation scaffolding
    # ------------------------------------------------------------------

    @contextmanager
    def _operation(self, name: str, caller: Caller, **context: str | None) -> Iterator[_Operation]:
        op = _Operation(name=name, now=self._clock.now())
        self._depth += 1
        try:
            with LogContext.bind(
                correlation_id=caller.correlation_id,
                actor_id=caller.identity,
                operation=name,
                **context,
            ):
                try:
                    with self._session.begin_nested():
                        yield op
                except Exception:
                    logger.warning("operation_aborted", extra={"depth": self._depth}, exc_info=True)
                    raise
                # Re-entrant calls run while outer payouts are still pending
                if self._depth == 1 and self._verify_solvency and op.assets:
                    self.check_solvency(op.assets)
        finally:
            self._depth -= 1

    def _require_controller(self, caller: Caller, operation: str) -> None:
        if not self._authority.is_controller(caller.identity):
            raise UnauthorizedError(caller.identity, operation)

    def _execute(self, transfer: PendingTransfer) -> None:
        """Perform one ledger transfer; any non-success becomes TransferFailedError."""
        if transfer.direction is TransferDirection.IN:
            call = self._ledger.transfer_in
        else:
            call = self._ledger.transfer_out
        try:
            result = call(transfer.counterparty, transfer.asset, transfer.amount)
        except Exception as exc:
            logger.warning(
                "transfer_failed",
                extra={
                    "direction": transfer.direction.value,
                    "counterparty": transfer.counterparty,
                    "transfer_asset": transfer.asset,
                    "amount": transfer.amount,
                },
                exc_info=True,
            )
            raise TransferFailedError(
                transfer.direction.value,
                transfer.counterparty,
                transfer.asset,
                transfer.amount,
                f"ledger raised {type(exc).__name__}: {exc}",
            ) from exc
        if not transfer_succeeded(result):
            reason = failure_reason(result)
            logger.warning(
                "transfer_failed",
                extra={
                    "direction": transfer.direction.value,
                    "counterparty": transfer.counterparty,
                    "transfer_asset": transfer.asset,
                    "amount": transfer.amount,
                    "reason": reason,
                },
            )
            raise TransferFailedError(
                transfer.direction.value,
                transfer.counterparty,
                transfer.asset,
                transfer.amount,
                reason,
            )

    def _emit(
        self,
        event: AuditEventType,
        schedule: VestingSchedule,
        actor: str,
        now: int,
        **amounts: int,
    ) -> None:
        if self._audit_log is None:
            return
        self._audit_log.record(
            AuditRecord(
                event=event,
                beneficiary=schedule.beneficiary,
                asset=schedule.asset,
                schedule_index=schedule.index,
                actor=actor,
                timestamp=now,
                amounts=amounts,
            )
        )

    # ------------------------------------------------------------------
    # createSchedule
    # ------------------------------------------------------------------

    def create_schedule(
        self,
        caller: Caller,
        beneficiary: str,
        asset: str,
        start_time: int,
        duration: int,
        cliff: int,
        total_amount: int,
        is_revocable: bool,
    ) -> int:
        """
        Fund and append a new schedule for ``beneficiary``.

        Pulls ``total_amount`` of ``asset`` from the controller into custody
        first; the schedule is appended only once that transfer succeeds.

        Returns:
            The new schedule's index within ``beneficiary``'s sequence.
        """
        with self._operation("create_schedule", caller, beneficiary=beneficiary, asset=asset) as op:
            self._require_controller(caller, "create_schedule")
            _require_identity("beneficiary", beneficiary)
            _require_identity("asset", asset)
            _require_int("start_time", start_time)
            _require_int("duration", duration)
            _require_int("cliff", cliff)
            _require_int("total_amount", total_amount)
            if not isinstance(is_revocable, bool):
                raise InvalidArgumentError("is_revocable", is_revocable, "must be a bool")
            if start_time < 0:
                raise InvalidArgumentError("start_time", start_time, "must be >= 0")
            if duration <= 0:
                raise InvalidArgumentError("duration", duration, "must be > 0")
            if total_amount <= 0:
                raise InvalidArgumentError("total_amount", total_amount, "must be > 0")
            if cliff < 0 or cliff > duration:
                raise InvalidArgumentError("cliff", cliff, f"must be within [0, duration={duration}]")

            self._execute(
                PendingTransfer(TransferDirection.IN, caller.identity, asset, total_amount)
            )
            op.assets.add(asset)

            index = self._store.create(
                beneficiary,
                asset=asset,
                start_time=start_time,
                duration=duration,
                cliff=cliff,
                total_amount=total_amount,
                is_revocable=is_revocable,
                created_by=caller.identity,
            )
            schedule = self._store.get(beneficiary, index)
            self._emit(
                AuditEventType.CREATED, schedule, caller.identity, op.now,
                total_amount=total_amount,
            )
            logger.info(
                "schedule_created",
                extra={
                    "schedule_index": index,
                    "total_amount": total_amount,
                    "start_time": start_time,
                    "duration": duration,
                    "cliff": cliff,
                    "is_revocable": is_revocable,
                },
            )
        return index

    # ------------------------------------------------------------------
    # claim
    # ------------------------------------------------------------------

    def _plan_payouts(self, schedules: list[VestingSchedule], now: int) -> list[_Payout]:
        payouts: list[_Payout] = []
        by_asset: dict[str, _Payout] = {}
        for snap in schedules:
            if releasable_amount(snap, now) <= 0:
                continue
            if not self._batch_payouts:
                payouts.append(_Payout(snap.asset, [snap.index]))
            elif snap.asset in by_asset:
                by_asset[snap.asset].indexes.append(snap.index)
            else:
                by_asset[snap.asset] = _Payout(snap.asset, [snap.index])
                payouts.append(by_asset[snap.asset])
        return payouts

    def _settle(self, beneficiary: str, payout: _Payout, now: int) -> list[Release]:
        """
        Release and pay one payout inside its own savepoint.

        The savepoint is closed before the next payout opens, so anything a
        re-entrant call does during this transfer commits or rolls back
        together with this payout and no other.
        """
        releases: list[Release] = []
        with self._session.begin_nested():
            # Effects first: rows are raised and flushed before the transfer
            for index in payout.indexes:
                self._store.mutate(beneficiary, index, _release_vested(now, releases))
            if releases:
                self._execute(
                    PendingTransfer(
                        TransferDirection.OUT,
                        beneficiary,
                        payout.asset,
                        sum(r.amount for r in releases),
                        tuple(r.index for r in releases),
                    )
                )
        return releases

    def claim(self, caller: Caller) -> ClaimResult:
        """
        Release everything currently vested-but-unreleased to the caller.

        Raises:
            NoSchedulesError: The caller owns no schedules.
            TransferFailedError: A payout failed; ``completed`` lists the
                releases that settled before it.
        """
        beneficiary = caller.identity
        failure: TransferFailedError | None = None
        completed: list[Release] = []

        with self._operation("claim", caller, beneficiary=beneficiary) as op:
            schedules = self._store.list_for(beneficiary)
            if not schedules:
                raise NoSchedulesError(beneficiary)

            for payout in self._plan_payouts(schedules, op.now):
                try:
                    releases = self._settle(beneficiary, payout, op.now)
                except TransferFailedError as exc:
                    failure = exc
                    break
                if releases:
                    op.assets.add(payout.asset)
                for release in releases:
                    snap = self._store.get(beneficiary, release.index)
                    self._emit(
                        AuditEventType.CLAIMED, snap, beneficiary, op.now,
                        released=release.amount,
                        released_total=snap.released_amount,
                    )
                completed.extend(releases)

            result = ClaimResult(
                beneficiary=beneficiary, claimed_at=op.now, releases=tuple(completed)
            )
            if completed:
                logger.info(
                    "tokens_claimed",
                    extra={
                        "release_count": len(completed),
                        "released": result.released_by_asset(),
                    },
                )
            elif failure is None:
                logger.info("claim_noop", extra={"schedule_count": len(schedules)})

        if failure is not None:
            failure.completed = result.releases
            raise failure
        return result

    # ------------------------------------------------------------------
    # revoke
    # ------------------------------------------------------------------

    def revoke(self, caller: Caller, beneficiary: str, index: int) -> RevocationResult:
        """
        Freeze ``beneficiary``'s schedule at ``index`` and refund the
        unvested remainder to the controller.

        The vested-but-unclaimed part stays in custody and remains
        claimable by the beneficiary.
        """
        with self._operation("revoke", caller, beneficiary=beneficiary) as op:
            self._require_controller(caller, "revoke")
            snap = self._store.get(beneficiary, index)
            if not snap.is_revocable:
                raise NotRevocableError(beneficiary, index)
            if snap.revoked:
                raise AlreadyRevokedError(beneficiary, index)

            vested = vested_amount(snap, op.now)
            unclaimed = releasable_amount(snap, op.now)
            refund = snap.total_amount - vested

            # Phase 1
            revoked = self._store.mutate(beneficiary, index, _revoke_at(op.now, vested))

            # Phase 2
            if refund > 0:
                self._execute(
                    PendingTransfer(
                        TransferDirection.OUT, caller.identity, snap.asset, refund, (index,)
                    )
                )
            op.assets.add(snap.asset)

            self._emit(
                AuditEventType.REVOKED, revoked, caller.identity, op.now,
                vested=vested,
                refund=refund,
                unclaimed=unclaimed,
            )
            logger.info(
                "schedule_revoked",
                extra={
                    "schedule_index": index,
                    "asset": snap.asset,
                    "vested": vested,
                    "refund": refund,
                    "unclaimed": unclaimed,
                },
            )

        return RevocationResult(
            beneficiary=beneficiary,
            index=index,
            asset=snap.asset,
            revoked_at=op.now,
            vested=vested,
            refund=refund,
            unclaimed=unclaimed,
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def schedule_count(self, beneficiary: str) -> int:
        return self._store.count(beneficiary)

    def get_schedule(self, beneficiary: str, index: int) -> VestingSchedule:
        return self._store.get(beneficiary, index)

    def vested_amount(self, beneficiary: str, index: int) -> int:
        """Vested amount of one schedule at the engine clock's current instant."""
        return vested_amount(self._store.get(beneficiary, index), self._clock.now())

    def releasable_amount(self, beneficiary: str, index: int) -> int:
        """Releasable amount of one schedule at the engine clock's current instant."""
        return releasable_amount(self._store.get(beneficiary, index), self._clock.now())

    def summary(self, beneficiary: str) -> BeneficiarySummary:
        return self._selector.summary(beneficiary, self._clock.now())

    def check_solvency(self, assets: Iterable[str] | None = None) -> dict[str, int]:
        """
        Verify held balance == outstanding liability for each asset.

        Args:
            assets: Assets to check.  Defaults to every asset with a schedule.

        Returns:
            The verified outstanding liability per asset.

        Raises:
            SolvencyViolationError: For the first asset that does not balance.
        """
        if assets is None:
            outstanding = self._selector.outstanding_by_asset()
        else:
            outstanding = {a: self._selector.outstanding_for_asset(a) for a in set(assets)}
        verified: dict[str, int] = {}
        for asset in sorted(outstanding):
            held = self._ledger.held_balance(asset)
            owed = outstanding[asset]
            if held != owed:
                logger.critical(
                    "solvency_violated",
                    extra={"solvency_asset": asset, "held": held, "outstanding": owed},
                )
                raise SolvencyViolationError(asset, held, owed)
            verified[asset] = owed
        logger.debug("solvency_verified", extra={"outstanding": verified})
        return verified
