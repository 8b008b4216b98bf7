"""
ORM-Level Immutability Enforcement.

===============================================================================
WHY THIS EXISTS
===============================================================================

AccountingEngine is the only code path that should change a schedule, and
it only ever makes three kinds of change: raise released_amount (claim),
and, once, set revoked while lowering total_amount (revoke).  This module
refuses every other change at flush time, so a bug or a stray
``session.delete()`` cannot silently break the solvency arithmetic.

SQLAlchemy fires events before UPDATE/DELETE reach the database:

    session.flush()
         |
         v
    [before_update] --> _check_schedule_update() --> ImmutabilityViolationError
         |                                                   ^
         v                                                   |
    [before_delete] --> _check_schedule_delete() -----------+
         |
         v
    SQL sent to database (only if checks pass)

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity            | Rule
------------------|-----------------------------------------------------------
VestingSchedule   | Never deleted.  Terms frozen.  released_amount only rises.
                  | total_amount only falls, and only in the flush that sets
                  | revoked.  revoked never reverts.  released <= total.
AuditEvent        | ALWAYS immutable, never deleted.

Audit metadata (updated_at) is allowed to change.
"""

from sqlalchemy import event
from sqlalchemy.orm.attributes import get_history

from vesting_kernel.exceptions import ImmutabilityViolationError, InvariantViolationError
from vesting_kernel.invariants import VestingInvariant
from vesting_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

# Fixed at creation; any change is a violation
SCHEDULE_FROZEN_FIELDS = frozenset({
    "beneficiary",
    "schedule_index",
    "asset",
    "start_time",
    "duration",
    "cliff",
    "is_revocable",
    "created_by",
})


def _change(target, key):
    """Return (old, new) if ``key`` changed in this flush, else None."""
    hist = get_history(target, key)
    if not hist.has_changes():
        return None
    old = hist.deleted[0] if hist.deleted else None
    new = hist.added[0] if hist.added else None
    return old, new


def _schedule_id(target) -> str:
    return f"{target.beneficiary}#{target.schedule_index}"


def _block(target, entity_type: str, operation: str, reason: str, field: str | None = None):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": _schedule_id(target) if entity_type == "VestingSchedule" else str(target.id),
            "operation": operation,
            "field": field,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=_schedule_id(target) if entity_type == "VestingSchedule" else str(target.id),
        reason=reason,
    )


def _check_schedule_update(mapper, connection, target):
    """
    Allow only claim and revoke shaped changes to a VestingSchedule.
    """
    for key in SCHEDULE_FROZEN_FIELDS:
        if _change(target, key) is not None:
            _block(target, "VestingSchedule", "UPDATE", f"Cannot modify frozen field '{key}'", key)

    revoked_change = _change(target, "revoked")
    if revoked_change is not None:
        old, new = revoked_change
        if not (old is False and new is True):
            _block(
                target, "VestingSchedule", "UPDATE",
                f"revoked may only go False -> True (got {old!r} -> {new!r})", "revoked",
            )

    if _change(target, "revoked_at") is not None and revoked_change is None:
        _block(target, "VestingSchedule", "UPDATE", "revoked_at is set only by revocation", "revoked_at")

    total_change = _change(target, "total_amount")
    if total_change is not None:
        old, new = total_change
        if revoked_change is None:
            _block(
                target, "VestingSchedule", "UPDATE",
                "total_amount may only change at revocation", "total_amount",
            )
        if new > old:
            _block(
                target, "VestingSchedule", "UPDATE",
                f"total_amount may not increase ({old} -> {new})", "total_amount",
            )

    released_change = _change(target, "released_amount")
    if released_change is not None:
        old, new = released_change
        if new < old:
            _block(
                target, "VestingSchedule", "UPDATE",
                f"released_amount may not decrease ({old} -> {new})", "released_amount",
            )

    if target.released_amount > target.total_amount:
        logger.critical(
            "release_ceiling_violated",
            extra={
                "entity_id": _schedule_id(target),
                "released_amount": target.released_amount,
                "total_amount": target.total_amount,
            },
        )
        raise InvariantViolationError(
            VestingInvariant.RELEASE_CEILING.value,
            f"{_schedule_id(target)} released {target.released_amount} "
            f"exceeds total {target.total_amount}",
        )


def _check_schedule_delete(mapper, connection, target):
    """Schedules are append-only."""
    _block(target, "VestingSchedule", "DELETE", "Vesting schedules cannot be deleted")


def _check_audit_event_update(mapper, connection, target):
    """Audit events are always immutable."""
    _block(target, "AuditEvent", "UPDATE", "Audit events are immutable and cannot be modified")


def _check_audit_event_delete(mapper, connection, target):
    """Audit events cannot be deleted."""
    _block(target, "AuditEvent", "DELETE", "Audit events cannot be deleted")


_LISTENERS = (
    ("VestingScheduleModel", "before_update", _check_schedule_update),
    ("VestingScheduleModel", "before_delete", _check_schedule_delete),
    ("AuditEvent", "before_update", _check_audit_event_update),
    ("AuditEvent", "before_delete", _check_audit_event_delete),
)


def _targets():
    from vesting_kernel.models import AuditEvent, VestingScheduleModel

    return {"VestingScheduleModel": VestingScheduleModel, "AuditEvent": AuditEvent}


def register_immutability_listeners():
    """
    Register all immutability enforcement event listeners (idempotent).

    Call this after models are imported but before any database
    operations begin.
    """
    targets = _targets()
    for name, event_name, fn in _LISTENERS:
        if not event.contains(targets[name], event_name, fn):
            event.listen(targets[name], event_name, fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests that intentionally violate the rules
    to verify detection elsewhere (e.g. audit chain validation).
    """
    targets = _targets()
    for name, event_name, fn in _LISTENERS:
        if event.contains(targets[name], event_name, fn):
            event.remove(targets[name], event_name, fn)
