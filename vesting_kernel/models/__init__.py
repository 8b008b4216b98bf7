"""ORM models for the vesting kernel."""

from vesting_kernel.models.audit_event import AuditAction, AuditEvent
from vesting_kernel.models.vesting_schedule import VestingScheduleModel

__all__ = [
    "AuditAction",
    "AuditEvent",
    "VestingScheduleModel",
]
