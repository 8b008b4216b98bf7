"""Services for the vesting kernel (write side)."""

from vesting_kernel.services.accounting_engine import AccountingEngine
from vesting_kernel.services.auditor_service import (
    AuditorService,
    AuditTrace,
    AuditTraceEntry,
)
from vesting_kernel.services.base import BaseService
from vesting_kernel.services.schedule_store import ScheduleStore
from vesting_kernel.services.sequence_service import SequenceService

__all__ = [
    "AccountingEngine",
    "AuditorService",
    "AuditTrace",
    "AuditTraceEntry",
    "BaseService",
    "ScheduleStore",
    "SequenceService",
]
