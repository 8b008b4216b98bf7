"""
vesting_services.wiring -- Build an AccountingEngine from configuration.

Responsibility:
    The bridge between ``vesting_config`` and the kernel: translates a
    ``CustodySettings`` into the engine's constructor arguments (authority,
    audit log, feature flags) so the kernel never reads configuration.
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from vesting_config.schema import CustodySettings
from vesting_kernel.domain.clock import Clock
from vesting_kernel.domain.collaborators import ValueLedger
from vesting_kernel.logging_config import get_logger
from vesting_kernel.services.accounting_engine import AccountingEngine
from vesting_kernel.services.auditor_service import AuditorService
from vesting_services.authority import ControllerAuthority

logger = get_logger("services.wiring")


def build_engine(
    session: Session,
    settings: CustodySettings,
    ledger: ValueLedger,
    clock: Clock | None = None,
) -> AccountingEngine:
    """
    Wire an AccountingEngine for ``session`` according to ``settings``.

    The process must have run ``bootstrap(settings)`` once beforehand so the
    session comes from the configured database and the immutability
    listeners are active.
    """
    audit_log = AuditorService(session) if settings.audit_enabled else None
    engine = AccountingEngine(
        session,
        ledger,
        ControllerAuthority(settings.controllers),
        clock=clock,
        audit_log=audit_log,
        verify_solvency=settings.verify_solvency,
        batch_payouts_per_asset=settings.batch_payouts_per_asset,
    )
    logger.debug(
        "engine_wired",
        extra={
            "config_set_id": settings.config_id,
            "checksum": settings.checksum,
            "audit_enabled": settings.audit_enabled,
        },
    )
    return engine
