"""
vesting_services -- collaborator adapters and wiring around the kernel.

Provides a reference ``ValueLedger`` (``InMemoryValueLedger``), the
configuration-backed ``AuthorityCheck`` (``ControllerAuthority``) and
``build_engine`` to assemble an ``AccountingEngine`` from settings, after
``bootstrap`` has applied those settings to the process.
"""

from vesting_services.authority import ControllerAuthority
from vesting_services.bootstrap import bootstrap
from vesting_services.value_ledger import DEFAULT_CUSTODY, InMemoryValueLedger, LedgerEntry
from vesting_services.wiring import build_engine

__all__ = [
    "DEFAULT_CUSTODY",
    "ControllerAuthority",
    "InMemoryValueLedger",
    "LedgerEntry",
    "bootstrap",
    "build_engine",
]
