"""
vesting_services.value_ledger -- In-memory ValueLedger.

Responsibility:
    Reference implementation of the kernel's ``ValueLedger`` port: holder
    balances per (holder, asset), spending allowances granted to custody,
    and a dedicated custody account whose balance is the engine's
    ``held_balance``.

Architecture position:
    Services layer.  Used for development wiring and by the test suite;
    production deployments plug in an adapter for the real ledger.

Invariants:
    - Value is conserved: transfers move balance, only ``mint`` creates it.
    - Failures are reported as ``TransferResult.failed(...)`` and leave
      every balance untouched.
"""

from __future__ import annotations

from dataclasses import dataclass

from vesting_kernel.domain.collaborators import TransferResult
from vesting_kernel.domain.dtos import TransferDirection
from vesting_kernel.logging_config import get_logger

logger = get_logger("services.value_ledger")

DEFAULT_CUSTODY = "vesting-custody"


@dataclass(frozen=True)
class LedgerEntry:
    """One completed transfer."""

    direction: TransferDirection
    counterparty: str
    asset: str
    amount: int


class InMemoryValueLedger:
    """
    Dict-backed ledger with allowance-gated pulls into custody.

    Contract:
        ``transfer_in(source, ...)`` succeeds only if ``source`` approved
        custody for at least ``amount`` and holds at least ``amount``.
        ``transfer_out`` succeeds only if custody holds at least ``amount``.
    """

    def __init__(self, custody: str = DEFAULT_CUSTODY):
        self.custody = custody
        self._balances: dict[tuple[str, str], int] = {}
        self._allowances: dict[tuple[str, str], int] = {}
        self.history: list[LedgerEntry] = []

    # Setup helpers

    def mint(self, holder: str, asset: str, amount: int) -> None:
        if amount < 0:
            raise ValueError(f"Cannot mint a negative amount: {amount}")
        key = (holder, asset)
        self._balances[key] = self._balances.get(key, 0) + amount

    def approve(self, owner: str, asset: str, amount: int) -> None:
        """Allow custody to pull up to ``amount`` of ``asset`` from ``owner``."""
        if amount < 0:
            raise ValueError(f"Cannot approve a negative amount: {amount}")
        self._allowances[(owner, asset)] = amount

    def balance_of(self, holder: str, asset: str) -> int:
        return self._balances.get((holder, asset), 0)

    def allowance(self, owner: str, asset: str) -> int:
        return self._allowances.get((owner, asset), 0)

    # ValueLedger

    def held_balance(self, asset: str) -> int:
        return self.balance_of(self.custody, asset)

    def transfer_in(self, source: str, asset: str, amount: int) -> TransferResult:
        if amount <= 0:
            return TransferResult.failed(f"non-positive amount {amount}")
        if self.allowance(source, asset) < amount:
            return TransferResult.failed(
                f"allowance {self.allowance(source, asset)} < {amount} for {source!r}"
            )
        if self.balance_of(source, asset) < amount:
            return TransferResult.failed(
                f"balance {self.balance_of(source, asset)} < {amount} for {source!r}"
            )
        self._allowances[(source, asset)] -= amount
        self._move(source, self.custody, asset, amount)
        self.history.append(LedgerEntry(TransferDirection.IN, source, asset, amount))
        return TransferResult.ok()

    def transfer_out(self, destination: str, asset: str, amount: int) -> TransferResult:
        if amount <= 0:
            return TransferResult.failed(f"non-positive amount {amount}")
        if self.held_balance(asset) < amount:
            return TransferResult.failed(
                f"custody balance {self.held_balance(asset)} < {amount}"
            )
        self._move(self.custody, destination, asset, amount)
        self.history.append(LedgerEntry(TransferDirection.OUT, destination, asset, amount))
        return TransferResult.ok()

    def _move(self, sender: str, receiver: str, asset: str, amount: int) -> None:
        self._balances[(sender, asset)] = self.balance_of(sender, asset) - amount
        self._balances[(receiver, asset)] = self.balance_of(receiver, asset) + amount
        logger.debug(
            "ledger_transfer",
            extra={"sender": sender, "receiver": receiver, "transfer_asset": asset, "amount": amount},
        )
