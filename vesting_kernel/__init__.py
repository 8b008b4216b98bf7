"""
Vesting Kernel - custody and release accounting

A custody engine that holds deposited value for beneficiaries and releases
it on a cliff + linear vesting schedule, with:
- Append-only schedule storage addressed by stable per-beneficiary index
- Exact integer vesting math (multiply before divide, truncate downward)
- Pull-release claims and controller revocation (cap-and-refund)
- Effects-before-transfer ordering with savepoint rollback
- Per-asset solvency invariant and a hash-chained audit trail
"""

__version__ = "0.1.0"
