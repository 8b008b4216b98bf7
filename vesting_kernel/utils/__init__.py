"""Utility functions for the vesting kernel."""

from vesting_kernel.utils.hashing import GENESIS, canonical_payload, hash_audit_event, hash_payload

__all__ = [
    "GENESIS",
    "canonical_payload",
    "hash_audit_event",
    "hash_payload",
]
