"""
Digests for the schedule audit chain.

Each audit event stores two SHA-256 digests:

    payload_hash = sha256(canonical JSON of the payload)
    hash         = sha256("entity_type|entity_id|action|payload_hash|prev_hash")

The first event links to the literal ``GENESIS`` in place of a previous
hash. Audit payloads hold only strings and integers, and amounts are
hashed as JSON integers at full precision. Anything that is not plain
JSON is rejected rather than coerced, so a digest computed when the
event is written can always be recomputed from the stored payload.
"""

import hashlib
import json

GENESIS = "GENESIS"
_SEPARATOR = "|"


def _sha256(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def canonical_payload(payload: dict) -> str:
    """
    Canonical JSON for an audit payload: sorted keys, no whitespace.

    Raises:
        TypeError: A value is not plain JSON (dataclass, enum, tuple key...).
        ValueError: A float is NaN or infinite.
    """
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), allow_nan=False)


def hash_payload(payload: dict) -> str:
    """Hex SHA-256 of ``canonical_payload(payload)``."""
    return _sha256(canonical_payload(payload))


def hash_audit_event(
    entity_type: str,
    entity_id: str,
    action: str,
    payload_hash: str,
    prev_hash: str | None,
) -> str:
    """Chain digest of one audit event, linked to its predecessor's hash."""
    return _sha256(
        _SEPARATOR.join((entity_type, entity_id, action, payload_hash, prev_hash or GENESIS))
    )
