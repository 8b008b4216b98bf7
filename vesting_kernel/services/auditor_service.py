"""
AuditorService -- tamper-evident audit trail and hash chain maintenance.

Responsibility:
    Implements the ``AuditLog`` collaborator: turns every structured
    ``AuditRecord`` emitted by AccountingEngine into an append-only,
    hash-chained ``AuditEvent`` row.  Provides chain validation for tamper
    detection and trace queries for forensic review.

Architecture position:
    Kernel > Services -- imperative shell, called by AccountingEngine.

Invariants enforced:
    Sequence monotonicity via SequenceService (never max+1).
    Audit chain integrity: ``hash = H(entity_type|entity_id|action|
        payload_hash|prev_hash)``; every event links to its predecessor.
    Append-only: audit events are never modified or deleted
        (db.immutability listeners).

Failure modes:
    - AuditChainBrokenError: recomputed hash does not match stored hash,
      or prev_hash does not match the predecessor's hash.

Audit relevance:
    This IS the audit service.  Because rows are written inside the
    engine operation's savepoint, an aborted operation leaves no record.
"""

from dataclasses import dataclass
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from vesting_kernel.domain.dtos import AuditEventType, AuditRecord
from vesting_kernel.exceptions import AuditChainBrokenError
from vesting_kernel.logging_config import get_logger
from vesting_kernel.models.audit_event import AuditAction, AuditEvent
from vesting_kernel.services.sequence_service import SequenceService
from vesting_kernel.utils.hashing import hash_audit_event, hash_payload

logger = get_logger("services.auditor")

ENTITY_TYPE = "VestingSchedule"

_ACTION_FOR_EVENT: dict[AuditEventType, AuditAction] = {
    AuditEventType.CREATED: AuditAction.SCHEDULE_CREATED,
    AuditEventType.CLAIMED: AuditAction.SCHEDULE_CLAIMED,
    AuditEventType.REVOKED: AuditAction.SCHEDULE_REVOKED,
}


def schedule_entity_id(beneficiary: str, index: int) -> str:
    return f"{beneficiary}#{index}"


@dataclass(frozen=True)
class AuditTraceEntry:
    """A single entry in an audit trace."""

    seq: int
    action: AuditAction
    entity_id: str
    occurred_at: int
    actor: str
    payload: dict[str, Any]
    hash: str


@dataclass(frozen=True)
class AuditTrace:
    """All audit events for a beneficiary (or one schedule), in order."""

    beneficiary: str
    entries: tuple[AuditTraceEntry, ...]

    @property
    def is_empty(self) -> bool:
        return len(self.entries) == 0

    @property
    def actions(self) -> tuple[AuditAction, ...]:
        return tuple(e.action for e in self.entries)


class AuditorService:
    """
    Service for creating and validating tamper-evident audit events.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
        - Does NOT interpret audit events.
    """

    def __init__(self, session: Session):
        self._session = session
        self._sequence_service = SequenceService(session)

    def _get_last_hash(self) -> str | None:
        last_event = self._session.execute(
            select(AuditEvent).order_by(AuditEvent.seq.desc()).limit(1)
        ).scalar_one_or_none()
        return last_event.hash if last_event else None

    def record(self, audit_record: AuditRecord) -> AuditEvent:
        """
        Persist ``audit_record`` as the next link of the hash chain.

        Postconditions:
            - A new AuditEvent is flushed with a strictly greater seq and
              ``prev_hash`` equal to the previous event's hash.
        """
        action = _ACTION_FOR_EVENT[audit_record.event]
        entity_id = schedule_entity_id(audit_record.beneficiary, audit_record.schedule_index)
        payload = {
            "beneficiary": audit_record.beneficiary,
            "schedule_index": audit_record.schedule_index,
            "asset": audit_record.asset,
            "actor": audit_record.actor,
            "occurred_at": audit_record.timestamp,
            "amounts": dict(audit_record.amounts),
        }

        seq = self._sequence_service.next_value(SequenceService.AUDIT_EVENT)
        prev_hash = self._get_last_hash()
        payload_hash = hash_payload(payload)
        event_hash = hash_audit_event(
            entity_type=ENTITY_TYPE,
            entity_id=entity_id,
            action=action.value,
            payload_hash=payload_hash,
            prev_hash=prev_hash,
        )

        audit_event = AuditEvent(
            seq=seq,
            entity_type=ENTITY_TYPE,
            entity_id=entity_id,
            beneficiary=audit_record.beneficiary,
            action=action.value,
            actor=audit_record.actor,
            occurred_at=audit_record.timestamp,
            payload=payload,
            payload_hash=payload_hash,
            prev_hash=prev_hash,
            hash=event_hash,
        )
        self._session.add(audit_event)
        self._session.flush()

        logger.info(
            "audit_event_created",
            extra={
                "entity_id": entity_id,
                "action": action.value,
                "seq": seq,
            },
        )
        return audit_event

    # Chain validation

    def validate_chain(self) -> bool:
        """
        Validate the entire audit chain.

        Raises:
            AuditChainBrokenError: If any stored hash or linkage is wrong.
        """
        events = self._session.execute(
            select(AuditEvent).order_by(AuditEvent.seq)
        ).scalars().all()

        if not events:
            return True

        if events[0].prev_hash is not None:
            logger.critical("audit_chain_broken", extra={"seq": events[0].seq})
            raise AuditChainBrokenError(str(events[0].id), "None", events[0].prev_hash)

        for i, event in enumerate(events):
            expected_payload_hash = hash_payload(event.payload or {})
            if event.payload_hash != expected_payload_hash:
                logger.critical("audit_chain_broken", extra={"seq": event.seq})
                raise AuditChainBrokenError(str(event.id), expected_payload_hash, event.payload_hash)

            expected_hash = hash_audit_event(
                entity_type=event.entity_type,
                entity_id=event.entity_id,
                action=event.action,
                payload_hash=event.payload_hash,
                prev_hash=event.prev_hash,
            )
            if event.hash != expected_hash:
                logger.critical("audit_chain_broken", extra={"seq": event.seq})
                raise AuditChainBrokenError(str(event.id), expected_hash, event.hash)

            if i > 0 and event.prev_hash != events[i - 1].hash:
                logger.critical("audit_chain_broken", extra={"seq": event.seq})
                raise AuditChainBrokenError(
                    str(event.id), events[i - 1].hash, event.prev_hash or "None"
                )

        logger.info("audit_chain_valid", extra={"event_count": len(events)})
        return True

    # Trace queries

    def get_trace(self, beneficiary: str, index: int | None = None) -> AuditTrace:
        """
        Audit trace for a beneficiary, optionally narrowed to one schedule.
        """
        query = select(AuditEvent).where(AuditEvent.beneficiary == beneficiary)
        if index is not None:
            query = query.where(AuditEvent.entity_id == schedule_entity_id(beneficiary, index))
        events = self._session.execute(query.order_by(AuditEvent.seq)).scalars().all()

        entries = tuple(
            AuditTraceEntry(
                seq=event.seq,
                action=AuditAction(event.action),
                entity_id=event.entity_id,
                occurred_at=event.occurred_at,
                actor=event.actor,
                payload=event.payload or {},
                hash=event.hash,
            )
            for event in events
        )
        return AuditTrace(beneficiary=beneficiary, entries=entries)

    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """Most recent audit events, newest first."""
        result = self._session.execute(
            select(AuditEvent).order_by(AuditEvent.seq.desc()).limit(limit)
        )
        return list(result.scalars().all())
