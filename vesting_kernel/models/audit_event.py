"""
Module: vesting_kernel.models.audit_event
Responsibility: ORM persistence for the tamper-evident audit hash chain.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    Audit records are append-only; no UPDATE or DELETE (db.immutability).
    Hash chain integrity: hash = H(entity_type | entity_id | action |
        payload_hash | prev_hash).  Validated by AuditorService.
    seq is monotonically increasing, allocated by SequenceService.

Audit relevance:
    AuditEvent IS the audit trail.  Every schedule creation, claim release
    and revocation produces an AuditEvent.
"""

from enum import Enum

from sqlalchemy import JSON, BigInteger, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from vesting_kernel.db.base import Base


class AuditAction(str, Enum):
    """Types of auditable actions."""

    SCHEDULE_CREATED = "schedule_created"
    SCHEDULE_CLAIMED = "schedule_claimed"
    SCHEDULE_REVOKED = "schedule_revoked"


class AuditEvent(Base):
    """
    Audit event with hash chain for tamper evidence.

    Guarantees:
        - seq is globally unique and monotonically increasing.
        - prev_hash is None only for the genesis event.

    Non-goals:
        - This model does NOT enforce hash correctness at INSERT time;
          that is the responsibility of AuditorService.
    """

    __tablename__ = "audit_events"

    __table_args__ = (
        Index("idx_audit_entity", "entity_type", "entity_id"),
        Index("idx_audit_beneficiary", "beneficiary"),
        Index("idx_audit_action", "action"),
        Index("idx_audit_seq", "seq"),
    )

    seq: Mapped[int] = mapped_column(BigInteger, nullable=False, unique=True)

    # "VestingSchedule"
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)

    beneficiary: Mapped[str] = mapped_column(String(100), nullable=False)

    # "<beneficiary>#<index>"
    entity_id: Mapped[str] = mapped_column(String(120), nullable=False)

    action: Mapped[str] = mapped_column(String(50), nullable=False)

    actor: Mapped[str] = mapped_column(String(100), nullable=False)

    # Vesting clock instant (seconds)
    occurred_at: Mapped[int] = mapped_column(BigInteger, nullable=False)

    payload: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    payload_hash: Mapped[str] = mapped_column(String(64), nullable=False)

    prev_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)

    hash: Mapped[str] = mapped_column(String(64), nullable=False)

    def __repr__(self) -> str:
        return f"<AuditEvent {self.action} on {self.entity_type}:{self.entity_id}>"

    @property
    def is_genesis(self) -> bool:
        return self.prev_hash is None
