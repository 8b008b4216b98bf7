"""
Typed Exception Hierarchy for the Vesting Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Custody systems move value. Callers must be able to tell "you are not the
controller" apart from "the ledger refused the transfer" without parsing
messages. Every error therefore:
  1. Has a TYPED exception class (catch by type, not message)
  2. Has a CODE class attribute (machine-readable, API-safe)
  3. Carries structured DATA as attributes (beneficiary, index, amounts...)

Example:
    try:
        engine.revoke(caller, beneficiary, 0)
    except AlreadyRevokedError as e:
        api_response(code=e.code, beneficiary=e.beneficiary, index=e.index)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    VestingKernelError (base)
    |
    +-- AuthorizationError
    |   +-- UnauthorizedError
    |
    +-- ValidationError
    |   +-- InvalidArgumentError
    |
    +-- ScheduleError
    |   +-- ScheduleNotFoundError
    |   +-- NoSchedulesError
    |   +-- NotRevocableError
    |   +-- AlreadyRevokedError
    |
    +-- TransferError
    |   +-- TransferFailedError
    |
    +-- InvariantError
    |   +-- InvariantViolationError
    |   +-- SolvencyViolationError
    |
    +-- ImmutabilityError
    |   +-- ImmutabilityViolationError
    |
    +-- AuditError
        +-- AuditChainBrokenError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category      | Code                    | When Raised
--------------|-------------------------|-------------------------------------------
Authorization | UNAUTHORIZED            | Caller is not the controller
Validation    | INVALID_ARGUMENT        | Empty identity/asset, duration <= 0,
              |                         | amount <= 0, cliff outside [0, duration]
Schedule      | NOT_FOUND               | No schedule at (beneficiary, index)
              | NO_SCHEDULES            | claim() by a caller owning no schedules
              | NOT_REVOCABLE           | Schedule created with is_revocable=False
              | ALREADY_REVOKED         | Schedule already revoked
Transfer      | TRANSFER_FAILED         | Ledger call raised or signalled failure
Invariant     | INVARIANT_VIOLATION     | released > vested (never clamped)
              | SOLVENCY_VIOLATION      | held balance != outstanding liability
Immutability  | IMMUTABILITY_VIOLATION  | Delete, or forbidden field change
Audit         | AUDIT_CHAIN_BROKEN      | Hash chain validation failed

===============================================================================
HANDLING PATTERNS
===============================================================================

1. Precondition errors (Authorization, Validation, Schedule) are raised
   before any state is touched. Nothing to undo.

2. TransferFailedError from create_schedule or revoke is raised after the
   enclosing savepoint has been rolled back; the schedule state is exactly
   what it was before the call. From claim, payouts that settled before
   the failing one stand and are listed in `completed`; the failing
   payout is rolled back and later ones are never attempted.

3. InvariantError means the kernel's own bookkeeping is broken. Do not
   retry; halt and investigate.
"""


class VestingKernelError(Exception):
    """
    Base exception for all vesting kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "VESTING_KERNEL_ERROR"


# Authorization


class AuthorizationError(VestingKernelError):
    """Base exception for access-control failures."""

    code: str = "AUTHORIZATION_ERROR"


class UnauthorizedError(AuthorizationError):
    """Caller lacks the role required for the operation."""

    code: str = "UNAUTHORIZED"

    def __init__(self, identity: str, operation: str):
        self.identity = identity
        self.operation = operation
        super().__init__(f"Caller {identity!r} is not authorized to {operation}")


# Validation


class ValidationError(VestingKernelError):
    """Base exception for argument validation failures."""

    code: str = "VALIDATION_ERROR"


class InvalidArgumentError(ValidationError):
    """An operation argument is outside its allowed domain."""

    code: str = "INVALID_ARGUMENT"

    def __init__(self, argument: str, value, reason: str):
        self.argument = argument
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid {argument}={value!r}: {reason}")


# Schedules


class ScheduleError(VestingKernelError):
    """Base exception for schedule lookup and lifecycle errors."""

    code: str = "SCHEDULE_ERROR"


class ScheduleNotFoundError(ScheduleError):
    """No schedule exists at the given (beneficiary, index) pair."""

    code: str = "NOT_FOUND"

    def __init__(self, beneficiary: str, index: int, count: int):
        self.beneficiary = beneficiary
        self.index = index
        self.count = count
        super().__init__(
            f"Schedule not found: {beneficiary!r}[{index}] "
            f"(beneficiary has {count} schedule(s))"
        )


class NoSchedulesError(ScheduleError):
    """Claim requested by an identity that owns no schedules."""

    code: str = "NO_SCHEDULES"

    def __init__(self, beneficiary: str):
        self.beneficiary = beneficiary
        super().__init__(f"No vesting schedules for {beneficiary!r}")


class NotRevocableError(ScheduleError):
    """Schedule was created non-revocable."""

    code: str = "NOT_REVOCABLE"

    def __init__(self, beneficiary: str, index: int):
        self.beneficiary = beneficiary
        self.index = index
        super().__init__(f"Schedule {beneficiary!r}[{index}] is not revocable")


class AlreadyRevokedError(ScheduleError):
    """Schedule has already been revoked."""

    code: str = "ALREADY_REVOKED"

    def __init__(self, beneficiary: str, index: int):
        self.beneficiary = beneficiary
        self.index = index
        super().__init__(f"Schedule {beneficiary!r}[{index}] is already revoked")


# Transfers


class TransferError(VestingKernelError):
    """Base exception for ledger interaction failures."""

    code: str = "TRANSFER_ERROR"


class TransferFailedError(TransferError):
    """The value ledger did not report success for a transfer."""

    code: str = "TRANSFER_FAILED"

    def __init__(
        self,
        direction: str,
        counterparty: str,
        asset: str,
        amount: int,
        reason: str,
        completed: tuple = (),
    ):
        self.direction = direction
        self.counterparty = counterparty
        self.asset = asset
        self.amount = amount
        self.reason = reason
        # Releases of the same claim that settled before this transfer failed
        self.completed = completed
        super().__init__(
            f"Transfer {direction} of {amount} {asset} "
            f"({counterparty!r}) failed: {reason}"
        )


# Invariants


class InvariantError(VestingKernelError):
    """Base exception for broken accounting invariants."""

    code: str = "INVARIANT_ERROR"


class InvariantViolationError(InvariantError):
    """A per-schedule accounting invariant does not hold."""

    code: str = "INVARIANT_VIOLATION"

    def __init__(self, invariant: str, detail: str):
        self.invariant = invariant
        self.detail = detail
        super().__init__(f"Invariant {invariant} violated: {detail}")


class SolvencyViolationError(InvariantError):
    """Held custody balance does not equal outstanding liability for an asset."""

    code: str = "SOLVENCY_VIOLATION"

    def __init__(self, asset: str, held: int, outstanding: int):
        self.asset = asset
        self.held = held
        self.outstanding = outstanding
        super().__init__(
            f"Solvency violated for {asset}: held {held} != outstanding {outstanding}"
        )


# Immutability


class ImmutabilityError(VestingKernelError):
    """Base exception for append-only persistence violations."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted to delete a record or change a frozen field."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )


# Audit


class AuditError(VestingKernelError):
    """Base exception for audit trail errors."""

    code: str = "AUDIT_ERROR"


class AuditChainBrokenError(AuditError):
    """Audit hash chain validation failed."""

    code: str = "AUDIT_CHAIN_BROKEN"

    def __init__(self, audit_event_id: str, expected_hash: str, actual_hash: str):
        self.audit_event_id = audit_event_id
        self.expected_hash = expected_hash
        self.actual_hash = actual_hash
        super().__init__(
            f"Audit chain broken at {audit_event_id}: "
            f"expected {expected_hash}, found {actual_hash}"
        )
