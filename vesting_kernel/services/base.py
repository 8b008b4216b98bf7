"""
BaseService -- abstract base for kernel services that write.

Responsibility:
    Provides the common constructor and session-handling contract.  Every
    service receives a SQLAlchemy ``Session`` and uses ``session.flush()``
    -- never ``session.commit()``.

Invariants enforced:
    Transaction boundaries: services flush within the caller's transaction
    and never commit or rollback the outer transaction themselves.  The
    caller (session_scope, a request handler, or the test harness) owns
    commit/rollback.  Savepoints opened with ``begin_nested()`` are the
    only rollback a service performs, and only of its own work.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from vesting_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for kernel services.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide aggregate read methods -- those belong in
          ``vesting_kernel/selectors/``.
    """

    def __init__(self, session: Session):
        self.session = session
