"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Common constructor and session-handling contract for every write
    service.  Services use ``session.flush()`` and never
    ``session.commit()``: the caller (``session_scope()`` or a test
    harness) owns the transaction, so a failure anywhere in a multi-step
    operation rolls back all of it.

Architecture position:
    Kernel > Services -- imperative shell.  Read-only queries belong in
    ``ledger_kernel/selectors/``.
"""

from abc import ABC
from typing import Generic, TypeVar
from uuid import UUID

from sqlalchemy.orm import Session

from ledger_kernel.db.base import Base
from ledger_kernel.domain.clock import Clock, SystemClock

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for all kernel services.

    Contract:
        Accepts a SQLAlchemy ``Session`` from the caller and an optional
        Clock (SystemClock when omitted).

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self.clock = clock or SystemClock()


def as_uuid(value: UUID | str) -> UUID:
    """Accept a UUID or its string form."""
    if isinstance(value, UUID):
        return value
    return UUID(str(value))
