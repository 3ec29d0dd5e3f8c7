"""
Pure domain layer.

This module contains value objects, DTOs and small pure rules with NO
dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O (the SystemClock being the single sanctioned exception)

All domain objects are immutable and deterministic.
"""

from ledger_kernel.domain.account_ref import AccountRef, AccountRefKind
from ledger_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from ledger_kernel.domain.currency import CurrencyInfo, CurrencyRegistry
from ledger_kernel.domain.dtos import (
    LineSpec,
    PaymentEvent,
    PostingDirection,
    PostingResult,
    ReversalResult,
)
from ledger_kernel.domain.settlement import SettlementStatus, settlement_status
from ledger_kernel.domain.values import (
    Currency,
    Money,
    from_minor_units,
    is_representable,
    to_minor_units,
)
from ledger_kernel.domain.workflow import Guard, Transition, Workflow

__all__ = [
    # Value objects
    "Currency",
    "Money",
    "to_minor_units",
    "from_minor_units",
    "is_representable",
    "CurrencyInfo",
    "CurrencyRegistry",
    # References and DTOs
    "AccountRef",
    "AccountRefKind",
    "LineSpec",
    "PostingDirection",
    "PostingResult",
    "ReversalResult",
    "PaymentEvent",
    # Rules
    "SettlementStatus",
    "settlement_status",
    # Workflow
    "Guard",
    "Transition",
    "Workflow",
    # Time
    "Clock",
    "SystemClock",
    "DeterministicClock",
]
