"""
Module: ledger_kernel.selectors.base
Responsibility: Abstract base class for all read-only query selectors, plus
    the amount normalization every summing query needs.
Architecture position: Kernel > Selectors.  May import from db/, models/ and
    the pure domain value helpers.  MUST NOT import from services/ or outer
    layers.  Selectors NEVER create, modify, or delete data.

Invariants enforced:
    - Read-only access: no session.add(), delete(), flush() or commit().
    - DTO return convention: selectors return frozen dataclasses, not ORM
      instances.
    - Summed amounts are quantized to the currency's minor unit, so a
      backend that sums through binary floats (SQLite) still yields exact
      Decimals.
"""

from abc import ABC
from decimal import Decimal
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from ledger_kernel.db.base import Base
from ledger_kernel.domain.values import Currency

ModelType = TypeVar("ModelType", bound=Base)

ZERO = Decimal("0")


def quantize_amount(value, currency: str) -> Decimal:
    """Coerce a summed column value to a Decimal at the currency's precision."""
    if value is None:
        value = ZERO
    elif not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(Currency(currency).minor_unit)


class BaseSelector(ABC, Generic[ModelType]):
    """
    Abstract base class for all selectors.

    Contract:
        Selectors accept a Session from the caller, perform read-only
        queries, and return DTOs.  The caller owns the transaction.
    """

    def __init__(self, session: Session):
        self.session = session
