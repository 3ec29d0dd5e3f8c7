"""Settlement status of an external invoice or bill, derived from its payments."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from decimal import Decimal
from enum import Enum


class SettlementStatus(str, Enum):
    DRAFT = "draft"  # nothing paid yet
    PARTIAL = "partial"
    PAID = "paid"
    OVERPAID = "overpaid"
    OVERDUE = "overdue"  # unpaid balance past its due date


def settlement_status(
    total_due: Decimal,
    payments: Iterable[Decimal],
    due_date: date | None = None,
    as_of: date | None = None,
) -> SettlementStatus:
    """
    Derive an invoice's status from what has been paid against it.

    The status is never stored; recomputing it from the payments is the
    only way to get it, so it cannot drift from the ledger.

    OVERDUE is reported only when both ``due_date`` and ``as_of`` are given,
    something is still owed, and ``as_of`` is after the due date.
    A zero ``total_due`` with no net payments is DRAFT, not PAID.
    """
    if total_due < 0:
        raise ValueError(f"total_due must not be negative, got {total_due}")

    paid = sum(payments, Decimal("0"))
    if paid < 0:
        raise ValueError(f"Net payments must not be negative, got {paid}")

    if paid > total_due:
        return SettlementStatus.OVERPAID
    if paid == total_due and paid > 0:
        return SettlementStatus.PAID
    if paid < total_due and due_date is not None and as_of is not None and as_of > due_date:
        return SettlementStatus.OVERDUE
    if paid == 0:
        return SettlementStatus.DRAFT
    return SettlementStatus.PARTIAL
