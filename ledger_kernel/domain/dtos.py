"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Immutable structures that flow into and out of the posting services:
    LineSpec (one requested line), PostingResult / ReversalResult (what a
    write produced) and PaymentEvent (an external invoice or bill payment).

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Services accept and
    return these rather than ORM rows wherever a caller does not need the
    live entity.

Failure modes:
    - ValueError on a LineSpec with a non-positive amount.
    - ValueError on LineSpec.from_signed with a zero amount.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from ledger_kernel.domain.account_ref import AccountRef


class PostingDirection(str, Enum):
    """
    Which side of the entry a posting is on.

    Guarantees:
        - Exhaustive: double entry has exactly two sides.
    """

    DEBIT = "debit"
    CREDIT = "credit"

    @property
    def opposite(self) -> PostingDirection:
        if self is PostingDirection.DEBIT:
            return PostingDirection.CREDIT
        return PostingDirection.DEBIT


def _to_decimal(amount: Decimal | int | str) -> Decimal:
    if isinstance(amount, float):
        raise ValueError(f"Amounts must not be float: {amount!r}")
    if isinstance(amount, Decimal):
        return amount
    return Decimal(str(amount))


@dataclass(frozen=True)
class LineSpec:
    """
    Specification for one line of a transaction group.

    Contract:
        ``amount`` is strictly positive; ``direction`` carries the sign.
        ``account`` is resolved to a concrete account when the group is
        built, not here.

    Non-goals:
        - Does NOT check currency precision (depends on the resolved
          account's currency; the journal service checks it).
    """

    account: AccountRef
    direction: PostingDirection
    amount: Decimal
    memo: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "account", AccountRef.parse(self.account))
        object.__setattr__(self, "direction", PostingDirection(self.direction))
        object.__setattr__(self, "amount", _to_decimal(self.amount))
        if self.amount <= Decimal("0"):
            raise ValueError(f"Line amount must be positive, got {self.amount}")

    @classmethod
    def debit(
        cls, account: Any, amount: Decimal | int | str, memo: str | None = None,
    ) -> LineSpec:
        return cls(AccountRef.parse(account), PostingDirection.DEBIT, _to_decimal(amount), memo)

    @classmethod
    def credit(
        cls, account: Any, amount: Decimal | int | str, memo: str | None = None,
    ) -> LineSpec:
        return cls(AccountRef.parse(account), PostingDirection.CREDIT, _to_decimal(amount), memo)

    @classmethod
    def from_signed(
        cls, account: Any, amount: Decimal | int | str, memo: str | None = None,
    ) -> LineSpec:
        """Positive amounts debit, negative amounts credit.  Zero is rejected."""
        value = _to_decimal(amount)
        if value == 0:
            raise ValueError("Signed line amount must be non-zero")
        direction = PostingDirection.DEBIT if value > 0 else PostingDirection.CREDIT
        return cls(AccountRef.parse(account), direction, abs(value), memo)

    @property
    def signed_amount(self) -> Decimal:
        return self.amount if self.direction == PostingDirection.DEBIT else -self.amount


@dataclass(frozen=True)
class PostingResult:
    """Outcome of posting a transaction group."""

    group_id: UUID
    seq: int
    currency: str
    total_debits: Decimal
    total_credits: Decimal
    posting_count: int


@dataclass(frozen=True)
class ReversalResult:
    """Outcome of reversing a transaction group."""

    original_group_id: UUID
    reversal_group_id: UUID
    reversal_seq: int
    reversal_date: date
    posting_count: int


@dataclass(frozen=True)
class PaymentEvent:
    """
    A payment against an external invoice or bill.

    ``cash_account`` is the bank/cash account that moves; ``settlement_account``
    is the receivable (invoices) or payable (bills) account that is cleared.
    """

    amount: Decimal
    payment_date: date
    counterparty: str
    cash_account: AccountRef
    settlement_account: AccountRef
    method: str | None = None
    reference: str | None = None
    currency: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", _to_decimal(self.amount))
        object.__setattr__(self, "cash_account", AccountRef.parse(self.cash_account))
        object.__setattr__(
            self, "settlement_account", AccountRef.parse(self.settlement_account),
        )
        if self.amount <= Decimal("0"):
            raise ValueError(f"Payment amount must be positive, got {self.amount}")
