"""
Module: ledger_kernel.selectors.ledger_selector
Responsibility: Read-only ledger queries: per-account debit/credit totals
    over a date range, ledger-wide totals, and the postings that drive the
    cash flow statement.  Every query can be pinned to a LedgerSnapshot.
Architecture position: Kernel > Selectors.  May import from models/ and
    selectors/base.py.  MUST NOT import from services/ or outer layers.

Invariants enforced:
    - Only postings whose group has reached the ledger (POSTED or REVERSED)
      are counted.  A reversed group still counts; its mirror cancels it.
    - When a snapshot is given, only groups with seq <= watermark are
      counted.  Seqs are handed out under a row lock in commit order, so a
      snapshot never sees half of a group nor a group committed after it.

Failure modes:
    - Returns empty results or zero totals when nothing has been posted.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import case, func, select
from sqlalchemy.orm import aliased

from ledger_kernel.domain.clock import Clock
from ledger_kernel.models.account import Account
from ledger_kernel.models.sequence import SequenceCounter
from ledger_kernel.models.transaction import (
    LEDGER_STATUSES,
    Posting,
    PostingDirection,
    TransactionGroup,
)
from ledger_kernel.selectors.base import ZERO, BaseSelector, quantize_amount

TRANSACTION_GROUP_SEQUENCE = "transaction_group"


@dataclass(frozen=True)
class LedgerSnapshot:
    """
    A fixed point in the ledger.

    ``watermark`` is the highest seq committed when the snapshot was taken;
    reads pinned to it ignore anything posted later.
    """

    watermark: int
    taken_at: datetime | None = None


@dataclass(frozen=True)
class AccountTotalsRow:
    """Debit and credit totals for one account in one currency."""

    account_id: UUID
    account_code: str
    account_name: str
    ledger_group: str
    sub_group: str | None
    parent_id: UUID | None
    currency: str
    debit_total: Decimal
    credit_total: Decimal

    @property
    def balance(self) -> Decimal:
        """Signed balance: debits minus credits."""
        return self.debit_total - self.credit_total


@dataclass(frozen=True)
class CashFlowPosting:
    """One non-cash posting inside a group that moved cash."""

    group_id: UUID
    posting_id: UUID
    account_id: UUID
    account_code: str
    account_name: str
    ledger_group: str
    sub_group: str | None
    currency: str
    signed_amount: Decimal


def debit_sum():
    return func.sum(
        case(
            (Posting.direction == PostingDirection.DEBIT.value, Posting.amount),
            else_=ZERO,
        )
    )


def credit_sum():
    return func.sum(
        case(
            (Posting.direction == PostingDirection.CREDIT.value, Posting.amount),
            else_=ZERO,
        )
    )


class LedgerSelector(BaseSelector[Posting]):
    """
    Selector for ledger-wide queries.

    Contract:
        Read-only; results are DTOs.  Date bounds are inclusive.
    """

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def snapshot(self, clock: Clock | None = None) -> LedgerSnapshot:
        """Take the current commit watermark."""
        watermark = self.session.execute(
            select(SequenceCounter.current_value).where(
                SequenceCounter.name == TRANSACTION_GROUP_SEQUENCE
            )
        ).scalar_one_or_none()
        return LedgerSnapshot(
            watermark=watermark or 0,
            taken_at=clock.now() if clock is not None else None,
        )

    @staticmethod
    def _ledger_filter(stmt, snapshot: LedgerSnapshot | None):
        stmt = stmt.where(
            Posting.status.in_(LEDGER_STATUSES),
            TransactionGroup.status.in_(LEDGER_STATUSES),
        )
        if snapshot is not None:
            stmt = stmt.where(TransactionGroup.seq <= snapshot.watermark)
        return stmt

    # ------------------------------------------------------------------
    # Totals
    # ------------------------------------------------------------------

    def account_totals(
        self,
        start: date | None = None,
        end: date | None = None,
        currency: str | None = None,
        ledger_groups: tuple[str, ...] | None = None,
        account_ids: list[UUID] | None = None,
        snapshot: LedgerSnapshot | None = None,
    ) -> list[AccountTotalsRow]:
        """
        Debit and credit totals per (account, currency) for postings dated
        between ``start`` and ``end``.

        Accounts without postings in the range are absent from the result.
        """
        stmt = (
            select(
                Account.id,
                Account.code,
                Account.name,
                Account.ledger_group,
                Account.sub_group,
                Account.parent_id,
                Posting.currency,
                debit_sum().label("debit_total"),
                credit_sum().label("credit_total"),
            )
            .select_from(Posting)
            .join(Account, Account.id == Posting.account_id)
            .join(TransactionGroup, TransactionGroup.id == Posting.transaction_group_id)
        )
        stmt = self._ledger_filter(stmt, snapshot)

        if start is not None:
            stmt = stmt.where(Posting.transaction_date >= start)
        if end is not None:
            stmt = stmt.where(Posting.transaction_date <= end)
        if currency is not None:
            stmt = stmt.where(Posting.currency == currency)
        if ledger_groups is not None:
            stmt = stmt.where(Account.ledger_group.in_(ledger_groups))
        if account_ids is not None:
            stmt = stmt.where(Account.id.in_(account_ids))

        stmt = stmt.group_by(
            Account.id,
            Account.code,
            Account.name,
            Account.ledger_group,
            Account.sub_group,
            Account.parent_id,
            Posting.currency,
        ).order_by(Account.code, Posting.currency)

        return [
            AccountTotalsRow(
                account_id=row.id,
                account_code=row.code,
                account_name=row.name,
                ledger_group=row.ledger_group,
                sub_group=row.sub_group,
                parent_id=row.parent_id,
                currency=row.currency,
                debit_total=quantize_amount(row.debit_total, row.currency),
                credit_total=quantize_amount(row.credit_total, row.currency),
            )
            for row in self.session.execute(stmt)
        ]

    def trial_balance_rows(
        self,
        as_of: date | None = None,
        currency: str | None = None,
        snapshot: LedgerSnapshot | None = None,
    ) -> list[AccountTotalsRow]:
        """Cumulative totals per account up to and including ``as_of``."""
        return self.account_totals(end=as_of, currency=currency, snapshot=snapshot)

    def total_debits_credits(
        self,
        currency: str,
        as_of: date | None = None,
        snapshot: LedgerSnapshot | None = None,
    ) -> tuple[Decimal, Decimal]:
        """Ledger-wide (debits, credits) in one currency.  Always equal."""
        stmt = (
            select(debit_sum(), credit_sum())
            .select_from(Posting)
            .join(TransactionGroup, TransactionGroup.id == Posting.transaction_group_id)
            .where(Posting.currency == currency)
        )
        stmt = self._ledger_filter(stmt, snapshot)
        if as_of is not None:
            stmt = stmt.where(Posting.transaction_date <= as_of)
        debits, credits = self.session.execute(stmt).one()
        return quantize_amount(debits, currency), quantize_amount(credits, currency)

    # ------------------------------------------------------------------
    # Cash flow
    # ------------------------------------------------------------------

    def cash_flow_postings(
        self,
        start: date,
        end: date,
        currency: str,
        cash_sub_groups: frozenset[str],
        snapshot: LedgerSnapshot | None = None,
    ) -> list[CashFlowPosting]:
        """
        Non-cash postings of every group in the period that also has a
        posting on a cash account.

        Groups that only shuffle money between cash accounts yield nothing.
        """
        cash_posting = aliased(Posting)
        cash_account = aliased(Account)
        touches_cash = (
            select(cash_posting.id)
            .join(cash_account, cash_account.id == cash_posting.account_id)
            .where(
                cash_posting.transaction_group_id == Posting.transaction_group_id,
                cash_account.sub_group.in_(tuple(cash_sub_groups)),
            )
        )

        stmt = (
            select(Posting, Account)
            .select_from(Posting)
            .join(Account, Account.id == Posting.account_id)
            .join(TransactionGroup, TransactionGroup.id == Posting.transaction_group_id)
            .where(
                Posting.transaction_date >= start,
                Posting.transaction_date <= end,
                Posting.currency == currency,
                touches_cash.exists(),
                (Account.sub_group.is_(None))
                | (Account.sub_group.not_in(tuple(cash_sub_groups))),
            )
            .order_by(TransactionGroup.seq, Posting.line_seq)
        )
        stmt = self._ledger_filter(stmt, snapshot)

        return [
            CashFlowPosting(
                group_id=posting.transaction_group_id,
                posting_id=posting.id,
                account_id=account.id,
                account_code=account.code,
                account_name=account.name,
                ledger_group=account.ledger_group,
                sub_group=account.sub_group,
                currency=posting.currency,
                signed_amount=posting.signed_amount,
            )
            for posting, account in self.session.execute(stmt)
        ]

    def cash_balance(
        self,
        as_of: date | None,
        currency: str,
        cash_sub_groups: frozenset[str],
        snapshot: LedgerSnapshot | None = None,
        before: date | None = None,
    ) -> Decimal:
        """
        Combined signed balance of every cash account.

        ``as_of`` includes that date; ``before`` excludes it.
        """
        stmt = (
            select(debit_sum(), credit_sum())
            .select_from(Posting)
            .join(Account, Account.id == Posting.account_id)
            .join(TransactionGroup, TransactionGroup.id == Posting.transaction_group_id)
            .where(
                Posting.currency == currency,
                Account.sub_group.in_(tuple(cash_sub_groups)),
            )
        )
        stmt = self._ledger_filter(stmt, snapshot)
        if as_of is not None:
            stmt = stmt.where(Posting.transaction_date <= as_of)
        if before is not None:
            stmt = stmt.where(Posting.transaction_date < before)
        debits, credits = self.session.execute(stmt).one()
        return quantize_amount(debits, currency) - quantize_amount(credits, currency)
