"""
Module: ledger_kernel.selectors.balance_selector
Responsibility: Account-level balance reads: point-in-time balances,
    period movement lines for a ledger group, the running-balance cache,
    cache verification, and the account register.
Architecture position: Kernel > Selectors.  Builds on LedgerSelector.
    Hierarchical rollup is not done here; the reporting layer feeds these
    flat lines to ledger_engines.rollup.

Invariants enforced:
    - Balances are signed: debits minus credits.  Presentation on the
      natural side is the reporting layer's job.
    - closing == opening + debits - credits for every line.
    - verify_balance_cache() recomputes from postings, which stay the
      source of truth; the cache is never trusted for reports.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from ledger_kernel.domain.account_ref import AccountRef
from ledger_kernel.exceptions import AccountNotFoundError
from ledger_kernel.models.account import Account, LedgerGroup
from ledger_kernel.models.balance import AccountBalance
from ledger_kernel.models.transaction import LEDGER_STATUSES, Posting, TransactionGroup
from ledger_kernel.selectors.base import ZERO, BaseSelector, quantize_amount
from ledger_kernel.selectors.ledger_selector import (
    LedgerSelector,
    LedgerSnapshot,
    credit_sum,
    debit_sum,
)


@dataclass(frozen=True)
class AccountBalanceLine:
    """Opening, movement and closing balance of one account over a period."""

    account_id: UUID
    account_code: str
    account_name: str
    ledger_group: str
    sub_group: str | None
    parent_id: UUID | None
    currency: str
    opening_balance: Decimal
    period_debits: Decimal
    period_credits: Decimal
    closing_balance: Decimal

    @property
    def net_movement(self) -> Decimal:
        return self.period_debits - self.period_credits


@dataclass(frozen=True)
class RegisterLine:
    """One posting in an account register."""

    posting_id: UUID
    group_id: UUID
    seq: int
    transaction_date: date
    reference: str | None
    description: str | None
    debit: Decimal
    credit: Decimal
    running_balance: Decimal


@dataclass(frozen=True)
class AccountRegister:
    account_id: UUID
    account_code: str
    currency: str
    opening_balance: Decimal
    lines: tuple[RegisterLine, ...]
    closing_balance: Decimal


@dataclass(frozen=True)
class BalanceCacheMismatch:
    """A cache row that disagrees with the postings."""

    account_id: UUID
    currency: str
    cached_balance: Decimal
    ledger_balance: Decimal


class BalanceSelector(BaseSelector[Posting]):
    """Selector for per-account balances."""

    def __init__(self, session):
        super().__init__(session)
        self._ledger = LedgerSelector(session)

    def _account(self, account: AccountRef | UUID | Account) -> Account:
        ref = AccountRef.parse(account)
        if ref.is_id:
            found = self.session.get(Account, ref.account_id)
        else:
            found = self.session.execute(
                select(Account).where(Account.code == ref.code)
            ).scalar_one_or_none()
        if found is None:
            raise AccountNotFoundError(str(ref))
        return found

    # ------------------------------------------------------------------
    # Point-in-time balances
    # ------------------------------------------------------------------

    def balance_as_of(
        self,
        account: AccountRef | UUID | Account,
        as_of: date | None = None,
        snapshot: LedgerSnapshot | None = None,
    ) -> Decimal:
        """
        Signed balance of every ledger posting on ``account`` dated on or
        before ``as_of`` (all dates when None).

        Raises:
            AccountNotFoundError: Unknown account.
        """
        acct = self._account(account)
        rows = self._ledger.account_totals(
            end=as_of,
            currency=acct.currency,
            account_ids=[acct.id],
            snapshot=snapshot,
        )
        if not rows:
            return quantize_amount(ZERO, acct.currency)
        return rows[0].balance

    def current_balance(
        self,
        account: AccountRef | UUID | Account,
        currency: str | None = None,
    ) -> Decimal:
        """Signed balance from the running-balance cache (all dates)."""
        acct = self._account(account)
        code = currency or acct.currency
        row = self.session.execute(
            select(AccountBalance).where(
                AccountBalance.account_id == acct.id,
                AccountBalance.currency == code,
            )
        ).scalar_one_or_none()
        if row is None:
            return quantize_amount(ZERO, code)
        return quantize_amount(row.balance, code)

    # ------------------------------------------------------------------
    # Period lines
    # ------------------------------------------------------------------

    def group_balance_lines(
        self,
        ledger_group: LedgerGroup | str,
        start: date | None = None,
        end: date | None = None,
        currency: str | None = None,
        snapshot: LedgerSnapshot | None = None,
    ) -> list[AccountBalanceLine]:
        """
        One line per account in ``ledger_group`` (ordered by code).

        Archived accounts appear only when they carry a balance or movement.
        Accounts whose currency differs from ``currency`` are skipped.
        """
        group = LedgerGroup(ledger_group)
        stmt = select(Account).where(Account.ledger_group == group.value)
        if currency is not None:
            stmt = stmt.where(Account.currency == currency)
        accounts = list(
            self.session.execute(stmt.order_by(Account.code)).scalars().all()
        )
        if not accounts:
            return []

        groups = (group.value,)
        currencies = {acct.id: acct.currency for acct in accounts}
        opening: dict[UUID, Decimal] = {}
        if start is not None:
            for row in self._ledger.account_totals(
                end=start - timedelta(days=1),
                currency=currency,
                ledger_groups=groups,
                snapshot=snapshot,
            ):
                if row.currency == currencies.get(row.account_id):
                    opening[row.account_id] = row.balance

        movement: dict[UUID, tuple[Decimal, Decimal]] = {}
        for row in self._ledger.account_totals(
            start=start,
            end=end,
            currency=currency,
            ledger_groups=groups,
            snapshot=snapshot,
        ):
            if row.currency == currencies.get(row.account_id):
                movement[row.account_id] = (row.debit_total, row.credit_total)

        lines = []
        for acct in accounts:
            zero = quantize_amount(ZERO, acct.currency)
            opening_balance = opening.get(acct.id, zero)
            debits, credits = movement.get(acct.id, (zero, zero))
            if acct.is_archived and not (opening_balance or debits or credits):
                continue
            lines.append(
                AccountBalanceLine(
                    account_id=acct.id,
                    account_code=acct.code,
                    account_name=acct.name,
                    ledger_group=acct.ledger_group,
                    sub_group=acct.sub_group,
                    parent_id=acct.parent_id,
                    currency=acct.currency,
                    opening_balance=opening_balance,
                    period_debits=debits,
                    period_credits=credits,
                    closing_balance=opening_balance + debits - credits,
                )
            )
        return lines

    # ------------------------------------------------------------------
    # Register
    # ------------------------------------------------------------------

    def account_register(
        self,
        account: AccountRef | UUID | Account,
        start: date | None = None,
        end: date | None = None,
        snapshot: LedgerSnapshot | None = None,
    ) -> AccountRegister:
        """
        Every ledger posting on ``account`` in the period, in ledger order,
        with a running balance that starts from the opening balance.
        """
        acct = self._account(account)
        opening = quantize_amount(ZERO, acct.currency)
        if start is not None:
            opening = self.balance_as_of(acct, start - timedelta(days=1), snapshot)

        stmt = (
            select(Posting, TransactionGroup)
            .join(TransactionGroup, TransactionGroup.id == Posting.transaction_group_id)
            .where(
                Posting.account_id == acct.id,
                Posting.currency == acct.currency,
                Posting.status.in_(LEDGER_STATUSES),
            )
            .order_by(Posting.transaction_date, TransactionGroup.seq, Posting.line_seq)
        )
        if snapshot is not None:
            stmt = stmt.where(TransactionGroup.seq <= snapshot.watermark)
        if start is not None:
            stmt = stmt.where(Posting.transaction_date >= start)
        if end is not None:
            stmt = stmt.where(Posting.transaction_date <= end)

        running = opening
        lines = []
        for posting, group in self.session.execute(stmt):
            zero = quantize_amount(ZERO, acct.currency)
            amount = quantize_amount(posting.amount, acct.currency)
            running += amount if posting.is_debit else -amount
            lines.append(
                RegisterLine(
                    posting_id=posting.id,
                    group_id=group.id,
                    seq=group.seq,
                    transaction_date=posting.transaction_date,
                    reference=group.reference,
                    description=posting.description,
                    debit=amount if posting.is_debit else zero,
                    credit=zero if posting.is_debit else amount,
                    running_balance=running,
                )
            )

        return AccountRegister(
            account_id=acct.id,
            account_code=acct.code,
            currency=acct.currency,
            opening_balance=opening,
            lines=tuple(lines),
            closing_balance=running,
        )

    # ------------------------------------------------------------------
    # Cache verification
    # ------------------------------------------------------------------

    def verify_balance_cache(self) -> list[BalanceCacheMismatch]:
        """
        Recompute every (account, currency) balance from postings and
        compare it with the cache.  An empty list means the cache is exact.
        """
        ledger_stmt = (
            select(
                Posting.account_id,
                Posting.currency,
                debit_sum().label("debit_total"),
                credit_sum().label("credit_total"),
            )
            .where(Posting.status.in_(LEDGER_STATUSES))
            .group_by(Posting.account_id, Posting.currency)
        )
        ledger: dict[tuple[UUID, str], Decimal] = {}
        for row in self.session.execute(ledger_stmt):
            ledger[(row.account_id, row.currency)] = quantize_amount(
                row.debit_total, row.currency
            ) - quantize_amount(row.credit_total, row.currency)

        cached: dict[tuple[UUID, str], Decimal] = {
            (row.account_id, row.currency): quantize_amount(row.balance, row.currency)
            for row in self.session.execute(select(AccountBalance)).scalars()
        }

        mismatches = []
        for key in sorted(set(ledger) | set(cached), key=lambda k: (str(k[0]), k[1])):
            account_id, currency = key
            zero = quantize_amount(ZERO, currency)
            ledger_balance = ledger.get(key, zero)
            cached_balance = cached.get(key, zero)
            if ledger_balance != cached_balance:
                mismatches.append(
                    BalanceCacheMismatch(
                        account_id=account_id,
                        currency=currency,
                        cached_balance=cached_balance,
                        ledger_balance=ledger_balance,
                    )
                )
        return mismatches

