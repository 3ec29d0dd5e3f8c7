"""
LedgerWriter -- the single code path that moves a group into the ledger.

Responsibility:
    Finalizes a PENDING transaction group: re-checks the balance, locks the
    running-balance rows of every touched (account, currency) pair, assigns
    the next ledger seq, applies the deltas and flips the group and its
    postings to POSTED.

Architecture position:
    Kernel > Services.  Called by JournalService.post and by the reversal
    path; delegates seq allocation to SequenceService.

Invariants enforced:
    - Debits == Credits per currency, compared in integer minor units.
    - Balance rows are locked in (account_id, currency) order, so two
      posters touching overlapping account sets cannot deadlock.
    - Lock order across the kernel is: voucher row, group row, balance
      rows, sequence counter.
    - seq is taken after the balance locks, so seq order is commit order
      for groups that share an account.

Failure modes:
    - UnbalancedEntryError if the group no longer balances.
    - InvalidAmountError for non-positive or over-precise posting amounts.
    - OptimisticLockError when a balance row's version moved underneath
      us (backends without row locks).

Audit relevance:
    ``transaction_group_posted`` is logged with seq, totals and the touched
    account count for every group that reaches the ledger.
"""

from collections import defaultdict
from collections.abc import Iterable
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import PostingDirection, PostingResult
from ledger_kernel.domain.values import from_minor_units, to_minor_units
from ledger_kernel.exceptions import (
    InsufficientLinesError,
    InvalidAmountError,
    OptimisticLockError,
    UnbalancedEntryError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.balance import AccountBalance
from ledger_kernel.models.transaction import (
    Posting,
    TransactionGroup,
    TransactionSource,
    TransactionStatus,
)
from ledger_kernel.services.sequence_service import SequenceService

logger = get_logger("services.ledger_writer")

MIN_LINES = 2


def validate_amount(amount: Decimal, currency: str) -> int:
    """
    Check one line amount and return it in minor units.

    Raises:
        InvalidAmountError: If the amount is not positive or is finer than
            the currency's minor unit.
    """
    if amount <= 0:
        raise InvalidAmountError(str(amount), currency, "amount must be positive")
    try:
        return to_minor_units(amount, currency)
    except ValueError as exc:
        raise InvalidAmountError(str(amount), currency, str(exc)) from exc


def check_balanced(
    lines: Iterable[tuple[str, PostingDirection | str, Decimal]],
) -> dict[str, int]:
    """
    Verify debits equal credits per currency.

    Args:
        lines: (currency, direction, amount) triples.

    Returns:
        Debit total per currency, in minor units.

    Raises:
        InsufficientLinesError: Fewer than two lines.
        InvalidAmountError: A line amount is invalid.
        UnbalancedEntryError: Debits differ from credits in some currency.
    """
    debits: dict[str, int] = defaultdict(int)
    credits: dict[str, int] = defaultdict(int)
    count = 0
    for currency, direction, amount in lines:
        count += 1
        units = validate_amount(amount, currency)
        if PostingDirection(direction) == PostingDirection.DEBIT:
            debits[currency] += units
        else:
            credits[currency] += units

    if count < MIN_LINES:
        raise InsufficientLinesError(count, MIN_LINES)

    for currency in sorted(set(debits) | set(credits)):
        if debits[currency] != credits[currency]:
            raise UnbalancedEntryError(
                debits=str(from_minor_units(debits[currency], currency)),
                credits=str(from_minor_units(credits[currency], currency)),
                currency=currency,
            )
    return dict(debits)


class LedgerWriter:
    """
    Moves PENDING groups into the ledger.

    Contract:
        ``finalize(group, actor_id)`` expects a flushed PENDING group with
        its postings loaded.  On return the group is POSTED, has a seq, and
        the balance cache reflects it.  Nothing is committed.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()
        self._sequence = SequenceService(session)

    def finalize(self, group: TransactionGroup, actor_id: UUID) -> PostingResult:
        debit_units = check_balanced(
            (p.currency, p.direction, p.amount) for p in group.postings
        )

        deltas = self._deltas(group.postings)
        balances = self._lock_balances(sorted(deltas))

        seq = self._sequence.next_value(SequenceService.TRANSACTION_GROUP)

        for key, (debit_delta, credit_delta) in deltas.items():
            row = balances[key]
            row.debit_total = row.debit_total + debit_delta
            row.credit_total = row.credit_total + credit_delta
            row.last_seq = seq

        group.seq = seq
        group.posted_at = self._clock.now()
        group.posted_by_id = actor_id
        group.status = TransactionStatus.POSTED
        group.updated_by_id = actor_id
        for posting in group.postings:
            posting.status = TransactionStatus.POSTED

        try:
            self._session.flush()
        except StaleDataError as exc:
            account_id, _currency = sorted(deltas)[0]
            raise OptimisticLockError("AccountBalance", str(account_id)) from exc

        total = from_minor_units(debit_units.get(group.currency, 0), group.currency)
        logger.info(
            "transaction_group_posted",
            extra={
                "group_id": str(group.id),
                "seq": seq,
                "currency": group.currency,
                "total_debits": str(total),
                "posting_count": len(group.postings),
                "account_count": len({k[0] for k in deltas}),
                "source": TransactionSource(group.source).value,
            },
        )
        return PostingResult(
            group_id=group.id,
            seq=seq,
            currency=group.currency,
            total_debits=total,
            total_credits=total,
            posting_count=len(group.postings),
        )

    @staticmethod
    def _deltas(
        postings: Iterable[Posting],
    ) -> dict[tuple[str, str], tuple[Decimal, Decimal]]:
        # Keyed by (str(account_id), currency) for a total, stable sort order
        deltas: dict[tuple[str, str], tuple[Decimal, Decimal]] = {}
        for p in postings:
            key = (str(p.account_id), p.currency)
            debit, credit = deltas.get(key, (Decimal("0"), Decimal("0")))
            if p.is_debit:
                debit += p.amount
            else:
                credit += p.amount
            deltas[key] = (debit, credit)
        return deltas

    def _lock_balances(
        self, keys: list[tuple[str, str]],
    ) -> dict[tuple[str, str], AccountBalance]:
        locked: dict[tuple[str, str], AccountBalance] = {}
        for account_key, currency in keys:
            account_id = UUID(account_key)
            row = self._select_for_update(account_id, currency)
            if row is None:
                row = self._create_balance_row(account_id, currency)
            locked[(account_key, currency)] = row
        return locked

    def _select_for_update(self, account_id: UUID, currency: str) -> AccountBalance | None:
        return self._session.execute(
            select(AccountBalance)
            .where(
                AccountBalance.account_id == account_id,
                AccountBalance.currency == currency,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def _create_balance_row(self, account_id: UUID, currency: str) -> AccountBalance:
        savepoint = self._session.begin_nested()
        try:
            row = AccountBalance(
                account_id=account_id,
                currency=currency,
                debit_total=Decimal("0"),
                credit_total=Decimal("0"),
            )
            self._session.add(row)
            self._session.flush()
            savepoint.commit()
            return row
        except IntegrityError:
            # Another poster created the row first; lock theirs
            savepoint.rollback()
            logger.debug(
                "account_balance_race_retry",
                extra={"account_id": str(account_id), "currency": currency},
            )
            row = self._select_for_update(account_id, currency)
            if row is None:
                raise
            return row
