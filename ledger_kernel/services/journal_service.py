"""
JournalService -- builds, posts and reverses transaction groups.

Responsibility:
    The public write API of the ledger.  ``create_entry`` turns LineSpecs
    into a PENDING group after validating accounts, currencies, amounts and
    balance; ``post`` hands the group to the LedgerWriter; ``reverse``
    delegates to the ReversalService.

Architecture position:
    Kernel > Services.  Used directly by callers and by VoucherService and
    PaymentService.

Invariants enforced:
    - Every group has at least two postings.
    - Debits == Credits per currency in integer minor units.  An
      unbalanced entry is rejected; nothing is ever plugged into a
      suspense account.
    - Account references are resolved once, here; postings store ids.
    - Only PENDING groups can be posted or discarded.
    - A voucher's group is posted or discarded only through its voucher
      (``via_voucher=True``).

Failure modes:
    - InsufficientLinesError, InvalidAmountError, UnbalancedEntryError.
    - AccountNotFoundError, AccountArchivedError.
    - CurrencyMismatchError, InvalidCurrencyError.
    - AlreadyPostedError, InvalidStateTransitionError,
      TransactionGroupNotFoundError, VoucherGroupError.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.currency import CurrencyRegistry
from ledger_kernel.domain.dtos import LineSpec, PostingResult, ReversalResult
from ledger_kernel.exceptions import (
    AccountArchivedError,
    AlreadyPostedError,
    CurrencyMismatchError,
    InsufficientLinesError,
    InvalidCurrencyError,
    InvalidStateTransitionError,
    TransactionGroupNotFoundError,
    VoucherGroupError,
)
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.account import Account
from ledger_kernel.models.transaction import (
    Posting,
    TransactionGroup,
    TransactionSource,
    TransactionStatus,
)
from ledger_kernel.services.account_service import ChartOfAccountsService
from ledger_kernel.services.base import BaseService, as_uuid
from ledger_kernel.services.ledger_writer import MIN_LINES, LedgerWriter, check_balanced
from ledger_kernel.services.reversal_service import ReversalService

logger = get_logger("services.journal")


class JournalService(BaseService[TransactionGroup]):
    """
    Journal entry builder and poster.

    Args:
        session: Caller-owned session; this service only flushes.
        clock: Time source for posted_at and reversal dates.
        enforce_entry_currency: When True every account on an entry must be
            in the entry currency.  When False an entry may span accounts in
            several currencies, and each currency must balance on its own.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        enforce_entry_currency: bool = True,
    ):
        super().__init__(session, clock)
        self.enforce_entry_currency = enforce_entry_currency
        self._accounts = ChartOfAccountsService(session, self.clock)
        self._writer = LedgerWriter(session, self.clock)
        self._reversals = ReversalService(session, self.clock, self._writer)

    # ------------------------------------------------------------------
    # Building
    # ------------------------------------------------------------------

    def create_entry(
        self,
        entry_date: date,
        description: str | None,
        reference: str | None,
        lines: Sequence[LineSpec],
        actor_id: UUID,
        currency: str | None = None,
        source: TransactionSource = TransactionSource.JOURNAL,
    ) -> UUID:
        """
        Validate ``lines`` and persist them as a PENDING group.

        Returns:
            The new group's id.
        """
        lines = list(lines)
        if len(lines) < MIN_LINES:
            raise InsufficientLinesError(len(lines), MIN_LINES)

        accounts = [self._resolve_open_account(line) for line in lines]
        entry_currency = self._entry_currency(accounts, currency)

        check_balanced(
            (account.currency, line.direction, line.amount)
            for line, account in zip(lines, accounts)
        )

        group = TransactionGroup(
            entry_date=entry_date,
            description=description,
            reference=reference,
            currency=entry_currency,
            status=TransactionStatus.PENDING,
            source=source,
            created_by_id=actor_id,
        )
        for index, (line, account) in enumerate(zip(lines, accounts)):
            group.postings.append(
                Posting(
                    account_id=account.id,
                    transaction_date=entry_date,
                    amount=line.amount,
                    direction=line.direction,
                    currency=account.currency,
                    description=line.memo or description,
                    status=TransactionStatus.PENDING,
                    line_seq=index,
                    created_by_id=actor_id,
                )
            )
        self.session.add(group)
        self.session.flush()

        logger.info(
            "transaction_group_created",
            extra={
                "group_id": str(group.id),
                "entry_date": entry_date,
                "currency": entry_currency,
                "posting_count": len(lines),
                "source": TransactionSource(source).value,
                "reference": reference,
            },
        )
        return group.id

    def _resolve_open_account(self, line: LineSpec) -> Account:
        account = self._accounts.resolve(line.account)
        if account.is_archived:
            raise AccountArchivedError(str(account.id), account.code)
        return account

    def _entry_currency(self, accounts: list[Account], currency: str | None) -> str:
        if currency is not None:
            if not CurrencyRegistry.is_valid(currency):
                raise InvalidCurrencyError(currency)
            expected = CurrencyRegistry.validate(currency)
        else:
            expected = accounts[0].currency

        if currency is not None or self.enforce_entry_currency:
            for account in accounts:
                if account.currency != expected:
                    raise CurrencyMismatchError(
                        expected, account.currency, f"account {account.code}",
                    )
        return expected

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def get(self, group_id: UUID) -> TransactionGroup:
        group = self.session.get(TransactionGroup, as_uuid(group_id))
        if group is None:
            raise TransactionGroupNotFoundError(str(group_id))
        return group

    def _lock(self, group_id: UUID) -> TransactionGroup:
        group = self.session.execute(
            select(TransactionGroup)
            .where(TransactionGroup.id == as_uuid(group_id))
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if group is None:
            raise TransactionGroupNotFoundError(str(group_id))
        return group

    @staticmethod
    def _check_owner(group: TransactionGroup, action: str, via_voucher: bool) -> None:
        if group.source == TransactionSource.VOUCHER and not via_voucher:
            raise VoucherGroupError(str(group.id), action)

    def post(
        self,
        group_id: UUID,
        actor_id: UUID,
        *,
        via_voucher: bool = False,
    ) -> PostingResult:
        """
        PENDING -> POSTED.

        Raises:
            AlreadyPostedError: Group is already POSTED.
            InvalidStateTransitionError: Group is REVERSED.
            VoucherGroupError: Group belongs to a voucher and the call did
                not come from VoucherService.
            UnbalancedEntryError: Group no longer balances.
        """
        with LogContext.bind(group_id=str(group_id), actor_id=str(actor_id)):
            group = self._lock(group_id)
            if group.is_posted:
                raise AlreadyPostedError(str(group.id), group.seq)
            if not group.is_pending:
                raise InvalidStateTransitionError(
                    "TransactionGroup",
                    str(group.id),
                    TransactionStatus(group.status).value,
                    "post",
                )
            self._check_owner(group, "post", via_voucher)
            return self._writer.finalize(group, actor_id)

    def reverse(
        self,
        group_id: UUID,
        actor_id: UUID,
        reason: str | None = None,
    ) -> ReversalResult:
        """Reverse a POSTED group with a mirror group dated today."""
        with LogContext.bind(group_id=str(group_id), actor_id=str(actor_id)):
            return self._reversals.reverse(as_uuid(group_id), actor_id, reason)

    def create_and_post(
        self,
        entry_date: date,
        description: str | None,
        reference: str | None,
        lines: Sequence[LineSpec],
        actor_id: UUID,
        currency: str | None = None,
        source: TransactionSource = TransactionSource.JOURNAL,
    ) -> PostingResult:
        group_id = self.create_entry(
            entry_date, description, reference, lines, actor_id,
            currency=currency, source=source,
        )
        return self.post(group_id, actor_id)

    def discard(self, group_id: UUID, *, via_voucher: bool = False) -> None:
        """
        Delete a PENDING group and its postings.

        Raises:
            InvalidStateTransitionError: The group has reached the ledger.
            VoucherGroupError: The group belongs to a voucher; cancel the
                voucher instead.
        """
        group = self._lock(group_id)
        if not group.is_pending:
            raise InvalidStateTransitionError(
                "TransactionGroup",
                str(group.id),
                TransactionStatus(group.status).value,
                "discard",
            )
        self._check_owner(group, "discard", via_voucher)
        self.session.delete(group)
        self.session.flush()
        logger.info("transaction_group_discarded", extra={"group_id": str(group_id)})
