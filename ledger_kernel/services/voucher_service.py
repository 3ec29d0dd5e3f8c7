"""
VoucherService -- payment, receipt and deposit vouchers.

Responsibility:
    Creates a voucher together with its two-line PENDING transaction group,
    and walks it through VOUCHER_WORKFLOW: approve, post (which posts the
    group), cancel (which discards the group) and reverse (which reverses
    the posted group through the journal).

Architecture position:
    Kernel > Services.  Built on JournalService; the ledger is only touched
    by the ``post`` and ``reverse`` actions.

Invariants enforced:
    - Every action is validated against VOUCHER_WORKFLOW before it runs.
    - The voucher row is locked (FOR UPDATE) for every transition, so two
      concurrent approvals or posts of the same voucher serialize.
    - Posting runs inside a savepoint: if the group fails to post, the
      voucher is still APPROVED afterwards.
    - Cancelling never touches posted ledger data, and runs inside a
      savepoint like posting.
    - The voucher's group moves only through this service; JournalService
      refuses to post or discard it directly.

Direction table:
    RECEIPT  debit cash, credit offset (income / client receivable)
    DEPOSIT  debit cash, credit offset (funding source)
    PAYMENT  debit offset (expense / vendor payable), credit cash
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.domain.account_ref import AccountRef
from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.dtos import LineSpec, ReversalResult
from ledger_kernel.exceptions import (
    AlreadyReversedError,
    InvalidStateTransitionError,
    VoucherNotFoundError,
)
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.account import Account
from ledger_kernel.models.transaction import TransactionSource
from ledger_kernel.models.voucher import (
    CounterpartyType,
    Voucher,
    VoucherStatus,
    VoucherType,
)
from ledger_kernel.services.account_service import ChartOfAccountsService
from ledger_kernel.services.base import BaseService, as_uuid
from ledger_kernel.services.journal_service import JournalService
from ledger_kernel.services.workflows import VOUCHER_WORKFLOW

logger = get_logger("services.vouchers")


def voucher_lines(
    voucher_type: VoucherType | str,
    cash_account: Account,
    offset_account: Account,
    amount: Decimal,
    memo: str | None = None,
) -> list[LineSpec]:
    """The two lines a voucher of ``voucher_type`` books."""
    kind = VoucherType(voucher_type)
    if kind in (VoucherType.RECEIPT, VoucherType.DEPOSIT):
        return [
            LineSpec.debit(cash_account, amount, memo),
            LineSpec.credit(offset_account, amount, memo),
        ]
    return [
        LineSpec.debit(offset_account, amount, memo),
        LineSpec.credit(cash_account, amount, memo),
    ]


class VoucherService(BaseService[Voucher]):
    """Voucher lifecycle service.

    Contract:
        Every mutating method takes the acting user's id and flushes; the
        caller commits.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        journal: JournalService | None = None,
    ):
        super().__init__(session, clock)
        self._journal = journal or JournalService(session, self.clock)
        self._accounts = ChartOfAccountsService(session, self.clock)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, voucher_id: UUID) -> Voucher:
        voucher = self.session.get(Voucher, as_uuid(voucher_id))
        if voucher is None:
            raise VoucherNotFoundError(str(voucher_id))
        return voucher

    def list_vouchers(
        self,
        voucher_type: VoucherType | str | None = None,
        status: VoucherStatus | str | None = None,
    ) -> list[Voucher]:
        stmt = select(Voucher)
        if voucher_type is not None:
            stmt = stmt.where(Voucher.voucher_type == VoucherType(voucher_type).value)
        if status is not None:
            stmt = stmt.where(Voucher.status == VoucherStatus(status).value)
        stmt = stmt.order_by(Voucher.voucher_date, Voucher.created_at)
        return list(self.session.execute(stmt).scalars().all())

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create(
        self,
        voucher_type: VoucherType | str,
        counterparty: tuple[CounterpartyType | str, str | None, str | None],
        amount: Decimal,
        cash_account: AccountRef | UUID | Account,
        offset_account: AccountRef | UUID | Account,
        actor_id: UUID,
        voucher_date: date | None = None,
        description: str | None = None,
        reference: str | None = None,
        payment_method: str | None = None,
        currency: str | None = None,
    ) -> Voucher:
        """
        Create a DRAFT voucher and its PENDING transaction group.

        Args:
            counterparty: (type, id, beneficiary name).

        Raises:
            Anything JournalService.create_entry raises for the two lines.
        """
        kind = VoucherType(voucher_type)
        party_type, party_id, beneficiary = counterparty
        party_type = CounterpartyType(party_type)
        amount = Decimal(str(amount)) if not isinstance(amount, Decimal) else amount
        if amount <= 0:
            raise ValueError(f"Voucher amount must be positive, got {amount}")

        cash = self._accounts.resolve(cash_account)
        offset = self._accounts.resolve(offset_account)
        entry_date = voucher_date or self.clock.today()
        entry_currency = currency or cash.currency

        group_id = self._journal.create_entry(
            entry_date=entry_date,
            description=description or f"{kind.value.title()} voucher",
            reference=reference,
            lines=voucher_lines(kind, cash, offset, amount, beneficiary),
            actor_id=actor_id,
            currency=entry_currency,
            source=TransactionSource.VOUCHER,
        )

        voucher = Voucher(
            voucher_type=kind,
            status=VoucherStatus(VOUCHER_WORKFLOW.initial_state),
            counterparty_type=party_type,
            counterparty_id=party_id,
            beneficiary_name=beneficiary,
            payment_method=payment_method,
            amount=amount,
            currency=entry_currency,
            cash_account_id=cash.id,
            offset_account_id=offset.id,
            voucher_date=entry_date,
            description=description,
            reference=reference,
            transaction_group_id=group_id,
            created_by_id=actor_id,
        )
        self.session.add(voucher)
        self.session.flush()

        logger.info(
            "voucher_created",
            extra={
                "voucher_id": str(voucher.id),
                "voucher_type": kind.value,
                "amount": str(amount),
                "currency": entry_currency,
                "group_id": str(group_id),
            },
        )
        return voucher

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _lock(self, voucher_id: UUID) -> Voucher:
        voucher = self.session.execute(
            select(Voucher)
            .where(Voucher.id == as_uuid(voucher_id))
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if voucher is None:
            raise VoucherNotFoundError(str(voucher_id))
        return voucher

    def _transition(self, voucher: Voucher, action: str):
        current = VoucherStatus(voucher.status).value
        transition = VOUCHER_WORKFLOW.find_transition(current, action)
        if transition is None:
            raise InvalidStateTransitionError("Voucher", str(voucher.id), current, action)
        return transition

    def approve(self, voucher_id: UUID, actor_id: UUID) -> Voucher:
        """DRAFT -> APPROVED."""
        with LogContext.bind(voucher_id=str(voucher_id), actor_id=str(actor_id)):
            voucher = self._lock(voucher_id)
            transition = self._transition(voucher, "approve")
            voucher.status = VoucherStatus(transition.to_state)
            voucher.approved_at = self.clock.now()
            voucher.approved_by_id = actor_id
            voucher.updated_by_id = actor_id
            self.session.flush()
            logger.info("voucher_approved", extra={"voucher_id": str(voucher.id)})
            return voucher

    def post(self, voucher_id: UUID, actor_id: UUID) -> Voucher:
        """
        APPROVED -> POSTED, posting the voucher's group.

        If the group cannot be posted the savepoint is rolled back, the
        voucher stays APPROVED and the error propagates.
        """
        with LogContext.bind(voucher_id=str(voucher_id), actor_id=str(actor_id)):
            voucher = self._lock(voucher_id)
            transition = self._transition(voucher, "post")

            posted = None
            savepoint = self.session.begin_nested()
            try:
                if transition.posts_entry:
                    posted = self._journal.post(
                        voucher.transaction_group_id, actor_id, via_voucher=True,
                    )
                voucher.status = VoucherStatus(transition.to_state)
                voucher.posted_at = self.clock.now()
                voucher.posted_by_id = actor_id
                voucher.updated_by_id = actor_id
                self.session.flush()
                savepoint.commit()
            except Exception:
                savepoint.rollback()
                logger.warning(
                    "voucher_post_failed",
                    extra={
                        "voucher_id": str(voucher_id),
                        "guard": transition.guard.name if transition.guard else None,
                    },
                    exc_info=True,
                )
                raise

            logger.info(
                "voucher_posted",
                extra={
                    "voucher_id": str(voucher.id),
                    "group_id": str(voucher.transaction_group_id),
                    "seq": posted.seq if posted is not None else None,
                },
            )
            return voucher

    def cancel(
        self,
        voucher_id: UUID,
        actor_id: UUID,
        reason: str | None = None,
    ) -> Voucher:
        """
        DRAFT/APPROVED -> CANCELLED, discarding the PENDING group.

        The state change and the discard share a savepoint: if the group
        cannot be discarded the voucher keeps its status and its group.

        Raises:
            InvalidStateTransitionError: The voucher is POSTED or CANCELLED,
                or its group is no longer PENDING.
        """
        with LogContext.bind(voucher_id=str(voucher_id), actor_id=str(actor_id)):
            voucher = self._lock(voucher_id)
            transition = self._transition(voucher, "cancel")

            savepoint = self.session.begin_nested()
            try:
                group_id = voucher.transaction_group_id
                # The FK must be cleared before the group row is deleted
                voucher.transaction_group_id = None
                voucher.status = VoucherStatus(transition.to_state)
                voucher.cancelled_at = self.clock.now()
                voucher.cancelled_by_id = actor_id
                voucher.cancellation_reason = reason
                voucher.updated_by_id = actor_id
                self.session.flush()
                if group_id is not None:
                    self._journal.discard(group_id, via_voucher=True)
                savepoint.commit()
            except Exception:
                savepoint.rollback()
                logger.warning(
                    "voucher_cancel_failed",
                    extra={"voucher_id": str(voucher_id)},
                    exc_info=True,
                )
                raise

            logger.info(
                "voucher_cancelled",
                extra={"voucher_id": str(voucher.id), "reason": reason},
            )
            return voucher

    def reverse(
        self,
        voucher_id: UUID,
        actor_id: UUID,
        reason: str | None = None,
    ) -> ReversalResult:
        """
        Reverse a POSTED voucher's group.  The voucher stays POSTED and
        records the mirror group.

        Raises:
            InvalidStateTransitionError: The voucher is not POSTED.
            AlreadyReversedError: The voucher was reversed before.
        """
        with LogContext.bind(voucher_id=str(voucher_id), actor_id=str(actor_id)):
            voucher = self._lock(voucher_id)
            if voucher.status != VoucherStatus.POSTED:
                raise InvalidStateTransitionError(
                    "Voucher",
                    str(voucher.id),
                    VoucherStatus(voucher.status).value,
                    "reverse",
                )
            if voucher.reversal_group_id is not None:
                raise AlreadyReversedError(
                    str(voucher.transaction_group_id), str(voucher.reversal_group_id),
                )

            result = self._journal.reverse(voucher.transaction_group_id, actor_id, reason)
            voucher.reversal_group_id = result.reversal_group_id
            voucher.updated_by_id = actor_id
            self.session.flush()

            logger.info(
                "voucher_reversed",
                extra={
                    "voucher_id": str(voucher.id),
                    "reversal_group_id": str(result.reversal_group_id),
                },
            )
            return result
