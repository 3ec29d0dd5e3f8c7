"""
ReversalService -- cancels a posted transaction group with its mirror.

Responsibility:
    Validates reversal preconditions, builds the mirror group (every posting
    with its direction flipped), posts it through the LedgerWriter and marks
    the original REVERSED -- all in the caller's transaction.

Architecture position:
    Kernel > Services.  Called by JournalService.reverse and, through it,
    by VoucherService.reverse.

Invariants enforced:
    - Only POSTED groups can be reversed; a group is reversed at most once
      (row lock on the original plus the unique reversal_of_id column).
    - The original's postings are never edited or deleted; only their
      status flips POSTED -> REVERSED.  They keep counting towards
      balances and the mirror cancels them.
    - The mirror is dated at the clock's current date, not the original
      entry date.

Failure modes:
    - TransactionGroupNotFoundError: Unknown group id.
    - InvalidStateTransitionError: Group is still PENDING.
    - AlreadyReversedError: Group already REVERSED or a mirror exists.

Audit relevance:
    ``transaction_group_reversed`` records the original, the mirror, both
    seqs and the reason.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import PostingDirection, ReversalResult
from ledger_kernel.exceptions import (
    AlreadyReversedError,
    InvalidStateTransitionError,
    TransactionGroupNotFoundError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.transaction import (
    Posting,
    TransactionGroup,
    TransactionSource,
    TransactionStatus,
)
from ledger_kernel.services.ledger_writer import LedgerWriter

logger = get_logger("services.reversal")


class ReversalService:
    """Reverses posted transaction groups.

    Contract:
        ``reverse(group_id, actor_id, reason)`` leaves the original REVERSED
        and a new POSTED mirror group pointing back at it.

    Non-goals:
        - Does NOT call session.commit() -- caller controls boundaries.
        - Does NOT support partial (line-level) reversals.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        ledger_writer: LedgerWriter | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._writer = ledger_writer or LedgerWriter(session, self._clock)

    def reverse(
        self,
        group_id: UUID,
        actor_id: UUID,
        reason: str | None = None,
    ) -> ReversalResult:
        original = self._load_and_validate(group_id)
        reversal_date = self._clock.today()

        mirror = TransactionGroup(
            entry_date=reversal_date,
            description=self._describe(original, reason),
            reference=original.reference,
            currency=original.currency,
            status=TransactionStatus.PENDING,
            source=TransactionSource.REVERSAL,
            reversal_of_id=original.id,
            created_by_id=actor_id,
        )
        for index, posting in enumerate(original.postings):
            mirror.postings.append(
                Posting(
                    account_id=posting.account_id,
                    transaction_date=reversal_date,
                    amount=posting.amount,
                    direction=PostingDirection(posting.direction).opposite,
                    currency=posting.currency,
                    description=posting.description,
                    status=TransactionStatus.PENDING,
                    line_seq=index,
                    created_by_id=actor_id,
                )
            )

        savepoint = self._session.begin_nested()
        try:
            self._session.add(mirror)
            self._session.flush()
            savepoint.commit()
        except IntegrityError as exc:
            # Lost a race on uq_transaction_group_reversal_of
            savepoint.rollback()
            raise AlreadyReversedError(str(group_id)) from exc

        posted = self._writer.finalize(mirror, actor_id)

        now = self._clock.now()
        original.status = TransactionStatus.REVERSED
        original.reversed_at = now
        original.updated_by_id = actor_id
        for posting in original.postings:
            posting.status = TransactionStatus.REVERSED
        self._session.flush()

        logger.info(
            "transaction_group_reversed",
            extra={
                "group_id": str(original.id),
                "original_seq": original.seq,
                "reversal_group_id": str(mirror.id),
                "reversal_seq": posted.seq,
                "reversal_date": reversal_date,
                "reason": reason,
            },
        )
        return ReversalResult(
            original_group_id=original.id,
            reversal_group_id=mirror.id,
            reversal_seq=posted.seq,
            reversal_date=reversal_date,
            posting_count=len(mirror.postings),
        )

    def _load_and_validate(self, group_id: UUID) -> TransactionGroup:
        """Lock the original row and check it can be reversed.

        Raises:
            TransactionGroupNotFoundError: Unknown id.
            InvalidStateTransitionError: Group is PENDING.
            AlreadyReversedError: Group is REVERSED or already has a mirror.
        """
        # Concurrent reversers queue here; populate_existing makes the
        # winner's status change visible to the one that waited.
        original = self._session.execute(
            select(TransactionGroup)
            .where(TransactionGroup.id == group_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

        if original is None:
            raise TransactionGroupNotFoundError(str(group_id))

        existing = self._session.execute(
            select(TransactionGroup.id).where(
                TransactionGroup.reversal_of_id == group_id
            )
        ).scalar_one_or_none()

        if original.is_reversed or existing is not None:
            raise AlreadyReversedError(
                str(group_id), str(existing) if existing is not None else None,
            )
        if not original.is_posted:
            raise InvalidStateTransitionError(
                "TransactionGroup",
                str(group_id),
                TransactionStatus(original.status).value,
                "reverse",
            )
        return original

    @staticmethod
    def _describe(original: TransactionGroup, reason: str | None) -> str:
        label = original.reference or original.description or str(original.id)
        text = f"Reversal of {label}"
        if reason:
            text = f"{text}: {reason}"
        return text[:500]
