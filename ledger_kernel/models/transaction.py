"""
Module: ledger_kernel.models.transaction
Responsibility: ORM persistence for transaction groups and their postings --
    the single source of financial truth in this system.
Architecture position: Kernel > Models.  May import from db/base.py and the
    domain enums only.  MUST NOT import from services/ or selectors/.

Invariants enforced:
    - seq is unique and assigned once, at posting (uq_transaction_group_seq).
    - reversal_of_id is unique: a group can be reversed at most once
      (uq_transaction_group_reversal_of).
    - Posting amounts are strictly positive; direction carries the sign.
    - Debits == Credits per group (checked by the journal service before
      posting; is_balanced is the read-side convenience).

Failure modes:
    - IntegrityError on a second reversal of the same group.
    - UnbalancedEntryError raised by the posting path, never here.

Audit relevance:
    Postings are immutable once their group is POSTED, except for the
    POSTED -> REVERSED status flip.  Corrections are always new groups.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    BigInteger,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TrackedBase, UUIDString
from ledger_kernel.domain.dtos import PostingDirection

if TYPE_CHECKING:
    from ledger_kernel.models.account import Account


class TransactionStatus(str, Enum):
    """Lifecycle status of a transaction group and its postings.

    Contract: PENDING -> POSTED -> REVERSED, never backwards.
    """

    PENDING = "pending"
    POSTED = "posted"
    REVERSED = "reversed"


# Statuses whose postings count towards balances and reports
LEDGER_STATUSES: tuple[str, ...] = (
    TransactionStatus.POSTED.value,
    TransactionStatus.REVERSED.value,
)


class TransactionSource(str, Enum):
    """What created a transaction group."""

    JOURNAL = "journal"
    VOUCHER = "voucher"
    REVERSAL = "reversal"
    PAYMENT = "payment"


class TransactionGroup(TrackedBase):
    """
    Transaction group header -- the atomic unit of double-entry accounting.

    Contract:
        A group owns two or more postings in a single currency.  It is
        created PENDING, posted once (receiving its ledger seq), and may be
        reversed once by a mirror group that points back via reversal_of_id.

    Guarantees:
        - Debits == Credits in minor units for every POSTED group.
        - seq is monotonic in commit order.
    """

    __tablename__ = "transaction_groups"

    __table_args__ = (
        UniqueConstraint("seq", name="uq_transaction_group_seq"),
        UniqueConstraint("reversal_of_id", name="uq_transaction_group_reversal_of"),
        Index("idx_transaction_group_entry_date", "entry_date"),
        Index("idx_transaction_group_status", "status"),
    )

    # Accounting date
    entry_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    description: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
    )

    # External reference (voucher number, invoice number, ...)
    reference: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )

    # Single currency of every posting in the group
    currency: Mapped[str] = mapped_column(
        String(3),
        nullable=False,
    )

    status: Mapped[TransactionStatus] = mapped_column(
        String(10),
        default=TransactionStatus.PENDING,
        nullable=False,
    )

    source: Mapped[TransactionSource] = mapped_column(
        String(20),
        default=TransactionSource.JOURNAL,
        nullable=False,
    )

    # Monotonic ledger sequence (assigned at posting)
    seq: Mapped[int | None] = mapped_column(
        BigInteger,
        nullable=True,
    )

    posted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    posted_by_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )

    reversed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # If this is a reversal, points to the original group
    reversal_of_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("transaction_groups.id"),
        nullable=True,
    )

    postings: Mapped[list["Posting"]] = relationship(
        back_populates="group",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="Posting.line_seq",
    )

    reversal_of: Mapped["TransactionGroup | None"] = relationship(
        remote_side="TransactionGroup.id",
        foreign_keys=[reversal_of_id],
    )

    def __repr__(self) -> str:
        return f"<TransactionGroup {self.id} status={self.status} seq={self.seq}>"

    @property
    def is_pending(self) -> bool:
        return self.status == TransactionStatus.PENDING

    @property
    def is_posted(self) -> bool:
        return self.status == TransactionStatus.POSTED

    @property
    def is_reversed(self) -> bool:
        return self.status == TransactionStatus.REVERSED

    @property
    def affects_ledger(self) -> bool:
        return self.status in LEDGER_STATUSES

    @property
    def total_debits(self) -> Decimal:
        return sum(
            (p.amount for p in self.postings if p.is_debit),
            Decimal("0"),
        )

    @property
    def total_credits(self) -> Decimal:
        return sum(
            (p.amount for p in self.postings if p.is_credit),
            Decimal("0"),
        )

    @property
    def is_balanced(self) -> bool:
        return self.total_debits == self.total_credits

    @property
    def account_ids(self) -> set[UUID]:
        return {p.account_id for p in self.postings}


class Posting(TrackedBase):
    """
    A single debit or credit against one account.

    Contract:
        Belongs to exactly one TransactionGroup and references exactly one
        Account.  transaction_date mirrors the group's entry_date so that
        date-range balance queries need no join.

    Guarantees:
        - amount > 0; direction determines the sign (signed_amount).
        - line_seq gives a deterministic order within the group.
    """

    __tablename__ = "postings"

    __table_args__ = (
        Index("idx_posting_group", "transaction_group_id"),
        Index("idx_posting_account_currency", "account_id", "currency"),
        Index("idx_posting_account_date", "account_id", "transaction_date"),
    )

    transaction_group_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("transaction_groups.id"),
        nullable=False,
    )

    account_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=False,
    )

    transaction_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    # Always positive
    amount: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        nullable=False,
    )

    direction: Mapped[PostingDirection] = mapped_column(
        String(10),
        nullable=False,
    )

    currency: Mapped[str] = mapped_column(
        String(3),
        nullable=False,
    )

    description: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
    )

    # Mirrors the group status
    status: Mapped[TransactionStatus] = mapped_column(
        String(10),
        default=TransactionStatus.PENDING,
        nullable=False,
    )

    line_seq: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    group: Mapped["TransactionGroup"] = relationship(
        back_populates="postings",
    )

    account: Mapped["Account"] = relationship(lazy="joined")

    def __repr__(self) -> str:
        return f"<Posting {self.direction} {self.amount} {self.currency}>"

    @property
    def is_debit(self) -> bool:
        return self.direction == PostingDirection.DEBIT

    @property
    def is_credit(self) -> bool:
        return self.direction == PostingDirection.CREDIT

    @property
    def signed_amount(self) -> Decimal:
        """Debit positive, credit negative."""
        return self.amount if self.is_debit else -self.amount
