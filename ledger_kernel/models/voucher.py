"""
Module: ledger_kernel.models.voucher
Responsibility: ORM persistence for payment, receipt and deposit vouchers.
Architecture position: Kernel > Models.

Invariants enforced:
    - A voucher owns at most one transaction group, built when the voucher
      is created and discarded if it is cancelled.
    - status only moves along VOUCHER_WORKFLOW
      (DRAFT -> APPROVED -> POSTED, DRAFT/APPROVED -> CANCELLED).
    - amount > 0.

Audit relevance:
    Approval, posting and cancellation record who and when.  A POSTED
    voucher is never cancelled; it is reversed through the ledger.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Date, DateTime, ForeignKey, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TrackedBase, UUIDString

if TYPE_CHECKING:
    from ledger_kernel.models.transaction import TransactionGroup


class VoucherType(str, Enum):
    PAYMENT = "payment"
    RECEIPT = "receipt"
    DEPOSIT = "deposit"


class VoucherStatus(str, Enum):
    DRAFT = "draft"
    APPROVED = "approved"
    POSTED = "posted"
    CANCELLED = "cancelled"


class CounterpartyType(str, Enum):
    CLIENT = "client"
    VENDOR = "vendor"
    STAFF = "staff"
    OTHER = "other"


class Voucher(TrackedBase):
    """
    A payment, receipt or deposit document backed by a two-line group.

    Contract:
        cash_account_id is the cash/bank leg; offset_account_id is the
        income, expense, receivable, payable or funding leg.  The direction
        of each leg depends on voucher_type.
    """

    __tablename__ = "vouchers"

    __table_args__ = (
        Index("idx_voucher_status", "status"),
        Index("idx_voucher_type", "voucher_type"),
        Index("idx_voucher_cash_account", "cash_account_id"),
        Index("idx_voucher_offset_account", "offset_account_id"),
    )

    voucher_type: Mapped[VoucherType] = mapped_column(
        String(10),
        nullable=False,
    )

    status: Mapped[VoucherStatus] = mapped_column(
        String(10),
        default=VoucherStatus.DRAFT,
        nullable=False,
    )

    # Counterparty
    counterparty_type: Mapped[CounterpartyType] = mapped_column(
        String(10),
        nullable=False,
    )

    counterparty_id: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )

    beneficiary_name: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )

    payment_method: Mapped[str | None] = mapped_column(
        String(30),
        nullable=True,
    )

    amount: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        nullable=False,
    )

    currency: Mapped[str] = mapped_column(
        String(3),
        nullable=False,
    )

    cash_account_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=False,
    )

    offset_account_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=False,
    )

    voucher_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    description: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
    )

    reference: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )

    # Owned group; cleared when a cancelled voucher's group is discarded
    transaction_group_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("transaction_groups.id"),
        nullable=True,
    )

    # Set when the posted voucher is reversed
    reversal_group_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("transaction_groups.id"),
        nullable=True,
    )

    approved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    approved_by_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
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

    cancelled_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    cancelled_by_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )

    cancellation_reason: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
    )

    transaction_group: Mapped["TransactionGroup | None"] = relationship(
        foreign_keys=[transaction_group_id],
    )

    def __repr__(self) -> str:
        return f"<Voucher {self.id} {self.voucher_type} {self.status} {self.amount}>"
