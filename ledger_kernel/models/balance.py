"""
Module: ledger_kernel.models.balance
Responsibility: Running-balance cache, one row per (account, currency).
Architecture position: Kernel > Models.

Invariants enforced:
    - One row per (account_id, currency) (uq_account_balance).
    - debit_total / credit_total equal the sums over all ledger-affecting
      postings with seq <= last_seq.
    - ``version`` is SQLAlchemy's version_id_col: an UPDATE that finds a
      different version raises StaleDataError (mapped to OptimisticLockError
      by the ledger writer).

Audit relevance:
    The cache is derived data.  Postings stay authoritative;
    BalanceSelector.verify_balance_cache() recomputes and compares.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import BigInteger, ForeignKey, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import Base, UUIDString


class AccountBalance(Base):
    """Cached debit and credit totals for one account in one currency."""

    __tablename__ = "account_balances"

    __table_args__ = (
        UniqueConstraint("account_id", "currency", name="uq_account_balance"),
    )

    account_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=False,
    )

    currency: Mapped[str] = mapped_column(
        String(3),
        nullable=False,
    )

    debit_total: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        nullable=False,
        default=Decimal("0"),
    )

    credit_total: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        nullable=False,
        default=Decimal("0"),
    )

    # Seq of the last group applied to this row
    last_seq: Mapped[int | None] = mapped_column(
        BigInteger,
        nullable=True,
    )

    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<AccountBalance {self.account_id} {self.currency} {self.balance}>"

    @property
    def balance(self) -> Decimal:
        """Signed balance: debits minus credits."""
        return self.debit_total - self.credit_total
