"""
Module: ledger_kernel.models.account
Responsibility: ORM persistence for the Chart of Accounts -- the target of
    every posting.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Account.code is unique (uq_account_code).
    - ledger_group is immutable once postings exist against the account
      (enforced by ChartOfAccountsService, which checks for postings).
    - parent_id is a weak reference: no FK, no cascade.  Parents exist for
      presentation and rollup only.

Failure modes:
    - AccountNotFoundError when a line references a non-existent account.
    - AccountArchivedError when a line targets an archived account.
    - AccountReferencedError when archiving an account still in use.

Audit relevance:
    Changing the ledger group of an account after posting would retroactively
    move historical postings between statements, so the group is locked once
    referenced.
"""

from enum import Enum
from uuid import UUID

from sqlalchemy import Boolean, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase, UUIDString


class NormalBalance(str, Enum):
    """Normal balance side for an account."""

    DEBIT = "debit"
    CREDIT = "credit"


class LedgerGroup(str, Enum):
    """Top-level classification of accounts.

    ``INCOME`` is the legacy label for REVENUE and parses to it.
    """

    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    REVENUE = "revenue"
    EXPENSE = "expense"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            normalized = value.strip().lower()
            if normalized == "income":
                return cls.REVENUE
            for member in cls:
                if member.value == normalized:
                    return member
        return None

    @property
    def normal_balance(self) -> NormalBalance:
        if self in (LedgerGroup.ASSET, LedgerGroup.EXPENSE):
            return NormalBalance.DEBIT
        return NormalBalance.CREDIT

    @property
    def is_balance_sheet(self) -> bool:
        return self in (LedgerGroup.ASSET, LedgerGroup.LIABILITY, LedgerGroup.EQUITY)


class AccountSubGroup(str, Enum):
    """Optional finer classification within a ledger group."""

    INCOME = "income"  # legacy income accounts filed under EQUITY
    EXPENSE = "expense"  # legacy expense accounts filed under EQUITY
    CASH = "cash"
    BANK = "bank"
    RECEIVABLE = "receivable"
    PAYABLE = "payable"
    FIXED_ASSET = "fixed_asset"
    LONG_TERM_LIABILITY = "long_term_liability"
    OTHER = "other"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            normalized = value.strip().lower()
            for member in cls:
                if member.value == normalized:
                    return member
        return None


CASH_SUB_GROUPS: frozenset[str] = frozenset(
    {AccountSubGroup.CASH.value, AccountSubGroup.BANK.value}
)


class Account(TrackedBase):
    """
    Chart of Accounts entry -- a single node in the ledger structure.

    Contract:
        Account.code is globally unique.  Every account has exactly one
        currency; postings against it are in that currency.

    Guarantees:
        - ledger_group is one of the five LedgerGroup values.
        - sub_group, when set, is one of AccountSubGroup.
        - Archived accounts stay readable for reports.

    Non-goals:
        - This model does NOT enforce hierarchy acyclicity or archive rules;
          ChartOfAccountsService does.
    """

    __tablename__ = "accounts"

    __table_args__ = (
        UniqueConstraint("code", name="uq_account_code"),
        Index("idx_account_ledger_group", "ledger_group"),
        Index("idx_account_parent", "parent_id"),
    )

    # Human-readable account code
    code: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    # Display name
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    # Statement placement
    ledger_group: Mapped[LedgerGroup] = mapped_column(
        String(20),
        nullable=False,
    )

    # Finer classification (cash/bank drive the cash flow report)
    sub_group: Mapped[AccountSubGroup | None] = mapped_column(
        String(30),
        nullable=True,
    )

    # Parent account for hierarchical rollup (weak reference)
    parent_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )

    # ISO 4217 currency of all postings against this account
    currency: Mapped[str] = mapped_column(
        String(3),
        nullable=False,
    )

    # Soft archive flag; archived accounts accept no new entries
    is_archived: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Account {self.code}: {self.name}>"

    @property
    def group(self) -> LedgerGroup:
        """ledger_group as an enum member (the column loads as a plain str)."""
        return LedgerGroup(self.ledger_group)

    @property
    def sub(self) -> AccountSubGroup | None:
        return AccountSubGroup(self.sub_group) if self.sub_group else None

    @property
    def normal_balance(self) -> NormalBalance:
        return self.group.normal_balance

    @property
    def is_debit_normal(self) -> bool:
        return self.normal_balance == NormalBalance.DEBIT

    @property
    def is_cash(self) -> bool:
        return self.sub is not None and self.sub.value in CASH_SUB_GROUPS
