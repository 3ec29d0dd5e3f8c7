"""
Service layer for the Chart of Accounts.

Creates, resolves, re-parents and archives accounts.  Structural edits are
guarded: an account's ledger group is frozen once postings exist against
it, and an account that is still in use cannot be archived.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import exists, or_, select

from ledger_kernel.domain.account_ref import AccountRef
from ledger_kernel.domain.currency import CurrencyRegistry
from ledger_kernel.exceptions import (
    AccountHierarchyError,
    AccountNotFoundError,
    AccountReferencedError,
    DuplicateAccountCodeError,
    InvalidCurrencyError,
    LedgerGroupImmutableError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import Account, AccountSubGroup, LedgerGroup
from ledger_kernel.models.transaction import Posting
from ledger_kernel.models.voucher import Voucher
from ledger_kernel.services.base import BaseService, as_uuid

logger = get_logger("services.accounts")


class ChartOfAccountsService(BaseService[Account]):
    """
    Service for managing the chart of accounts.

    All lookups go through ``resolve``; every other service that needs an
    account from an AccountRef calls it so the not-found behaviour is the
    same everywhere.
    """

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def resolve(self, ref: AccountRef | UUID | Account) -> Account:
        """
        Resolve a reference to its Account.

        Raises:
            AccountNotFoundError: If no account matches.
        """
        ref = AccountRef.parse(ref)
        if ref.is_id:
            account = self.session.get(Account, ref.account_id)
        else:
            account = self.session.execute(
                select(Account).where(Account.code == ref.code)
            ).scalar_one_or_none()
        if account is None:
            raise AccountNotFoundError(str(ref))
        return account

    def get_by_code(self, code: str) -> Account:
        return self.resolve(AccountRef.by_code(code))

    def find_by_code(self, code: str) -> Account | None:
        return self.session.execute(
            select(Account).where(Account.code == code)
        ).scalar_one_or_none()

    def list_accounts(
        self,
        ledger_group: LedgerGroup | str | None = None,
        include_archived: bool = False,
    ) -> list[Account]:
        """List accounts ordered by code, optionally filtered by ledger group."""
        stmt = select(Account)
        if ledger_group is not None:
            stmt = stmt.where(Account.ledger_group == LedgerGroup(ledger_group).value)
        if not include_archived:
            stmt = stmt.where(Account.is_archived == False)  # noqa: E712
        stmt = stmt.order_by(Account.code)
        return list(self.session.execute(stmt).scalars().all())

    def children_of(self, account_id: UUID) -> list[Account]:
        stmt = (
            select(Account)
            .where(Account.parent_id == as_uuid(account_id))
            .order_by(Account.code)
        )
        return list(self.session.execute(stmt).scalars().all())

    def has_postings(self, account_id: UUID) -> bool:
        return bool(
            self.session.execute(
                select(exists().where(Posting.account_id == account_id))
            ).scalar()
        )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_account(
        self,
        code: str,
        name: str,
        ledger_group: LedgerGroup | str,
        currency: str,
        actor_id: UUID,
        parent: AccountRef | UUID | Account | None = None,
        sub_group: AccountSubGroup | str | None = None,
    ) -> Account:
        """
        Create an account.

        Raises:
            DuplicateAccountCodeError: If the code is taken.
            InvalidCurrencyError: If currency is not ISO 4217.
            AccountNotFoundError: If ``parent`` does not resolve.
        """
        code = code.strip()
        if not code:
            raise ValueError("Account code must not be empty")
        if not CurrencyRegistry.is_valid(currency):
            raise InvalidCurrencyError(currency)
        if self.find_by_code(code) is not None:
            raise DuplicateAccountCodeError(code)

        group = LedgerGroup(ledger_group)
        sub = AccountSubGroup(sub_group) if sub_group is not None else None
        parent_id = self.resolve(parent).id if parent is not None else None

        account = Account(
            code=code,
            name=name,
            ledger_group=group,
            sub_group=sub,
            parent_id=parent_id,
            currency=CurrencyRegistry.validate(currency),
            is_archived=False,
            created_by_id=actor_id,
        )
        self.session.add(account)
        self.session.flush()

        logger.info(
            "account_created",
            extra={
                "account_id": str(account.id),
                "account_code": code,
                "ledger_group": group.value,
                "currency": account.currency,
            },
        )
        return account

    def change_ledger_group(
        self,
        account_id: UUID,
        new_group: LedgerGroup | str,
        actor_id: UUID,
    ) -> Account:
        """
        Move an account to another ledger group.

        Raises:
            LedgerGroupImmutableError: If postings exist against the account.
        """
        account = self.resolve(AccountRef.by_id(account_id))
        target = LedgerGroup(new_group)
        if account.group == target:
            return account
        if self.has_postings(account.id):
            raise LedgerGroupImmutableError(
                str(account.id), account.group.value, target.value,
            )
        account.ledger_group = target
        account.updated_by_id = actor_id
        self.session.flush()
        logger.info(
            "account_ledger_group_changed",
            extra={"account_id": str(account.id), "ledger_group": target.value},
        )
        return account

    def set_parent(
        self,
        account_id: UUID,
        parent: AccountRef | UUID | Account | None,
        actor_id: UUID,
    ) -> Account:
        """
        Attach an account under ``parent`` (or detach it with None).

        Raises:
            AccountHierarchyError: If the new parent is the account itself
                or one of its descendants.
        """
        account = self.resolve(AccountRef.by_id(account_id))
        if parent is None:
            account.parent_id = None
        else:
            parent_account = self.resolve(parent)
            # Walk up from the proposed parent; reaching the account is a cycle
            seen: set[UUID] = set()
            cursor: Account | None = parent_account
            while cursor is not None:
                if cursor.id == account.id:
                    raise AccountHierarchyError(str(account.id), str(parent_account.id))
                if cursor.id in seen:
                    break
                seen.add(cursor.id)
                cursor = (
                    self.session.get(Account, cursor.parent_id)
                    if cursor.parent_id is not None
                    else None
                )
            account.parent_id = parent_account.id
        account.updated_by_id = actor_id
        self.session.flush()
        logger.info(
            "account_parent_set",
            extra={
                "account_id": str(account.id),
                "parent_id": str(account.parent_id) if account.parent_id else None,
            },
        )
        return account

    def archive(self, account_id: UUID, actor_id: UUID) -> Account:
        """
        Soft-archive an unused account.

        Raises:
            AccountReferencedError: If the account has postings, is used by a
                voucher, or still has children that are not archived.
        """
        account = self.resolve(AccountRef.by_id(account_id))
        if account.is_archived:
            return account

        if self.has_postings(account.id):
            raise AccountReferencedError(str(account.id), "postings exist")

        used_by_voucher = self.session.execute(
            select(
                exists().where(
                    or_(
                        Voucher.cash_account_id == account.id,
                        Voucher.offset_account_id == account.id,
                    )
                )
            )
        ).scalar()
        if used_by_voucher:
            raise AccountReferencedError(str(account.id), "referenced by a voucher")

        if any(not child.is_archived for child in self.children_of(account.id)):
            raise AccountReferencedError(str(account.id), "has active child accounts")

        account.is_archived = True
        account.updated_by_id = actor_id
        self.session.flush()
        logger.info("account_archived", extra={"account_id": str(account.id)})
        return account
