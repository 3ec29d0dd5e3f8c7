"""
AccountRef -- how an entry line names its account.

A reference is either an account id or an account code.  It is resolved
exactly once, when the transaction group is built; postings store the
resolved account id, so nothing downstream ever re-parses a string to find
out which account a line belongs to.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any
from uuid import UUID


class AccountRefKind(str, Enum):
    """Which key an AccountRef carries."""

    ID = "id"
    CODE = "code"


@dataclass(frozen=True, slots=True)
class AccountRef:
    """
    Tagged reference to an account.

    Contract:
        Exactly one of ``account_id`` / ``code`` is set, matching ``kind``.
        Build with ``by_id``, ``by_code`` or ``parse``.
    """

    kind: AccountRefKind
    account_id: UUID | None = None
    code: str | None = None

    def __post_init__(self) -> None:
        if self.kind == AccountRefKind.ID:
            if self.account_id is None or self.code is not None:
                raise ValueError("AccountRef.by_id requires an account_id only")
        elif self.kind == AccountRefKind.CODE:
            if not self.code or self.account_id is not None:
                raise ValueError("AccountRef.by_code requires a non-empty code only")

    @classmethod
    def by_id(cls, account_id: UUID) -> AccountRef:
        if not isinstance(account_id, UUID):
            account_id = UUID(str(account_id))
        return cls(kind=AccountRefKind.ID, account_id=account_id)

    @classmethod
    def by_code(cls, code: str) -> AccountRef:
        return cls(kind=AccountRefKind.CODE, code=code.strip())

    @classmethod
    def parse(cls, value: Any) -> AccountRef:
        """
        Coerce a UUID, an Account-like object or an AccountRef.

        Plain strings are not accepted: callers must say whether they mean
        a code (``by_code``) or an id (``by_id``).
        """
        if isinstance(value, AccountRef):
            return value
        if isinstance(value, UUID):
            return cls.by_id(value)
        account_id = getattr(value, "id", None)
        if isinstance(account_id, UUID):
            return cls.by_id(account_id)
        raise TypeError(
            f"Cannot build an AccountRef from {type(value).__name__}; "
            "use AccountRef.by_code() or AccountRef.by_id()"
        )

    @property
    def is_id(self) -> bool:
        return self.kind == AccountRefKind.ID

    def __str__(self) -> str:
        if self.is_id:
            return str(self.account_id)
        return f"code:{self.code}"
