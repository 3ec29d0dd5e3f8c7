"""ORM models for the ledger kernel."""

from ledger_kernel.models.account import (
    CASH_SUB_GROUPS,
    Account,
    AccountSubGroup,
    LedgerGroup,
    NormalBalance,
)
from ledger_kernel.models.balance import AccountBalance
from ledger_kernel.models.sequence import SequenceCounter
from ledger_kernel.models.transaction import (
    LEDGER_STATUSES,
    Posting,
    PostingDirection,
    TransactionGroup,
    TransactionSource,
    TransactionStatus,
)
from ledger_kernel.models.voucher import (
    CounterpartyType,
    Voucher,
    VoucherStatus,
    VoucherType,
)


def import_all_models() -> None:
    """Import every mapped class so Base.metadata knows all tables."""
    from ledger_kernel.models import account, balance, sequence, transaction, voucher  # noqa: F401


__all__ = [
    "Account",
    "AccountSubGroup",
    "LedgerGroup",
    "NormalBalance",
    "CASH_SUB_GROUPS",
    "AccountBalance",
    "SequenceCounter",
    "Posting",
    "PostingDirection",
    "TransactionGroup",
    "TransactionSource",
    "TransactionStatus",
    "LEDGER_STATUSES",
    "Voucher",
    "VoucherType",
    "VoucherStatus",
    "CounterpartyType",
    "import_all_models",
]
