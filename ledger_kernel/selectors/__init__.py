"""Selectors for the ledger kernel (read side)."""

from ledger_kernel.selectors.balance_selector import (
    AccountBalanceLine,
    AccountRegister,
    BalanceCacheMismatch,
    BalanceSelector,
    RegisterLine,
)
from ledger_kernel.selectors.ledger_selector import (
    AccountTotalsRow,
    CashFlowPosting,
    LedgerSelector,
    LedgerSnapshot,
)

__all__ = [
    "AccountBalanceLine",
    "AccountRegister",
    "AccountTotalsRow",
    "BalanceCacheMismatch",
    "BalanceSelector",
    "CashFlowPosting",
    "LedgerSelector",
    "LedgerSnapshot",
    "RegisterLine",
]
