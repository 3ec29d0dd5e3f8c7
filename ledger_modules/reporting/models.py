"""
Financial Reporting Domain Models (``ledger_modules.reporting.models``).

Responsibility
--------------
Frozen dataclass value objects for report outputs: trial balance, balance
sheet, profit and loss, cash flow, account balances and aged balances.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  Built by
``statements.py`` and returned by ``ReportingService``.

Invariants enforced
-------------------
* All models are ``frozen=True``.
* All monetary fields use ``Decimal`` (aging rows carry ``Money``).
* ``is_balanced`` / ``reconciles`` are computed outputs, never inputs.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from ledger_engines.aging import AgingReport


class ReportType(str, Enum):
    TRIAL_BALANCE = "trial_balance"
    BALANCE_SHEET = "balance_sheet"
    PROFIT_AND_LOSS = "profit_and_loss"
    CASH_FLOW = "cash_flow"
    ACCOUNT_BALANCES = "account_balances"
    AGED_RECEIVABLES = "aged_receivables"
    AGED_PAYABLES = "aged_payables"


class CashFlowActivity(str, Enum):
    OPERATING = "operating"
    INVESTING = "investing"
    FINANCING = "financing"


# =========================================================================
# Report Metadata (common to all reports)
# =========================================================================


@dataclass(frozen=True)
class ReportMetadata:
    """Metadata attached to every report."""

    report_type: ReportType
    entity_name: str
    currency: str
    as_of_date: date
    generated_at: str  # ISO timestamp from the injected clock
    period_start: date | None = None
    period_end: date | None = None
    snapshot_watermark: int | None = None


# =========================================================================
# Trial Balance
# =========================================================================


@dataclass(frozen=True)
class TrialBalanceLine:
    """
    One account in the trial balance.

    The net balance sits on exactly one side: ``ending_debit`` when the
    account is in debit, ``ending_credit`` otherwise.
    """

    account_id: UUID
    account_code: str
    account_name: str
    ledger_group: str
    sub_group: str | None
    debit_total: Decimal
    credit_total: Decimal
    ending_debit: Decimal
    ending_credit: Decimal


@dataclass(frozen=True)
class TrialBalanceGroup:
    ledger_group: str
    lines: tuple[TrialBalanceLine, ...]
    total_debit: Decimal
    total_credit: Decimal


@dataclass(frozen=True)
class TrialBalanceReport:
    metadata: ReportMetadata
    groups: tuple[TrialBalanceGroup, ...]
    total_debit: Decimal
    total_credit: Decimal
    is_balanced: bool

    @property
    def lines(self) -> tuple[TrialBalanceLine, ...]:
        return tuple(line for group in self.groups for line in group.lines)


# =========================================================================
# Statement sections
# =========================================================================


@dataclass(frozen=True)
class StatementLine:
    """An account and its amount on the statement's natural side."""

    account_id: UUID | None
    account_code: str
    account_name: str
    amount: Decimal


@dataclass(frozen=True)
class StatementSection:
    label: str
    lines: tuple[StatementLine, ...]
    total: Decimal


# =========================================================================
# Balance Sheet
# =========================================================================


@dataclass(frozen=True)
class BalanceSheetReport:
    """
    Assets = Liabilities + Equity is verified, not assumed.

    ``equity`` includes the synthetic current earnings line.
    """

    metadata: ReportMetadata
    assets: StatementSection
    liabilities: StatementSection
    equity: StatementSection
    current_earnings: Decimal
    total_assets: Decimal
    total_liabilities: Decimal
    total_equity: Decimal
    total_liabilities_and_equity: Decimal
    is_balanced: bool


# =========================================================================
# Profit & Loss
# =========================================================================


@dataclass(frozen=True)
class ProfitAndLossReport:
    metadata: ReportMetadata
    income: StatementSection
    expenses: StatementSection
    total_income: Decimal
    total_expenses: Decimal
    net_profit: Decimal


# =========================================================================
# Cash Flow
# =========================================================================


@dataclass(frozen=True)
class CashFlowReport:
    """
    Direct cash flow: what the non-cash side of each cash movement was.

    ``reconciles`` is ending - beginning == net change.
    """

    metadata: ReportMetadata
    operating: StatementSection
    investing: StatementSection
    financing: StatementSection
    net_change_in_cash: Decimal
    beginning_cash: Decimal
    ending_cash: Decimal
    reconciles: bool


# =========================================================================
# Account balances
# =========================================================================


@dataclass(frozen=True)
class AccountBalanceNode:
    """
    One account's period balances; with rollup, also its subtree total
    and its children.
    """

    account_id: UUID
    account_code: str
    account_name: str
    parent_id: UUID | None
    opening_balance: Decimal
    period_debits: Decimal
    period_credits: Decimal
    closing_balance: Decimal
    rolled_up_balance: Decimal | None = None
    children: tuple[AccountBalanceNode, ...] = ()

    def walk(self):
        yield self
        for child in self.children:
            yield from child.walk()


@dataclass(frozen=True)
class AccountBalancesReport:
    """
    Balances for one ledger group.

    With ``include_children`` the ``lines`` are the tree roots; otherwise a
    flat list.  ``total_closing`` always sums own balances only.
    """

    metadata: ReportMetadata
    ledger_group: str
    include_children: bool
    lines: tuple[AccountBalanceNode, ...]
    total_opening: Decimal
    total_debits: Decimal
    total_credits: Decimal
    total_closing: Decimal

    def find(self, account_code: str) -> AccountBalanceNode | None:
        for root in self.lines:
            for node in root.walk():
                if node.account_code == account_code:
                    return node
        return None


# =========================================================================
# Aged balances
# =========================================================================


@dataclass(frozen=True)
class AgedBalancesReport:
    metadata: ReportMetadata
    aging: AgingReport
