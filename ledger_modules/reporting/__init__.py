"""
Financial Reporting Module (``ledger_modules.reporting``).

Responsibility
--------------
Read-only module that generates reports from the ledger: trial balance,
balance sheet, profit and loss, cash flow, account balances with rollup,
and aged receivables and payables.

Architecture position
---------------------
**Modules layer** -- never posts.  Selectors supply rows, engines supply
rollup and aging, and the pure builders in ``statements`` shape the
report DTOs.

Invariants enforced
-------------------
* No transaction groups are created or changed by this module.
* Every report reads at a single ledger snapshot.
"""

from ledger_modules.reporting.config import CashFlowClassification, ReportingConfig
from ledger_modules.reporting.models import (
    AccountBalanceNode,
    AccountBalancesReport,
    AgedBalancesReport,
    BalanceSheetReport,
    CashFlowActivity,
    CashFlowReport,
    ProfitAndLossReport,
    ReportMetadata,
    ReportType,
    StatementLine,
    StatementSection,
    TrialBalanceGroup,
    TrialBalanceLine,
    TrialBalanceReport,
)
from ledger_modules.reporting.service import ReportingService

__all__ = [
    # Service
    "ReportingService",
    # Config
    "ReportingConfig",
    "CashFlowClassification",
    # Models
    "ReportType",
    "CashFlowActivity",
    "ReportMetadata",
    "TrialBalanceLine",
    "TrialBalanceGroup",
    "TrialBalanceReport",
    "StatementLine",
    "StatementSection",
    "BalanceSheetReport",
    "ProfitAndLossReport",
    "CashFlowReport",
    "AccountBalanceNode",
    "AccountBalancesReport",
    "AgedBalancesReport",
]
