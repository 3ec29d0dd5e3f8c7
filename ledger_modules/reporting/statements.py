"""
Pure financial statement transformation functions.

These functions turn selector rows and account metadata into report
DTOs.  ZERO I/O.  ZERO side effects.  No clock access: the metadata,
including its timestamp, is built by the caller.

All monetary values are Decimal.  All inputs and outputs are frozen
dataclasses.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Sequence
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from ledger_engines.rollup import RollupResult
from ledger_kernel.domain.values import Currency
from ledger_kernel.models.account import AccountSubGroup, LedgerGroup, NormalBalance
from ledger_kernel.selectors.balance_selector import AccountBalanceLine
from ledger_kernel.selectors.ledger_selector import AccountTotalsRow, CashFlowPosting
from ledger_modules.reporting.config import ReportingConfig
from ledger_modules.reporting.models import (
    AccountBalanceNode,
    AccountBalancesReport,
    BalanceSheetReport,
    CashFlowActivity,
    CashFlowReport,
    ProfitAndLossReport,
    ReportMetadata,
    StatementLine,
    StatementSection,
    TrialBalanceGroup,
    TrialBalanceLine,
    TrialBalanceReport,
)

CURRENT_EARNINGS_LABEL = "Current earnings"

# Legacy income/expense accounts filed under EQUITY
_LEGACY_INCOME = AccountSubGroup.INCOME.value
_LEGACY_EXPENSE = AccountSubGroup.EXPENSE.value


# =========================================================================
# Bridge type: account metadata for pure functions
# =========================================================================


@dataclasses.dataclass(frozen=True)
class AccountInfo:
    """
    Snapshot of the account metadata statements need.

    The service converts Account rows to AccountInfo so this module stays
    free of ORM objects.
    """

    account_id: UUID
    code: str
    name: str
    ledger_group: LedgerGroup
    sub_group: str | None = None
    parent_id: UUID | None = None
    currency: str = "USD"

    @property
    def is_legacy_income(self) -> bool:
        return self.ledger_group == LedgerGroup.EQUITY and self.sub_group == _LEGACY_INCOME

    @property
    def is_legacy_expense(self) -> bool:
        return self.ledger_group == LedgerGroup.EQUITY and self.sub_group == _LEGACY_EXPENSE

    @property
    def is_income(self) -> bool:
        return self.ledger_group == LedgerGroup.REVENUE or self.is_legacy_income

    @property
    def is_expense(self) -> bool:
        return self.ledger_group == LedgerGroup.EXPENSE or self.is_legacy_expense


# =========================================================================
# Helpers
# =========================================================================


def zero(currency: str) -> Decimal:
    return Decimal("0").quantize(Currency(currency).minor_unit)


def compute_natural_balance(
    debit_total: Decimal,
    credit_total: Decimal,
    normal_balance: NormalBalance,
) -> Decimal:
    """
    Balance on the account's normal side.

    Positive when the account sits on its expected side.
    """
    if normal_balance == NormalBalance.DEBIT:
        return debit_total - credit_total
    return credit_total - debit_total


def _rows_with_accounts(
    rows: Iterable[AccountTotalsRow],
    accounts: dict[UUID, AccountInfo],
    currency: str,
    include_zero_balances: bool,
) -> list[tuple[AccountInfo, Decimal, Decimal]]:
    """(account, debits, credits) per account, ordered by code."""
    by_account: dict[UUID, tuple[AccountInfo, Decimal, Decimal]] = {}
    for row in rows:
        if row.currency != currency:
            continue
        info = accounts.get(row.account_id) or AccountInfo(
            account_id=row.account_id,
            code=row.account_code,
            name=row.account_name,
            ledger_group=LedgerGroup(row.ledger_group),
            sub_group=row.sub_group,
            parent_id=row.parent_id,
            currency=row.currency,
        )
        by_account[row.account_id] = (info, row.debit_total, row.credit_total)

    if include_zero_balances:
        for info in accounts.values():
            if info.account_id not in by_account and info.currency == currency:
                by_account[info.account_id] = (info, zero(currency), zero(currency))

    result = list(by_account.values())
    result.sort(key=lambda item: item[0].code)
    return result


def _section(label: str, lines: Sequence[StatementLine], currency: str) -> StatementSection:
    ordered = tuple(sorted(lines, key=lambda line: line.account_code))
    return StatementSection(
        label=label,
        lines=ordered,
        total=sum((line.amount for line in ordered), zero(currency)),
    )


def _line(info: AccountInfo, amount: Decimal) -> StatementLine:
    return StatementLine(
        account_id=info.account_id,
        account_code=info.code,
        account_name=info.name,
        amount=amount,
    )


# =========================================================================
# 1. TRIAL BALANCE
# =========================================================================


def build_trial_balance(
    rows: Sequence[AccountTotalsRow],
    accounts: dict[UUID, AccountInfo],
    config: ReportingConfig,
    metadata: ReportMetadata,
) -> TrialBalanceReport:
    """
    Per-account ending debit or credit, grouped by ledger group in
    chart order (asset, liability, equity, revenue, expense).
    """
    currency = metadata.currency
    nothing = zero(currency)
    grouped: dict[LedgerGroup, list[TrialBalanceLine]] = {group: [] for group in LedgerGroup}

    for info, debits, credits in _rows_with_accounts(
        rows, accounts, currency, config.include_zero_balances,
    ):
        net = debits - credits
        if net == 0 and not config.include_zero_balances:
            continue
        grouped[info.ledger_group].append(
            TrialBalanceLine(
                account_id=info.account_id,
                account_code=info.code,
                account_name=info.name,
                ledger_group=info.ledger_group.value,
                sub_group=info.sub_group,
                debit_total=debits,
                credit_total=credits,
                ending_debit=net if net > 0 else nothing,
                ending_credit=-net if net < 0 else nothing,
            )
        )

    groups = tuple(
        TrialBalanceGroup(
            ledger_group=group.value,
            lines=tuple(lines),
            total_debit=sum((line.ending_debit for line in lines), nothing),
            total_credit=sum((line.ending_credit for line in lines), nothing),
        )
        for group, lines in grouped.items()
        if lines
    )
    total_debit = sum((g.total_debit for g in groups), nothing)
    total_credit = sum((g.total_credit for g in groups), nothing)

    return TrialBalanceReport(
        metadata=metadata,
        groups=groups,
        total_debit=total_debit,
        total_credit=total_credit,
        is_balanced=(total_debit == total_credit),
    )


# =========================================================================
# 2. BALANCE SHEET
# =========================================================================


def build_balance_sheet(
    rows: Sequence[AccountTotalsRow],
    accounts: dict[UUID, AccountInfo],
    config: ReportingConfig,
    metadata: ReportMetadata,
) -> BalanceSheetReport:
    """
    Assets, liabilities and equity at their natural balances.

    Revenue, expense and the legacy income/expense equity accounts are not
    listed; their cumulative result appears as one current earnings line
    in equity, which is what makes the sheet balance before closing.
    """
    currency = metadata.currency
    assets: list[StatementLine] = []
    liabilities: list[StatementLine] = []
    equity: list[StatementLine] = []
    earnings = zero(currency)

    for info, debits, credits in _rows_with_accounts(
        rows, accounts, currency, config.include_zero_balances,
    ):
        natural = compute_natural_balance(debits, credits, info.ledger_group.normal_balance)
        if info.is_income or info.is_expense:
            earnings += credits - debits
            continue
        if natural == 0 and not config.include_zero_balances:
            continue
        if info.ledger_group == LedgerGroup.ASSET:
            assets.append(_line(info, natural))
        elif info.ledger_group == LedgerGroup.LIABILITY:
            liabilities.append(_line(info, natural))
        else:
            equity.append(_line(info, natural))

    equity.append(
        StatementLine(
            account_id=None,
            account_code="",
            account_name=CURRENT_EARNINGS_LABEL,
            amount=earnings,
        )
    )

    asset_section = _section("Assets", assets, currency)
    liability_section = _section("Liabilities", liabilities, currency)
    equity_section = _section("Equity", equity, currency)
    total_l_and_e = liability_section.total + equity_section.total

    return BalanceSheetReport(
        metadata=metadata,
        assets=asset_section,
        liabilities=liability_section,
        equity=equity_section,
        current_earnings=earnings,
        total_assets=asset_section.total,
        total_liabilities=liability_section.total,
        total_equity=equity_section.total,
        total_liabilities_and_equity=total_l_and_e,
        is_balanced=(asset_section.total == total_l_and_e),
    )


# =========================================================================
# 3. PROFIT & LOSS
# =========================================================================


def build_profit_and_loss(
    rows: Sequence[AccountTotalsRow],
    accounts: dict[UUID, AccountInfo],
    config: ReportingConfig,
    metadata: ReportMetadata,
) -> ProfitAndLossReport:
    """
    Period movement of income and expense accounts.

    Each account is listed at the magnitude of its net movement, so a
    revenue account is never shown negative.
    """
    currency = metadata.currency
    income: list[StatementLine] = []
    expenses: list[StatementLine] = []

    for info, debits, credits in _rows_with_accounts(
        rows, accounts, currency, config.include_zero_balances,
    ):
        amount = abs(debits - credits)
        if amount == 0 and not config.include_zero_balances:
            continue
        if info.is_income:
            income.append(_line(info, amount))
        elif info.is_expense:
            expenses.append(_line(info, amount))

    income_section = _section("Income", income, currency)
    expense_section = _section("Expenses", expenses, currency)

    return ProfitAndLossReport(
        metadata=metadata,
        income=income_section,
        expenses=expense_section,
        total_income=income_section.total,
        total_expenses=expense_section.total,
        net_profit=income_section.total - expense_section.total,
    )


# =========================================================================
# 4. CASH FLOW
# =========================================================================


def classify_cash_flow(
    account_name: str,
    sub_group: str | None,
    config: ReportingConfig,
) -> CashFlowActivity:
    clf = config.classification
    if clf.matches(account_name, sub_group, clf.investing_keywords, clf.investing_sub_groups):
        return CashFlowActivity.INVESTING
    if clf.matches(account_name, sub_group, clf.financing_keywords, clf.financing_sub_groups):
        return CashFlowActivity.FINANCING
    return CashFlowActivity.OPERATING


def build_cash_flow(
    postings: Sequence[CashFlowPosting],
    beginning_cash: Decimal,
    ending_cash: Decimal,
    config: ReportingConfig,
    metadata: ReportMetadata,
) -> CashFlowReport:
    """
    Bucket the non-cash side of every cash movement.

    A credit to revenue in a cash receipt is a cash inflow, so the cash
    effect of a posting is its signed amount negated.  Amounts are summed
    per account within each activity.
    """
    currency = metadata.currency
    per_activity: dict[CashFlowActivity, dict[UUID, StatementLine]] = {
        activity: {} for activity in CashFlowActivity
    }

    for posting in postings:
        activity = classify_cash_flow(posting.account_name, posting.sub_group, config)
        effect = -posting.signed_amount
        existing = per_activity[activity].get(posting.account_id)
        per_activity[activity][posting.account_id] = StatementLine(
            account_id=posting.account_id,
            account_code=posting.account_code,
            account_name=posting.account_name,
            amount=(existing.amount if existing else zero(currency)) + effect,
        )

    def section(label: str, activity: CashFlowActivity) -> StatementSection:
        return _section(label, list(per_activity[activity].values()), currency)

    operating = section("Operating activities", CashFlowActivity.OPERATING)
    investing = section("Investing activities", CashFlowActivity.INVESTING)
    financing = section("Financing activities", CashFlowActivity.FINANCING)
    net_change = operating.total + investing.total + financing.total

    return CashFlowReport(
        metadata=metadata,
        operating=operating,
        investing=investing,
        financing=financing,
        net_change_in_cash=net_change,
        beginning_cash=beginning_cash,
        ending_cash=ending_cash,
        reconciles=(ending_cash - beginning_cash == net_change),
    )


# =========================================================================
# 5. ACCOUNT BALANCES
# =========================================================================


def _node(line: AccountBalanceLine, rolled_up=None, children=()) -> AccountBalanceNode:
    return AccountBalanceNode(
        account_id=line.account_id,
        account_code=line.account_code,
        account_name=line.account_name,
        parent_id=line.parent_id,
        opening_balance=line.opening_balance,
        period_debits=line.period_debits,
        period_credits=line.period_credits,
        closing_balance=line.closing_balance,
        rolled_up_balance=rolled_up,
        children=children,
    )


def build_account_balances(
    lines: Sequence[AccountBalanceLine],
    ledger_group: LedgerGroup,
    metadata: ReportMetadata,
    rollup: RollupResult | None = None,
) -> AccountBalancesReport:
    """
    Wrap balance lines in a report, as a tree when ``rollup`` is given.

    Totals sum own balances, so a parent and its children are never
    counted twice.
    """
    currency = metadata.currency
    by_id = {line.account_id: line for line in lines}

    if rollup is None:
        nodes = tuple(_node(line) for line in lines)
    else:
        def convert(rolled) -> AccountBalanceNode:
            return _node(
                by_id[rolled.node_id],
                rolled_up=rolled.rolled_up_balance,
                children=tuple(convert(child) for child in rolled.children),
            )

        nodes = tuple(convert(root) for root in rollup.roots)

    return AccountBalancesReport(
        metadata=metadata,
        ledger_group=ledger_group.value,
        include_children=rollup is not None,
        lines=nodes,
        total_opening=sum((line.opening_balance for line in lines), zero(currency)),
        total_debits=sum((line.period_debits for line in lines), zero(currency)),
        total_credits=sum((line.period_credits for line in lines), zero(currency)),
        total_closing=sum((line.closing_balance for line in lines), zero(currency)),
    )


# =========================================================================
# Serialization
# =========================================================================


def render_to_dict(obj: object) -> dict | list | str | int | float | bool | None:
    """
    Convert any report dataclass to plain JSON-ready structures.

    Decimal and UUID become strings, dates ISO strings, enums their value,
    tuples lists.  Money becomes {"amount", "currency"}.
    """
    if obj is None:
        return None
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, UUID):
        return str(obj)
    if isinstance(obj, date):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, Currency):
        return obj.code
    if isinstance(obj, (list, tuple)):
        return [render_to_dict(item) for item in obj]
    if isinstance(obj, dict):
        return {str(k): render_to_dict(v) for k, v in obj.items()}
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {
            f.name: render_to_dict(getattr(obj, f.name))
            for f in dataclasses.fields(obj)
        }
    if isinstance(obj, (str, int, float, bool)):
        return obj
    return str(obj)
