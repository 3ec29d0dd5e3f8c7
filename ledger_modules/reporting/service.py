"""
Reporting Module Service (``ledger_modules.reporting.service``).

Responsibility
--------------
Generates trial balance, balance sheet, profit and loss, cash flow,
account balance and aged balance reports by bridging the kernel selectors
and the pure engines to the pure builders in ``statements.py``.  This is
a **read-only** service.

Architecture position
---------------------
**Modules layer**.  Constructor: ``session`` + ``clock`` + ``config``.

Invariants enforced
-------------------
* Read-only -- no mutations to the ledger.
* Every report reads at one LedgerSnapshot: a fresh one when the caller
  passes none, so a report never mixes two ledger states.  Pass the same
  snapshot to several calls to make them agree with each other.
* All monetary amounts use ``Decimal``.

Failure modes
-------------
* ``ValueError`` when a period ends before it starts.
* ``CurrencyMismatchError`` from the aging engine for mixed-currency items.
* Empty ledger  -> zero totals and empty sections, never an error.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_engines.aging import AgeBucket, AgingCalculator, OpenItem
from ledger_engines.rollup import RollupNode, rollup_balances
from ledger_kernel.domain.account_ref import AccountRef
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import Account, LedgerGroup
from ledger_kernel.selectors.balance_selector import AccountRegister, BalanceSelector
from ledger_kernel.selectors.ledger_selector import LedgerSelector, LedgerSnapshot
from ledger_modules.reporting.config import ReportingConfig
from ledger_modules.reporting.models import (
    AccountBalancesReport,
    AgedBalancesReport,
    BalanceSheetReport,
    CashFlowReport,
    ProfitAndLossReport,
    ReportMetadata,
    ReportType,
    TrialBalanceReport,
)
from ledger_modules.reporting.statements import (
    AccountInfo,
    build_account_balances,
    build_balance_sheet,
    build_cash_flow,
    build_profit_and_loss,
    build_trial_balance,
    render_to_dict,
)

logger = get_logger("modules.reporting.service")


class ReportingService:
    """
    Report generation service.

    Contract
    --------
    * Every public report method returns a frozen report DTO stamped with
      ReportMetadata, including the snapshot watermark it read at.
    * Clock is injectable for deterministic ``generated_at`` values.

    Non-goals
    ---------
    * Does NOT render or export (PDF/XLSX/CSV).
    * Does NOT convert between currencies: each report covers one.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: ReportingConfig | None = None,
        aging_buckets: Sequence[AgeBucket] | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config or ReportingConfig.with_defaults()
        self._ledger = LedgerSelector(session)
        self._balances = BalanceSelector(session)
        self._aging = AgingCalculator(aging_buckets)

        logger.info(
            "reporting_service_initialized",
            extra={
                "entity_name": self._config.entity_name,
                "default_currency": self._config.default_currency,
            },
        )

    # =========================================================================
    # Internal helpers
    # =========================================================================

    def _load_accounts(self) -> dict[UUID, AccountInfo]:
        """All accounts (archived included: they may still carry balances)."""
        accounts: dict[UUID, AccountInfo] = {}
        for acct in self._session.execute(select(Account)).scalars():
            if acct.is_archived and not self._config.include_zero_balances:
                # Archived accounts still show up through their ledger rows
                continue
            accounts[acct.id] = AccountInfo(
                account_id=acct.id,
                code=acct.code,
                name=acct.name,
                ledger_group=LedgerGroup(acct.ledger_group),
                sub_group=acct.sub_group,
                parent_id=acct.parent_id,
                currency=acct.currency,
            )
        logger.debug(
            "accounts_loaded_for_reporting",
            extra={"account_count": len(accounts)},
        )
        return accounts

    def _build_metadata(
        self,
        report_type: ReportType,
        as_of_date: date,
        currency: str,
        snapshot: LedgerSnapshot | None,
        period_start: date | None = None,
        period_end: date | None = None,
    ) -> ReportMetadata:
        return ReportMetadata(
            report_type=report_type,
            entity_name=self._config.entity_name,
            currency=currency,
            as_of_date=as_of_date,
            generated_at=self._clock.now().isoformat(),
            period_start=period_start,
            period_end=period_end,
            snapshot_watermark=snapshot.watermark if snapshot is not None else None,
        )

    @staticmethod
    def _check_period(start: date, end: date) -> None:
        if end < start:
            raise ValueError(f"Period end {end} is before its start {start}")

    # =========================================================================
    # Public API
    # =========================================================================

    def snapshot(self) -> LedgerSnapshot:
        """Pin the current ledger state for one or more reports."""
        snap = self._ledger.snapshot(self._clock)
        logger.debug("ledger_snapshot_taken", extra={"watermark": snap.watermark})
        return snap

    def trial_balance(
        self,
        as_of_date: date,
        currency: str | None = None,
        snapshot: LedgerSnapshot | None = None,
    ) -> TrialBalanceReport:
        curr = currency or self._config.default_currency
        snap = snapshot or self.snapshot()
        rows = self._ledger.trial_balance_rows(as_of_date, curr, snap)
        metadata = self._build_metadata(ReportType.TRIAL_BALANCE, as_of_date, curr, snap)

        report = build_trial_balance(rows, self._load_accounts(), self._config, metadata)

        logger.info(
            "trial_balance_generated",
            extra={
                "as_of_date": as_of_date.isoformat(),
                "currency": curr,
                "line_count": len(report.lines),
                "is_balanced": report.is_balanced,
                "watermark": snap.watermark,
            },
        )
        if not report.is_balanced:
            logger.error(
                "trial_balance_out_of_balance",
                extra={
                    "total_debit": str(report.total_debit),
                    "total_credit": str(report.total_credit),
                },
            )
        return report

    def balance_sheet(
        self,
        as_of_date: date,
        currency: str | None = None,
        snapshot: LedgerSnapshot | None = None,
    ) -> BalanceSheetReport:
        curr = currency or self._config.default_currency
        snap = snapshot or self.snapshot()
        rows = self._ledger.trial_balance_rows(as_of_date, curr, snap)
        metadata = self._build_metadata(ReportType.BALANCE_SHEET, as_of_date, curr, snap)

        report = build_balance_sheet(rows, self._load_accounts(), self._config, metadata)

        logger.info(
            "balance_sheet_generated",
            extra={
                "as_of_date": as_of_date.isoformat(),
                "currency": curr,
                "total_assets": str(report.total_assets),
                "total_l_and_e": str(report.total_liabilities_and_equity),
                "is_balanced": report.is_balanced,
            },
        )
        return report

    def profit_and_loss(
        self,
        period_start: date,
        period_end: date,
        currency: str | None = None,
        snapshot: LedgerSnapshot | None = None,
    ) -> ProfitAndLossReport:
        self._check_period(period_start, period_end)
        curr = currency or self._config.default_currency
        snap = snapshot or self.snapshot()
        rows = self._ledger.account_totals(
            start=period_start, end=period_end, currency=curr, snapshot=snap,
        )
        metadata = self._build_metadata(
            ReportType.PROFIT_AND_LOSS, period_end, curr, snap,
            period_start=period_start, period_end=period_end,
        )

        report = build_profit_and_loss(rows, self._load_accounts(), self._config, metadata)

        logger.info(
            "profit_and_loss_generated",
            extra={
                "period_start": period_start.isoformat(),
                "period_end": period_end.isoformat(),
                "currency": curr,
                "net_profit": str(report.net_profit),
            },
        )
        return report

    def cash_flow(
        self,
        period_start: date,
        period_end: date,
        currency: str | None = None,
        snapshot: LedgerSnapshot | None = None,
    ) -> CashFlowReport:
        self._check_period(period_start, period_end)
        curr = currency or self._config.default_currency
        snap = snapshot or self.snapshot()
        cash_groups = self._config.cash_sub_group_set

        postings = self._ledger.cash_flow_postings(
            period_start, period_end, curr, cash_groups, snap,
        )
        beginning = self._ledger.cash_balance(
            None, curr, cash_groups, snap, before=period_start,
        )
        ending = self._ledger.cash_balance(period_end, curr, cash_groups, snap)
        metadata = self._build_metadata(
            ReportType.CASH_FLOW, period_end, curr, snap,
            period_start=period_start, period_end=period_end,
        )

        report = build_cash_flow(postings, beginning, ending, self._config, metadata)

        logger.info(
            "cash_flow_generated",
            extra={
                "period_start": period_start.isoformat(),
                "period_end": period_end.isoformat(),
                "currency": curr,
                "net_change_in_cash": str(report.net_change_in_cash),
                "reconciles": report.reconciles,
            },
        )
        return report

    def balances_for_group(
        self,
        ledger_group: LedgerGroup | str,
        period_start: date | None = None,
        period_end: date | None = None,
        include_children: bool = False,
        currency: str | None = None,
        snapshot: LedgerSnapshot | None = None,
    ) -> AccountBalancesReport:
        """
        Opening, movement and closing balance per account in a ledger group.

        With ``include_children`` each line also carries the rolled-up
        balance of its subtree, and children are nested under parents.
        Parents outside the group are ignored.
        """
        if period_start is not None and period_end is not None:
            self._check_period(period_start, period_end)
        group = LedgerGroup(ledger_group)
        curr = currency or self._config.default_currency
        snap = snapshot or self.snapshot()

        lines = self._balances.group_balance_lines(
            group, period_start, period_end, curr, snap,
        )
        rollup = None
        if include_children:
            rollup = rollup_balances(
                nodes=[
                    RollupNode(line.account_id, line.parent_id, line.closing_balance)
                    for line in lines
                ]
            )

        as_of = period_end or self._clock.today()
        metadata = self._build_metadata(
            ReportType.ACCOUNT_BALANCES, as_of, curr, snap,
            period_start=period_start, period_end=period_end,
        )
        report = build_account_balances(lines, group, metadata, rollup)

        logger.info(
            "account_balances_generated",
            extra={
                "ledger_group": group.value,
                "currency": curr,
                "line_count": len(lines),
                "include_children": include_children,
            },
        )
        return report

    # The report-facing name for the same operation
    account_balances = balances_for_group

    def account_register(
        self,
        account: AccountRef | UUID | Account,
        period_start: date | None = None,
        period_end: date | None = None,
        snapshot: LedgerSnapshot | None = None,
    ) -> AccountRegister:
        """Postings on one account with a running balance."""
        snap = snapshot or self.snapshot()
        return self._balances.account_register(account, period_start, period_end, snap)

    def aged_receivables(
        self,
        open_items: Sequence[OpenItem],
        as_of_date: date,
        currency: str | None = None,
    ) -> AgedBalancesReport:
        return self._aged(ReportType.AGED_RECEIVABLES, open_items, as_of_date, currency)

    def aged_payables(
        self,
        open_items: Sequence[OpenItem],
        as_of_date: date,
        currency: str | None = None,
    ) -> AgedBalancesReport:
        return self._aged(ReportType.AGED_PAYABLES, open_items, as_of_date, currency)

    def _aged(
        self,
        report_type: ReportType,
        open_items: Sequence[OpenItem],
        as_of_date: date,
        currency: str | None,
    ) -> AgedBalancesReport:
        curr = currency or (
            open_items[0].balance.currency.code if open_items else self._config.default_currency
        )
        aging = self._aging.age(open_items=open_items, as_of_date=as_of_date, currency=curr)
        metadata = self._build_metadata(report_type, as_of_date, curr, None)
        logger.info(
            "aged_balances_generated",
            extra={
                "report_type": report_type.value,
                "as_of_date": as_of_date.isoformat(),
                "entity_count": len(aging.entities),
            },
        )
        return AgedBalancesReport(metadata=metadata, aging=aging)

    def to_dict(self, report: object) -> dict:
        """Plain-dict form of any report, for JSON callers."""
        return render_to_dict(report)
