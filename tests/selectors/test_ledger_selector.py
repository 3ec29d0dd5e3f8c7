"""
Tests for LedgerSelector: totals, snapshots and cash flow postings.
"""

from datetime import date
from decimal import Decimal

from ledger_kernel.domain.account_ref import AccountRef
from ledger_kernel.domain.clock import DeterministicClock
from ledger_kernel.domain.dtos import LineSpec
from ledger_kernel.models.account import CASH_SUB_GROUPS


class TestAccountTotals:
    def test_totals_per_account(self, ledger_selector, post_entry, standard_accounts):
        post_entry("1000", "4000", "100.00", date(2024, 1, 5))
        post_entry("1000", "4000", "50.00", date(2024, 1, 6))
        post_entry("5000", "1000", "30.00", date(2024, 1, 7))

        rows = {row.account_code: row for row in ledger_selector.account_totals()}
        assert rows["1000"].debit_total == Decimal("150.00")
        assert rows["1000"].credit_total == Decimal("30.00")
        assert rows["1000"].balance == Decimal("120.00")
        assert rows["4000"].balance == Decimal("-150.00")
        # Accounts without postings are absent
        assert "1500" not in rows

    def test_date_range_is_inclusive(self, ledger_selector, post_entry):
        post_entry("1000", "4000", "1.00", date(2024, 1, 1))
        post_entry("1000", "4000", "2.00", date(2024, 1, 15))
        post_entry("1000", "4000", "4.00", date(2024, 1, 31))

        rows = ledger_selector.account_totals(
            start=date(2024, 1, 1), end=date(2024, 1, 15),
        )
        cash = next(r for r in rows if r.account_code == "1000")
        assert cash.debit_total == Decimal("3.00")

    def test_pending_groups_not_counted(
        self, ledger_selector, journal_service, standard_accounts, test_actor_id,
    ):
        journal_service.create_entry(
            date(2024, 1, 2),
            "Draft",
            None,
            [
                LineSpec.debit(AccountRef.by_code("1000"), "9.00"),
                LineSpec.credit(AccountRef.by_code("4000"), "9.00"),
            ],
            test_actor_id,
        )
        assert ledger_selector.account_totals() == []

    def test_ledger_wide_totals_equal(self, ledger_selector, post_entry):
        post_entry("1000", "3000", "1000.00")
        post_entry("5000", "1000", "12.34")
        debits, credits = ledger_selector.total_debits_credits("USD")
        assert debits == credits == Decimal("1012.34")

    def test_reversed_group_and_mirror_both_counted(
        self, ledger_selector, journal_service, post_entry, test_actor_id,
    ):
        posted = post_entry("1000", "4000", "40.00", date(2023, 12, 1))
        journal_service.reverse(posted.group_id, test_actor_id)

        cash = next(r for r in ledger_selector.account_totals() if r.account_code == "1000")
        assert cash.debit_total == Decimal("40.00")
        assert cash.credit_total == Decimal("40.00")
        assert cash.balance == Decimal("0.00")


class TestSnapshots:
    def test_empty_ledger_watermark_is_zero(self, ledger_selector, standard_accounts):
        assert ledger_selector.snapshot().watermark == 0

    def test_snapshot_ignores_later_postings(self, ledger_selector, post_entry):
        first = post_entry("1000", "4000", "100.00")
        snap = ledger_selector.snapshot(DeterministicClock())
        assert snap.watermark == first.seq
        assert snap.taken_at is not None

        post_entry("1000", "4000", "900.00")

        pinned = next(
            r for r in ledger_selector.account_totals(snapshot=snap) if r.account_code == "1000"
        )
        live = next(r for r in ledger_selector.account_totals() if r.account_code == "1000")
        assert pinned.balance == Decimal("100.00")
        assert live.balance == Decimal("1000.00")

        debits, credits = ledger_selector.total_debits_credits("USD", snapshot=snap)
        assert debits == credits == Decimal("100.00")


class TestCashFlowPostings:
    def test_only_non_cash_side_of_cash_groups(self, ledger_selector, post_entry):
        post_entry("1000", "4000", "200.00", date(2024, 1, 5))  # cash sale
        post_entry("1100", "4000", "70.00", date(2024, 1, 6))  # credit sale, no cash
        post_entry("1010", "1000", "50.00", date(2024, 1, 7))  # transfer between cash accounts

        postings = ledger_selector.cash_flow_postings(
            date(2024, 1, 1), date(2024, 1, 31), "USD", CASH_SUB_GROUPS,
        )
        assert [(p.account_code, p.signed_amount) for p in postings] == [
            ("4000", Decimal("-200.00")),
        ]

    def test_cash_balance_before_and_as_of(self, ledger_selector, post_entry):
        post_entry("1000", "3000", "500.00", date(2024, 1, 1))
        post_entry("1010", "4000", "25.00", date(2024, 2, 1))

        assert ledger_selector.cash_balance(
            None, "USD", CASH_SUB_GROUPS, before=date(2024, 2, 1),
        ) == Decimal("500.00")
        assert ledger_selector.cash_balance(
            date(2024, 2, 1), "USD", CASH_SUB_GROUPS,
        ) == Decimal("525.00")
