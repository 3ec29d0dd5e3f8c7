"""
Property-based tests over randomly generated ledgers.

Boundaries fuzzed here:
- Multi-line balanced entries across every ledger group
- Reversal of an arbitrary subset of posted groups
- Entry dates spread over several months

Properties checked after every generated ledger:
- The trial balance balances and the balance sheet satisfies
  Assets = Liabilities + Equity
- The balance cache agrees with the postings
- The cash flow statement reconciles for any period

Examples run against one test session, so each example adds to the
ledger left by the previous ones; all properties hold cumulatively.
"""

from datetime import date, timedelta
from decimal import Decimal

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st
from hypothesis.strategies import composite

from ledger_kernel.domain.account_ref import AccountRef
from ledger_kernel.domain.dtos import LineSpec
from ledger_modules.reporting import ReportingService

ACCOUNT_CODES = ["1000", "1010", "1100", "1500", "2000", "2500", "3000", "4000", "5000", "5100"]

FIRST_DAY = date(2024, 1, 1)
LAST_DAY = date(2024, 4, 30)

FUZZ_SETTINGS = settings(
    max_examples=15,
    deadline=None,
    suppress_health_check=[HealthCheck.function_scoped_fixture, HealthCheck.too_slow],
)


@composite
def balanced_lines(draw):
    """Two to five lines on distinct accounts whose debits equal credits."""
    debit_cents = draw(st.lists(st.integers(min_value=1, max_value=10_000_000), min_size=1, max_size=3))
    total = sum(debit_cents)
    if total >= 2 and draw(st.booleans()):
        split = draw(st.integers(min_value=1, max_value=total - 1))
        credit_cents = [split, total - split]
    else:
        credit_cents = [total]

    codes = draw(st.permutations(ACCOUNT_CODES))
    debit_codes = codes[: len(debit_cents)]
    credit_codes = codes[len(debit_cents): len(debit_cents) + len(credit_cents)]

    lines = [
        LineSpec.debit(AccountRef.by_code(code), Decimal(cents) / 100)
        for code, cents in zip(debit_codes, debit_cents)
    ]
    lines += [
        LineSpec.credit(AccountRef.by_code(code), Decimal(cents) / 100)
        for code, cents in zip(credit_codes, credit_cents)
    ]
    return lines


@composite
def entries(draw):
    day_offset = draw(st.integers(min_value=0, max_value=(LAST_DAY - FIRST_DAY).days))
    return FIRST_DAY + timedelta(days=day_offset), draw(balanced_lines())


def _post_all(journal_service, actor_id, generated):
    return [
        journal_service.create_and_post(
            entry_date=entry_date,
            description="generated",
            reference=None,
            lines=lines,
            actor_id=actor_id,
        )
        for entry_date, lines in generated
    ]


class TestLedgerProperties:
    @FUZZ_SETTINGS
    @given(generated=st.lists(entries(), min_size=1, max_size=6))
    def test_statements_balance(
        self, session, deterministic_clock, journal_service, balance_selector,
        standard_accounts, test_actor_id, generated,
    ):
        _post_all(journal_service, test_actor_id, generated)
        reports = ReportingService(session, deterministic_clock)
        snap = reports.snapshot()

        trial = reports.trial_balance(LAST_DAY, snapshot=snap)
        assert trial.is_balanced

        sheet = reports.balance_sheet(LAST_DAY, snapshot=snap)
        assert sheet.is_balanced
        assert sheet.total_assets == sheet.total_liabilities_and_equity

        assert balance_selector.verify_balance_cache() == []

    @FUZZ_SETTINGS
    @given(
        generated=st.lists(entries(), min_size=1, max_size=5),
        reverse_flags=st.lists(st.booleans(), min_size=5, max_size=5),
    )
    def test_reversals_keep_ledger_consistent(
        self, session, deterministic_clock, journal_service, balance_selector,
        standard_accounts, test_actor_id, generated, reverse_flags,
    ):
        posted = _post_all(journal_service, test_actor_id, generated)
        for result, reverse in zip(posted, reverse_flags):
            if reverse:
                journal_service.reverse(result.group_id, test_actor_id, "fuzz")

        trial = ReportingService(session, deterministic_clock).trial_balance(LAST_DAY)
        assert trial.is_balanced
        assert balance_selector.verify_balance_cache() == []

    @FUZZ_SETTINGS
    @given(
        generated=st.lists(entries(), min_size=1, max_size=6),
        start_offset=st.integers(min_value=0, max_value=60),
        length=st.integers(min_value=0, max_value=60),
    )
    def test_cash_flow_reconciles(
        self, session, deterministic_clock, journal_service,
        standard_accounts, test_actor_id, generated, start_offset, length,
    ):
        _post_all(journal_service, test_actor_id, generated)
        start = FIRST_DAY + timedelta(days=start_offset)
        end = start + timedelta(days=length)

        report = ReportingService(session, deterministic_clock).cash_flow(start, end)

        assert report.reconciles
        assert report.ending_cash - report.beginning_cash == report.net_change_in_cash
