"""
True concurrency tests: real threads, real commits, row locks.

Scenarios:
- Many threads post to the same accounts at once; every post lands,
  sequence numbers are unique and gap-free, the balance cache is exact.
- Two threads race to reverse the same group; exactly one wins and the
  other gets AlreadyReversedError.
- Two threads race to post the same approved voucher; exactly one wins
  and the other gets InvalidStateTransitionError.

Requires PostgreSQL (SQLite serializes writers, so nothing would race).
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import date
from decimal import Decimal
from threading import Barrier
from uuid import uuid4

import pytest
from sqlalchemy import select

from ledger_kernel.domain.account_ref import AccountRef
from ledger_kernel.domain.clock import DeterministicClock
from ledger_kernel.domain.dtos import LineSpec
from ledger_kernel.exceptions import AlreadyReversedError, InvalidStateTransitionError
from ledger_kernel.models.account import AccountSubGroup, LedgerGroup
from ledger_kernel.models.transaction import TransactionGroup
from ledger_kernel.models.voucher import CounterpartyType, VoucherStatus, VoucherType
from ledger_kernel.selectors.balance_selector import BalanceSelector
from ledger_kernel.services.account_service import ChartOfAccountsService
from ledger_kernel.services.journal_service import JournalService
from ledger_kernel.services.voucher_service import VoucherService

pytestmark = [pytest.mark.postgres, pytest.mark.slow_locks]

CASH = AccountRef.by_code("1000")
REVENUE = AccountRef.by_code("4000")


def setup_accounts(session, actor_id):
    chart = ChartOfAccountsService(session, DeterministicClock())
    chart.create_account(
        code="1000", name="Cash", ledger_group=LedgerGroup.ASSET, currency="USD",
        actor_id=actor_id, sub_group=AccountSubGroup.CASH,
    )
    chart.create_account(
        code="4000", name="Revenue", ledger_group=LedgerGroup.REVENUE, currency="USD",
        actor_id=actor_id,
    )
    session.commit()


def _sale_lines(amount: str) -> list[LineSpec]:
    return [LineSpec.debit(CASH, Decimal(amount)), LineSpec.credit(REVENUE, Decimal(amount))]


def _race(session_factory, workers: int, work):
    """
    Run ``work(session)`` in ``workers`` threads released together.

    Each thread commits on success and rolls back on error.  Returns
    (results, errors).
    """
    barrier = Barrier(workers)

    def run():
        session = session_factory()
        try:
            barrier.wait(timeout=10)
            result = work(session)
            session.commit()
            return result, None
        except Exception as exc:
            session.rollback()
            return None, exc
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=workers) as pool:
        outcomes = [f.result() for f in [pool.submit(run) for _ in range(workers)]]
    results = [r for r, e in outcomes if e is None]
    errors = [e for r, e in outcomes if e is not None]
    return results, errors


class TestConcurrentPosting:
    def test_parallel_posts_all_land(self, pg_session_factory):
        actor_id = uuid4()
        with pg_session_factory() as setup:
            setup_accounts(setup, actor_id)

        def post(session):
            journal = JournalService(session, DeterministicClock())
            return journal.create_and_post(
                entry_date=date(2024, 1, 2),
                description="Cash sale",
                reference=None,
                lines=_sale_lines("10.00"),
                actor_id=actor_id,
            ).seq

        seqs, errors = _race(pg_session_factory, 8, post)

        assert errors == []
        assert sorted(seqs) == list(range(1, 9))

        with pg_session_factory() as check:
            balances = BalanceSelector(check)
            assert balances.balance_as_of(CASH) == Decimal("80.00")
            assert balances.current_balance(CASH) == Decimal("80.00")
            assert balances.verify_balance_cache() == []


class TestReversalRace:
    def test_exactly_one_reversal_wins(self, pg_session_factory):
        actor_id = uuid4()
        with pg_session_factory() as setup:
            setup_accounts(setup, actor_id)
            group_id = JournalService(setup, DeterministicClock()).create_and_post(
                entry_date=date(2024, 1, 2),
                description="Cash sale",
                reference=None,
                lines=_sale_lines("500.00"),
                actor_id=actor_id,
            ).group_id
            setup.commit()

        def reverse(session):
            return JournalService(session, DeterministicClock()).reverse(
                group_id, actor_id, "race",
            )

        results, errors = _race(pg_session_factory, 2, reverse)

        assert len(results) == 1
        assert len(errors) == 1
        assert isinstance(errors[0], AlreadyReversedError)

        with pg_session_factory() as check:
            mirrors = check.execute(
                select(TransactionGroup).where(TransactionGroup.reversal_of_id == group_id)
            ).scalars().all()
            assert len(mirrors) == 1
            assert BalanceSelector(check).balance_as_of(CASH) == Decimal("0.00")


class TestVoucherPostRace:
    def test_voucher_posted_once(self, pg_session_factory):
        actor_id = uuid4()
        with pg_session_factory() as setup:
            setup_accounts(setup, actor_id)
            clock = DeterministicClock()
            vouchers = VoucherService(setup, clock, JournalService(setup, clock))
            voucher = vouchers.create(
                VoucherType.RECEIPT,
                (CounterpartyType.CLIENT, "C-1", "Acme Ltd"),
                Decimal("75.00"),
                CASH,
                REVENUE,
                actor_id,
                voucher_date=date(2024, 1, 3),
            )
            vouchers.approve(voucher.id, actor_id)
            voucher_id = voucher.id
            setup.commit()

        def post(session):
            clock = DeterministicClock()
            return VoucherService(session, clock, JournalService(session, clock)).post(
                voucher_id, actor_id,
            ).id

        results, errors = _race(pg_session_factory, 2, post)

        assert results == [voucher_id]
        assert len(errors) == 1
        assert isinstance(errors[0], InvalidStateTransitionError)

        with pg_session_factory() as check:
            clock = DeterministicClock()
            reloaded = VoucherService(check, clock, JournalService(check, clock)).get(voucher_id)
            assert VoucherStatus(reloaded.status) == VoucherStatus.POSTED
            assert BalanceSelector(check).balance_as_of(CASH) == Decimal("75.00")
