"""
Tests for PaymentService and invoice settlement status.
"""

from datetime import date
from decimal import Decimal

import pytest

from ledger_kernel.domain.account_ref import AccountRef
from ledger_kernel.domain.dtos import PaymentEvent
from ledger_kernel.domain.settlement import SettlementStatus, settlement_status
from ledger_kernel.exceptions import CurrencyMismatchError
from ledger_kernel.models.transaction import TransactionSource


def _event(amount, settlement_code, reference="INV-100", currency=None, method="card"):
    return PaymentEvent(
        amount=Decimal(amount),
        payment_date=date(2024, 2, 1),
        counterparty="Acme Ltd",
        cash_account=AccountRef.by_code("1010"),
        settlement_account=AccountRef.by_code(settlement_code),
        method=method,
        reference=reference,
        currency=currency,
    )


class TestInvoicePayments:
    def test_invoice_payment_clears_receivable(
        self, payment_service, journal_service, balance_selector, post_entry, test_actor_id,
    ):
        # Invoice raised: debit receivable, credit revenue
        post_entry("1100", "4000", "500.00", date(2024, 1, 10), reference="INV-100")

        result = payment_service.record_invoice_payment(_event("500.00", "1100"), test_actor_id)

        assert balance_selector.balance_as_of(AccountRef.by_code("1100")) == Decimal("0.00")
        assert balance_selector.balance_as_of(AccountRef.by_code("1010")) == Decimal("500.00")
        group = journal_service.get(result.group_id)
        assert group.is_posted
        assert group.source == TransactionSource.PAYMENT
        assert group.reference == "INV-100"
        assert group.description == "Payment INV-100 Acme Ltd (card)"

    def test_partial_payments_drive_status(
        self, payment_service, post_entry, test_actor_id,
    ):
        post_entry("1100", "4000", "500.00", date(2024, 1, 10))
        payments = []
        for amount in ("200.00", "100.00"):
            result = payment_service.record_invoice_payment(_event(amount, "1100"), test_actor_id)
            payments.append(result.total_debits)

        assert settlement_status(Decimal("500.00"), payments) == SettlementStatus.PARTIAL
        assert (
            settlement_status(
                Decimal("500.00"), payments, due_date=date(2024, 1, 31), as_of=date(2024, 2, 1),
            )
            == SettlementStatus.OVERDUE
        )

        result = payment_service.record_invoice_payment(_event("200.00", "1100"), test_actor_id)
        payments.append(result.total_debits)
        assert settlement_status(Decimal("500.00"), payments) == SettlementStatus.PAID

    def test_payment_logged(self, captured_logs, payment_service, standard_accounts, test_actor_id):
        payment_service.record_invoice_payment(_event("20.00", "1100"), test_actor_id)
        records = [r for r in captured_logs() if r["message"] == "invoice_payment_recorded"]
        assert len(records) == 1
        assert records[0]["amount"] == "20.00"
        assert records[0]["counterparty"] == "Acme Ltd"


class TestBillPayments:
    def test_bill_payment_clears_payable(
        self, payment_service, balance_selector, post_entry, test_actor_id,
    ):
        # Bill received: debit expense, credit payable
        post_entry("5100", "2000", "80.00", date(2024, 1, 12))

        payment_service.record_bill_payment(_event("80.00", "2000", "BILL-7"), test_actor_id)

        assert balance_selector.balance_as_of(AccountRef.by_code("2000")) == Decimal("0.00")
        assert balance_selector.balance_as_of(AccountRef.by_code("1010")) == Decimal("-80.00")

    def test_currency_must_match_accounts(
        self, payment_service, standard_accounts, test_actor_id,
    ):
        with pytest.raises(CurrencyMismatchError):
            payment_service.record_bill_payment(
                _event("10.00", "2000", currency="EUR"), test_actor_id,
            )
