"""
Tests for settlement_status: invoice status derived from payments.
"""

from datetime import date
from decimal import Decimal

import pytest

from ledger_kernel.domain.settlement import SettlementStatus, settlement_status


@pytest.mark.parametrize(
    "payments, expected",
    [
        ([], SettlementStatus.DRAFT),
        ([Decimal("40.00")], SettlementStatus.PARTIAL),
        ([Decimal("40.00"), Decimal("60.00")], SettlementStatus.PAID),
        ([Decimal("150.00")], SettlementStatus.OVERPAID),
    ],
)
def test_status_from_payments(payments, expected):
    assert settlement_status(Decimal("100.00"), payments) == expected


def test_overdue_when_past_due_and_unpaid():
    status = settlement_status(
        Decimal("100.00"),
        [Decimal("10.00")],
        due_date=date(2024, 1, 31),
        as_of=date(2024, 2, 1),
    )
    assert status == SettlementStatus.OVERDUE


def test_paid_invoice_is_never_overdue():
    status = settlement_status(
        Decimal("100.00"),
        [Decimal("100.00")],
        due_date=date(2024, 1, 31),
        as_of=date(2024, 6, 1),
    )
    assert status == SettlementStatus.PAID


def test_due_date_itself_is_not_overdue():
    status = settlement_status(
        Decimal("100.00"), [], due_date=date(2024, 1, 31), as_of=date(2024, 1, 31),
    )
    assert status == SettlementStatus.DRAFT


def test_refund_reduces_paid_amount():
    # A refund is recorded as a negative payment
    status = settlement_status(Decimal("100.00"), [Decimal("100.00"), Decimal("-30.00")])
    assert status == SettlementStatus.PARTIAL


def test_negative_inputs_rejected():
    with pytest.raises(ValueError):
        settlement_status(Decimal("-1"), [])
    with pytest.raises(ValueError):
        settlement_status(Decimal("10"), [Decimal("-5")])


@pytest.mark.parametrize(
    "payments, expected",
    [
        ([], SettlementStatus.DRAFT),
        ([Decimal("5.00"), Decimal("-5.00")], SettlementStatus.DRAFT),
        ([Decimal("5.00")], SettlementStatus.OVERPAID),
    ],
)
def test_zero_value_invoice(payments, expected):
    assert settlement_status(Decimal("0.00"), payments) == expected


def test_zero_value_invoice_is_never_overdue():
    status = settlement_status(
        Decimal("0.00"), [], due_date=date(2024, 1, 31), as_of=date(2024, 3, 1),
    )
    assert status == SettlementStatus.DRAFT
