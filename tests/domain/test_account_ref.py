"""
Tests for AccountRef and the line/payment DTOs built on it.
"""

from datetime import date
from decimal import Decimal
from types import SimpleNamespace
from uuid import uuid4

import pytest

from ledger_kernel.domain.account_ref import AccountRef, AccountRefKind
from ledger_kernel.domain.dtos import LineSpec, PaymentEvent, PostingDirection


class TestAccountRef:
    def test_by_id(self):
        account_id = uuid4()
        ref = AccountRef.by_id(account_id)
        assert ref.kind == AccountRefKind.ID
        assert ref.is_id
        assert str(ref) == str(account_id)

    def test_by_id_accepts_string_uuid(self):
        account_id = uuid4()
        assert AccountRef.by_id(str(account_id)).account_id == account_id

    def test_by_code_strips(self):
        ref = AccountRef.by_code(" 1000 ")
        assert ref.code == "1000"
        assert str(ref) == "code:1000"

    def test_empty_code_rejected(self):
        with pytest.raises(ValueError):
            AccountRef.by_code("   ")

    def test_parse_account_like_object(self):
        account = SimpleNamespace(id=uuid4())
        assert AccountRef.parse(account) == AccountRef.by_id(account.id)

    def test_parse_plain_string_rejected(self):
        # A bare string could be a code or an id; callers must say which
        with pytest.raises(TypeError):
            AccountRef.parse("1000")

    def test_mixed_fields_rejected(self):
        with pytest.raises(ValueError):
            AccountRef(kind=AccountRefKind.ID, account_id=uuid4(), code="1000")


class TestLineSpec:
    def test_debit_and_credit_factories(self):
        ref = AccountRef.by_code("1000")
        debit = LineSpec.debit(ref, "10.00")
        credit = LineSpec.credit(ref, 10)
        assert debit.direction == PostingDirection.DEBIT
        assert credit.direction == PostingDirection.CREDIT
        assert debit.signed_amount == Decimal("10.00")
        assert credit.signed_amount == Decimal("-10")

    def test_non_positive_amount_rejected(self):
        with pytest.raises(ValueError):
            LineSpec.debit(AccountRef.by_code("1000"), "0")
        with pytest.raises(ValueError):
            LineSpec.credit(AccountRef.by_code("1000"), "-5")

    def test_float_amount_rejected(self):
        with pytest.raises(ValueError):
            LineSpec.debit(AccountRef.by_code("1000"), 1.5)

    def test_from_signed(self):
        ref = AccountRef.by_code("1000")
        assert LineSpec.from_signed(ref, "-4.00").direction == PostingDirection.CREDIT
        assert LineSpec.from_signed(ref, "4.00").amount == Decimal("4.00")
        with pytest.raises(ValueError):
            LineSpec.from_signed(ref, "0")

    def test_direction_opposite(self):
        assert PostingDirection.DEBIT.opposite == PostingDirection.CREDIT
        assert PostingDirection.CREDIT.opposite == PostingDirection.DEBIT


class TestPaymentEvent:
    def test_coerces_amount_and_refs(self):
        cash_id = uuid4()
        event = PaymentEvent(
            amount="75.00",
            payment_date=date(2024, 1, 5),
            counterparty="Acme",
            cash_account=cash_id,
            settlement_account=AccountRef.by_code("1100"),
        )
        assert event.amount == Decimal("75.00")
        assert event.cash_account == AccountRef.by_id(cash_id)

    def test_non_positive_rejected(self):
        with pytest.raises(ValueError):
            PaymentEvent(
                amount="0",
                payment_date=date(2024, 1, 5),
                counterparty="Acme",
                cash_account=AccountRef.by_code("1000"),
                settlement_account=AccountRef.by_code("1100"),
            )
