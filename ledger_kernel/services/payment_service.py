"""
PaymentService -- books invoice and bill payments into the ledger.

Invoices and bills live outside the ledger.  When one is paid the caller
hands over a PaymentEvent and gets back a posted group:

    invoice payment  debit cash, credit receivable
    bill payment     debit payable, credit cash

Whether an invoice is open, partly paid or settled is never stored here;
``settlement_status`` (ledger_kernel.domain.settlement) derives it from the
payments recorded against it.
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from ledger_kernel.domain.clock import Clock
from ledger_kernel.domain.dtos import LineSpec, PaymentEvent, PostingResult
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.transaction import TransactionGroup, TransactionSource
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.journal_service import JournalService

logger = get_logger("services.payments")


class PaymentService(BaseService[TransactionGroup]):
    """Create-and-post payment groups for external invoices and bills."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        journal: JournalService | None = None,
    ):
        super().__init__(session, clock)
        self._journal = journal or JournalService(session, self.clock)

    def record_invoice_payment(self, event: PaymentEvent, actor_id) -> PostingResult:
        """Customer paid: debit cash, credit the receivable."""
        lines = [
            LineSpec.debit(event.cash_account, event.amount, event.counterparty),
            LineSpec.credit(event.settlement_account, event.amount, event.counterparty),
        ]
        return self._record("invoice_payment_recorded", event, lines, actor_id)

    def record_bill_payment(self, event: PaymentEvent, actor_id) -> PostingResult:
        """We paid a vendor: debit the payable, credit cash."""
        lines = [
            LineSpec.debit(event.settlement_account, event.amount, event.counterparty),
            LineSpec.credit(event.cash_account, event.amount, event.counterparty),
        ]
        return self._record("bill_payment_recorded", event, lines, actor_id)

    def _record(
        self,
        event_name: str,
        event: PaymentEvent,
        lines: list[LineSpec],
        actor_id,
    ) -> PostingResult:
        description = f"Payment {event.reference or ''} {event.counterparty}".strip()
        if event.method:
            description = f"{description} ({event.method})"
        result = self._journal.create_and_post(
            entry_date=event.payment_date,
            description=description,
            reference=event.reference,
            lines=lines,
            actor_id=actor_id,
            currency=event.currency,
            source=TransactionSource.PAYMENT,
        )
        logger.info(
            event_name,
            extra={
                "group_id": str(result.group_id),
                "seq": result.seq,
                "amount": str(event.amount),
                "counterparty": event.counterparty,
                "reference": event.reference,
            },
        )
        return result
