"""Services for the ledger kernel (write side)."""

from ledger_kernel.services.account_service import ChartOfAccountsService
from ledger_kernel.services.journal_service import JournalService
from ledger_kernel.services.ledger_writer import LedgerWriter, check_balanced
from ledger_kernel.services.payment_service import PaymentService
from ledger_kernel.services.reversal_service import ReversalService
from ledger_kernel.services.sequence_service import SequenceService
from ledger_kernel.services.voucher_service import VoucherService, voucher_lines
from ledger_kernel.services.workflows import VOUCHER_WORKFLOW

__all__ = [
    "ChartOfAccountsService",
    "JournalService",
    "LedgerWriter",
    "PaymentService",
    "ReversalService",
    "SequenceService",
    "VOUCHER_WORKFLOW",
    "VoucherService",
    "check_balanced",
    "voucher_lines",
]
