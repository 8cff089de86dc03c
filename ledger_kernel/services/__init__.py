"""Services for the ledger kernel (write side)."""

from ledger_kernel.services.account_registry import AccountRegistry
from ledger_kernel.services.journal_service import JournalService, format_entry_number
from ledger_kernel.services.period_service import PeriodService
from ledger_kernel.services.reversal_service import ReversalResult, ReversalService
from ledger_kernel.services.sequence_service import SequenceService

__all__ = [
    "AccountRegistry",
    "JournalService",
    "PeriodService",
    "ReversalResult",
    "ReversalService",
    "SequenceService",
    "format_entry_number",
]
