"""ORM models for the ledger kernel."""

from ledger_kernel.models.account import (
    Account,
    AccountTag,
    AccountType,
    NormalBalance,
    normal_balance_for,
)
from ledger_kernel.models.accounting_period import (
    AccountingPeriod,
    PeriodStatus,
    month_bounds,
    period_code,
)
from ledger_kernel.models.journal import (
    JournalEntry,
    JournalEntryStatus,
    JournalLine,
    LineSide,
    SourceType,
)
from ledger_kernel.models.sequence import SequenceCounter
from ledger_kernel.models.tax import TaxCode

__all__ = [
    "Account",
    "AccountTag",
    "AccountType",
    "NormalBalance",
    "normal_balance_for",
    "AccountingPeriod",
    "PeriodStatus",
    "month_bounds",
    "period_code",
    "JournalEntry",
    "JournalEntryStatus",
    "JournalLine",
    "LineSide",
    "SourceType",
    "SequenceCounter",
    "TaxCode",
]
