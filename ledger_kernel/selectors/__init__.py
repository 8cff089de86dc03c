"""Selectors for the ledger kernel (read side)."""

from ledger_kernel.selectors.account_selector import AccountSelector
from ledger_kernel.selectors.journal_selector import JournalSelector
from ledger_kernel.selectors.ledger_selector import (
    AccountBalance,
    GeneralLedger,
    GeneralLedgerLine,
    LedgerSelector,
    TaxLine,
    TrialBalanceRow,
)

__all__ = [
    "AccountBalance",
    "AccountSelector",
    "GeneralLedger",
    "GeneralLedgerLine",
    "JournalSelector",
    "LedgerSelector",
    "TaxLine",
    "TrialBalanceRow",
]
