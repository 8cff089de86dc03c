"""
Financial Reporting Module (``ledger_modules.reporting``).

Responsibility
--------------
Read-only statement generation from the ledger: trial balance, profit and
loss (multi-step), classified balance sheet and the SST tax summary.

Architecture position
---------------------
**Modules layer** -- never posts.  Statement arithmetic lives in pure
functions (``statements.py``); ``ReportingService`` only loads data.

Invariants enforced
-------------------
* No journal entries are created by this module.
* Every figure is derived from journal lines at generation time.
"""

from ledger_modules.reporting.config import AccountClassification, ReportingConfig
from ledger_modules.reporting.models import (
    BalanceSheetReport,
    ProfitAndLossReport,
    ReportMetadata,
    ReportType,
    StatementLine,
    StatementSection,
    TrialBalanceLineItem,
    TrialBalanceReport,
)
from ledger_modules.reporting.service import ReportingService
from ledger_modules.reporting.statements import (
    build_balance_sheet,
    build_profit_and_loss,
    build_trial_balance,
    classify_for_balance_sheet,
    classify_for_profit_and_loss,
    fiscal_year_start,
    net_profit,
    render_to_dict,
)

__all__ = [
    "AccountClassification",
    "BalanceSheetReport",
    "ProfitAndLossReport",
    "ReportMetadata",
    "ReportType",
    "ReportingConfig",
    "ReportingService",
    "StatementLine",
    "StatementSection",
    "TrialBalanceLineItem",
    "TrialBalanceReport",
    "build_balance_sheet",
    "build_profit_and_loss",
    "build_trial_balance",
    "classify_for_balance_sheet",
    "classify_for_profit_and_loss",
    "fiscal_year_start",
    "net_profit",
    "render_to_dict",
]
