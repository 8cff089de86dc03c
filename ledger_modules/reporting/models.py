"""
Financial Reporting Domain Models (``ledger_modules.reporting.models``).

Responsibility
--------------
Frozen dataclass value objects for the statement outputs: trial balance,
profit and loss, and balance sheet, each with an optional comparative
period.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  Built by
``statements.py`` and returned by ``ReportingService``.

Invariants enforced
-------------------
* All models are ``frozen=True``.
* All monetary fields are ``Decimal``.

Audit relevance
---------------
``ReportMetadata`` carries the generation timestamp (from the injected
clock) and the parameters, so a report can be regenerated and compared.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID


class ReportType(str, Enum):
    TRIAL_BALANCE = "trial_balance"
    PROFIT_AND_LOSS = "profit_and_loss"
    BALANCE_SHEET = "balance_sheet"


@dataclass(frozen=True)
class ReportMetadata:
    """Metadata attached to every report."""

    report_type: ReportType
    entity_name: str
    currency: str
    as_of_date: date
    generated_at: str  # ISO timestamp from the injected clock
    period_start: date | None = None
    period_end: date | None = None
    comparative_date: date | None = None
    comparative_start: date | None = None


# =========================================================================
# Trial Balance
# =========================================================================


@dataclass(frozen=True)
class TrialBalanceLineItem:
    """One account in the trial balance."""

    account_id: UUID
    account_code: str
    account_name: str
    account_type: str
    debit_balance: Decimal
    credit_balance: Decimal
    net_balance: Decimal  # on the account's normal side


@dataclass(frozen=True)
class TrialBalanceReport:
    metadata: ReportMetadata
    lines: tuple[TrialBalanceLineItem, ...]
    total_debits: Decimal
    total_credits: Decimal
    is_balanced: bool
    comparative_lines: tuple[TrialBalanceLineItem, ...] | None = None
    comparative_total_debits: Decimal | None = None
    comparative_total_credits: Decimal | None = None


# =========================================================================
# Statement sections
# =========================================================================


@dataclass(frozen=True)
class StatementLine:
    """An account's amount within a statement section (normal side positive)."""

    account_id: UUID
    account_code: str
    account_name: str
    amount: Decimal


@dataclass(frozen=True)
class StatementSection:
    label: str
    lines: tuple[StatementLine, ...]
    total: Decimal


# =========================================================================
# Profit and Loss
# =========================================================================


@dataclass(frozen=True)
class ProfitAndLossReport:
    """
    Period profit and loss.

    Gross Profit     = Revenue - COGS
    Operating Profit = Gross Profit - Operating Expenses
    Net Profit       = Operating Profit - Other Expenses
    """

    metadata: ReportMetadata
    revenue: StatementSection
    cogs: StatementSection
    operating_expenses: StatementSection
    other_expenses: StatementSection
    total_revenue: Decimal
    total_expenses: Decimal
    gross_profit: Decimal
    operating_profit: Decimal
    net_profit: Decimal
    comparative: ProfitAndLossReport | None = None


# =========================================================================
# Balance Sheet
# =========================================================================


@dataclass(frozen=True)
class BalanceSheetReport:
    """
    Classified balance sheet.

    Equity = equity accounts + retained earnings (profit of earlier
    financial years not yet closed to an equity account) + current-year
    earnings.  Assets == Liabilities + Equity when the ledger is sound.
    """

    metadata: ReportMetadata

    current_assets: StatementSection
    non_current_assets: StatementSection
    total_assets: Decimal

    current_liabilities: StatementSection
    non_current_liabilities: StatementSection
    total_liabilities: Decimal

    equity: StatementSection
    retained_earnings: Decimal
    current_year_earnings: Decimal
    total_equity: Decimal

    total_liabilities_and_equity: Decimal
    is_balanced: bool

    comparative: BalanceSheetReport | None = None

    @property
    def difference(self) -> Decimal:
        return self.total_assets - self.total_liabilities_and_equity
