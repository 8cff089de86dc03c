"""
Pure financial statement transformation functions.

These functions turn balances computed by ``LedgerSelector`` and the
account chart into structured statements.  ZERO I/O. ZERO side effects.

- No database access
- No clock access
- Deterministic: same inputs always produce same outputs

Only postable (non-header) accounts appear as statement lines; header
totals are the sum of their descendants and would double count.

Every amount is rounded to the report currency's minor units before it
is summed, so section totals always equal the lines shown.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Mapping
from datetime import date, timedelta
from decimal import Decimal
from enum import Enum
from uuid import UUID

from ledger_kernel.db.types import minor_units, round_money
from ledger_kernel.domain.balances import orient
from ledger_kernel.domain.dtos import AccountInfo
from ledger_kernel.models.account import AccountType
from ledger_kernel.selectors.ledger_selector import TrialBalanceRow
from ledger_modules.reporting.config import ReportingConfig
from ledger_modules.reporting.models import (
    BalanceSheetReport,
    ProfitAndLossReport,
    ReportMetadata,
    StatementLine,
    StatementSection,
    TrialBalanceLineItem,
    TrialBalanceReport,
)

ZERO = Decimal("0")


# =========================================================================
# Helpers
# =========================================================================


def fiscal_year_start(as_of_date: date, start_month: int = 1) -> date:
    """First day of the financial year containing ``as_of_date``."""
    year = as_of_date.year if as_of_date.month >= start_month else as_of_date.year - 1
    return date(year, start_month, 1)


def prior_year_end(as_of_date: date, start_month: int = 1) -> date:
    return fiscal_year_start(as_of_date, start_month) - timedelta(days=1)


def _money(amount: Decimal, currency: str) -> Decimal:
    return round_money(amount, minor_units(currency))


def _postable(chart: Mapping[UUID, AccountInfo]) -> list[AccountInfo]:
    return sorted((a for a in chart.values() if not a.is_header), key=lambda a: a.code)


def _keep(account: AccountInfo, amount: Decimal, config: ReportingConfig) -> bool:
    if amount != ZERO:
        return True
    return config.include_zero_balances and account.is_active


def _make_section(
    label: str,
    lines: Iterable[StatementLine],
    currency: str,
) -> StatementSection:
    ordered = tuple(sorted(lines, key=lambda x: x.account_code))
    return StatementSection(
        label=label,
        lines=ordered,
        total=sum((line.amount for line in ordered), _money(ZERO, currency)),
    )


def _statement_line(account: AccountInfo, amount: Decimal) -> StatementLine:
    return StatementLine(
        account_id=account.id,
        account_code=account.code,
        account_name=account.name,
        amount=amount,
    )


def net_profit(
    amounts: Mapping[UUID, Decimal],
    chart: Mapping[UUID, AccountInfo],
) -> Decimal:
    """
    Revenue minus expenses over postable accounts.

    ``amounts`` are normal-side figures: either cumulative balances or
    period activity.
    """
    revenue = ZERO
    expense = ZERO
    for account in _postable(chart):
        amount = amounts.get(account.id, ZERO)
        if account.account_type == AccountType.REVENUE:
            revenue += amount
        elif account.account_type == AccountType.EXPENSE:
            expense += amount
    return revenue - expense


# =========================================================================
# 1. TRIAL BALANCE
# =========================================================================


def enrich_trial_balance(
    rows: Iterable[TrialBalanceRow],
    config: ReportingConfig,
    chart: Mapping[UUID, AccountInfo] | None = None,
    currency: str | None = None,
) -> tuple[TrialBalanceLineItem, ...]:
    """
    TrialBalanceRows -> TrialBalanceLineItems sorted by code.

    With ``include_zero_balances`` and a chart, active postable accounts
    without a balance are added as zero lines.  With ``currency`` every
    column is rounded to its minor units.
    """
    def money(amount: Decimal) -> Decimal:
        return amount if currency is None else _money(amount, currency)

    items: dict[UUID, TrialBalanceLineItem] = {}
    for row in rows:
        debit = money(row.debit_total)
        credit = money(row.credit_total)
        items[row.account_id] = TrialBalanceLineItem(
            account_id=row.account_id,
            account_code=row.account_code,
            account_name=row.account_name,
            account_type=AccountType(row.account_type).value,
            debit_balance=debit,
            credit_balance=credit,
            net_balance=orient(debit - credit, row.normal_balance),
        )

    if config.include_zero_balances and chart is not None:
        for account in _postable(chart):
            if account.id in items or not account.is_active:
                continue
            items[account.id] = TrialBalanceLineItem(
                account_id=account.id,
                account_code=account.code,
                account_name=account.name,
                account_type=account.account_type.value,
                debit_balance=money(ZERO),
                credit_balance=money(ZERO),
                net_balance=money(ZERO),
            )

    return tuple(sorted(items.values(), key=lambda x: x.account_code))


def build_trial_balance(
    rows: list[TrialBalanceRow],
    config: ReportingConfig,
    metadata: ReportMetadata,
    chart: Mapping[UUID, AccountInfo] | None = None,
    comparative_rows: list[TrialBalanceRow] | None = None,
) -> TrialBalanceReport:
    """Trial balance report with optional comparative columns."""
    currency = metadata.currency
    items = enrich_trial_balance(rows, config, chart, currency)
    total_debits = sum((item.debit_balance for item in items), _money(ZERO, currency))
    total_credits = sum((item.credit_balance for item in items), _money(ZERO, currency))

    comparative_items = None
    comp_debits = None
    comp_credits = None
    if comparative_rows is not None:
        comparative_items = enrich_trial_balance(comparative_rows, config, chart, currency)
        comp_debits = sum((item.debit_balance for item in comparative_items), _money(ZERO, currency))
        comp_credits = sum((item.credit_balance for item in comparative_items), _money(ZERO, currency))

    return TrialBalanceReport(
        metadata=metadata,
        lines=items,
        total_debits=total_debits,
        total_credits=total_credits,
        is_balanced=(total_debits == total_credits),
        comparative_lines=comparative_items,
        comparative_total_debits=comp_debits,
        comparative_total_credits=comp_credits,
    )


# =========================================================================
# 2. PROFIT AND LOSS
# =========================================================================


def classify_for_profit_and_loss(account: AccountInfo, config: ReportingConfig) -> str | None:
    """Section key for a revenue/expense account, None for balance sheet accounts."""
    clf = config.classification
    if account.account_type == AccountType.REVENUE:
        return "revenue"
    if account.account_type != AccountType.EXPENSE:
        return None
    if clf.is_cogs(account):
        return "cogs"
    if clf.is_other_expense(account):
        return "other_expenses"
    return "operating_expenses"


def build_profit_and_loss(
    activity: Mapping[UUID, Decimal],
    chart: Mapping[UUID, AccountInfo],
    config: ReportingConfig,
    metadata: ReportMetadata,
    comparative: ProfitAndLossReport | None = None,
) -> ProfitAndLossReport:
    """
    Multi-step profit and loss from period activity.

    ``activity`` must hold period movements (balance(end) minus
    balance(start - 1)), never cumulative balances.
    """
    currency = metadata.currency
    sections: dict[str, list[StatementLine]] = {
        "revenue": [],
        "cogs": [],
        "operating_expenses": [],
        "other_expenses": [],
    }
    for account in _postable(chart):
        key = classify_for_profit_and_loss(account, config)
        if key is None:
            continue
        amount = _money(activity.get(account.id, ZERO), currency)
        if _keep(account, amount, config):
            sections[key].append(_statement_line(account, amount))

    revenue = _make_section("Revenue", sections["revenue"], currency)
    cogs = _make_section("Cost of Goods Sold", sections["cogs"], currency)
    opex = _make_section("Operating Expenses", sections["operating_expenses"], currency)
    other = _make_section("Other Expenses", sections["other_expenses"], currency)

    gross_profit = revenue.total - cogs.total
    operating_profit = gross_profit - opex.total
    net = operating_profit - other.total

    return ProfitAndLossReport(
        metadata=metadata,
        revenue=revenue,
        cogs=cogs,
        operating_expenses=opex,
        other_expenses=other,
        total_revenue=revenue.total,
        total_expenses=cogs.total + opex.total + other.total,
        gross_profit=gross_profit,
        operating_profit=operating_profit,
        net_profit=net,
        comparative=comparative,
    )


# =========================================================================
# 3. BALANCE SHEET
# =========================================================================


def classify_for_balance_sheet(account: AccountInfo, config: ReportingConfig) -> str | None:
    """Section key for an asset/liability/equity account, None otherwise."""
    clf = config.classification
    if account.account_type == AccountType.ASSET:
        if clf.is_non_current(account, clf.non_current_asset_prefixes):
            return "non_current_assets"
        return "current_assets"
    if account.account_type == AccountType.LIABILITY:
        if clf.is_non_current(account, clf.non_current_liability_prefixes):
            return "non_current_liabilities"
        return "current_liabilities"
    if account.account_type == AccountType.EQUITY:
        return "equity"
    return None


def build_balance_sheet(
    balances: Mapping[UUID, Decimal],
    chart: Mapping[UUID, AccountInfo],
    config: ReportingConfig,
    metadata: ReportMetadata,
    retained_earnings: Decimal,
    current_year_earnings: Decimal,
    comparative: BalanceSheetReport | None = None,
) -> BalanceSheetReport:
    """
    Classified balance sheet from cumulative balances.

    ``retained_earnings`` is the net profit up to the previous financial
    year end and ``current_year_earnings`` the net profit since; both are
    added to equity because revenue and expense accounts are never reset.
    """
    currency = metadata.currency
    retained_earnings = _money(retained_earnings, currency)
    current_year_earnings = _money(current_year_earnings, currency)
    sections: dict[str, list[StatementLine]] = {
        "current_assets": [],
        "non_current_assets": [],
        "current_liabilities": [],
        "non_current_liabilities": [],
        "equity": [],
    }
    for account in _postable(chart):
        key = classify_for_balance_sheet(account, config)
        if key is None:
            continue
        amount = _money(balances.get(account.id, ZERO), currency)
        if _keep(account, amount, config):
            sections[key].append(_statement_line(account, amount))

    current_assets = _make_section("Current Assets", sections["current_assets"], currency)
    non_current_assets = _make_section("Non-Current Assets", sections["non_current_assets"], currency)
    total_assets = current_assets.total + non_current_assets.total

    current_liabilities = _make_section("Current Liabilities", sections["current_liabilities"], currency)
    non_current_liabilities = _make_section(
        "Non-Current Liabilities", sections["non_current_liabilities"], currency,
    )
    total_liabilities = current_liabilities.total + non_current_liabilities.total

    equity = _make_section("Equity", sections["equity"], currency)
    total_equity = equity.total + retained_earnings + current_year_earnings
    total_l_and_e = total_liabilities + total_equity

    return BalanceSheetReport(
        metadata=metadata,
        current_assets=current_assets,
        non_current_assets=non_current_assets,
        total_assets=total_assets,
        current_liabilities=current_liabilities,
        non_current_liabilities=non_current_liabilities,
        total_liabilities=total_liabilities,
        equity=equity,
        retained_earnings=retained_earnings,
        current_year_earnings=current_year_earnings,
        total_equity=total_equity,
        total_liabilities_and_equity=total_l_and_e,
        is_balanced=(total_assets == total_l_and_e),
        comparative=comparative,
    )


# =========================================================================
# Rendering
# =========================================================================


def render_to_dict(obj: object) -> dict | list | str | int | float | bool | None:
    """
    Convert any report dataclass to plain JSON-safe data.

    Decimal and UUID become strings, dates ISO strings, enums their value,
    tuples lists.
    """
    if obj is None:
        return None
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, UUID):
        return str(obj)
    if isinstance(obj, date):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (list, tuple)):
        return [render_to_dict(item) for item in obj]
    if isinstance(obj, dict):
        return {str(k): render_to_dict(v) for k, v in obj.items()}
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return {
            f.name: render_to_dict(getattr(obj, f.name))
            for f in dataclasses.fields(obj)
        }
    if isinstance(obj, (str, int, float, bool)):
        return obj
    return str(obj)
