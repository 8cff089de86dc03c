"""
Tests for the pure statement builders.

No database: charts are AccountInfo maps, balances plain dicts.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from ledger_kernel.domain.dtos import AccountInfo
from ledger_kernel.models.account import AccountType, NormalBalance, normal_balance_for
from ledger_kernel.selectors.ledger_selector import TrialBalanceRow
from ledger_modules.reporting.config import ReportingConfig
from ledger_modules.reporting.models import ReportMetadata, ReportType
from ledger_modules.reporting.statements import (
    build_balance_sheet,
    build_profit_and_loss,
    build_trial_balance,
    classify_for_balance_sheet,
    classify_for_profit_and_loss,
    fiscal_year_start,
    net_profit,
    prior_year_end,
    render_to_dict,
)

TENANT = uuid4()


def _account(code, account_type, tags=(), is_header=False, is_active=True):
    return AccountInfo(
        id=uuid4(),
        tenant_id=TENANT,
        code=code,
        name=f"Account {code}",
        account_type=AccountType(account_type),
        normal_balance=normal_balance_for(account_type),
        is_header=is_header,
        is_active=is_active,
        tags=tuple(tags),
    )


def _metadata(report_type=ReportType.BALANCE_SHEET, currency="MYR"):
    return ReportMetadata(
        report_type=report_type,
        entity_name="Kedai Runcit Sdn Bhd",
        currency=currency,
        as_of_date=date(2024, 1, 31),
        generated_at="2024-01-01T12:00:00+00:00",
    )


class TestFiscalYear:

    def test_calendar_year(self):
        assert fiscal_year_start(date(2024, 5, 10)) == date(2024, 1, 1)
        assert prior_year_end(date(2024, 5, 10)) == date(2023, 12, 31)

    def test_april_year(self):
        assert fiscal_year_start(date(2024, 3, 31), start_month=4) == date(2023, 4, 1)
        assert fiscal_year_start(date(2024, 4, 1), start_month=4) == date(2024, 4, 1)
        assert prior_year_end(date(2024, 4, 1), start_month=4) == date(2024, 3, 31)


class TestClassification:

    def setup_method(self):
        self.config = ReportingConfig()

    @pytest.mark.parametrize(
        "code,tags,expected",
        [
            ("4100", (), "revenue"),
            ("5100", (), "cogs"),
            ("6100", (), "operating_expenses"),
            ("7100", (), "other_expenses"),
            ("6900", ("cogs",), "cogs"),
            ("5900", ("other_expense",), "other_expenses"),
        ],
    )
    def test_profit_and_loss_sections(self, code, tags, expected):
        account_type = "revenue" if code.startswith("4") else "expense"
        account = _account(code, account_type, tags)
        assert classify_for_profit_and_loss(account, self.config) == expected

    def test_balance_sheet_account_not_in_profit_and_loss(self):
        assert classify_for_profit_and_loss(_account("1010", "asset"), self.config) is None

    @pytest.mark.parametrize(
        "code,account_type,tags,expected",
        [
            ("1010", "asset", (), "current_assets"),
            ("1510", "asset", (), "non_current_assets"),
            ("1150", "asset", ("non_current",), "non_current_assets"),
            ("1600", "asset", ("current",), "current_assets"),
            ("2100", "liability", (), "current_liabilities"),
            ("2500", "liability", (), "non_current_liabilities"),
            ("3100", "equity", (), "equity"),
            ("4100", "revenue", (), None),
        ],
    )
    def test_balance_sheet_sections(self, code, account_type, tags, expected):
        account = _account(code, account_type, tags)
        assert classify_for_balance_sheet(account, self.config) == expected


class TestNetProfit:

    def test_revenue_less_expenses_ignoring_headers(self):
        revenue = _account("4100", "revenue")
        expense = _account("6100", "expense")
        header = _account("4000", "revenue", is_header=True)
        chart = {a.id: a for a in (revenue, expense, header)}

        amounts = {revenue.id: Decimal("1000"), expense.id: Decimal("300"), header.id: Decimal("1000")}

        assert net_profit(amounts, chart) == Decimal("700")


class TestTrialBalanceBuilder:

    def _row(self, account, debit, credit):
        return TrialBalanceRow(
            account_id=account.id,
            account_code=account.code,
            account_name=account.name,
            account_type=account.account_type,
            normal_balance=account.normal_balance,
            debit_total=Decimal(debit),
            credit_total=Decimal(credit),
        )

    def test_totals_and_net_balance(self):
        cash = _account("1010", "asset")
        sales = _account("4100", "revenue")

        report = build_trial_balance(
            [self._row(sales, "0", "500"), self._row(cash, "500", "0")],
            ReportingConfig(),
            _metadata(ReportType.TRIAL_BALANCE),
        )

        assert [l.account_code for l in report.lines] == ["1010", "4100"]
        assert report.lines[1].net_balance == Decimal("500")
        assert report.total_debits == report.total_credits == Decimal("500")
        assert report.is_balanced

    def test_imbalance_flagged(self):
        cash = _account("1010", "asset")
        report = build_trial_balance(
            [self._row(cash, "10", "0")], ReportingConfig(), _metadata(ReportType.TRIAL_BALANCE),
        )
        assert not report.is_balanced

    def test_zero_rows_added_on_request(self):
        cash = _account("1010", "asset")
        idle = _account("1020", "asset")
        dormant = _account("1030", "asset", is_active=False)
        chart = {a.id: a for a in (cash, idle, dormant)}

        report = build_trial_balance(
            [self._row(cash, "0", "0")],
            ReportingConfig(include_zero_balances=True),
            _metadata(ReportType.TRIAL_BALANCE),
            chart=chart,
        )

        assert [l.account_code for l in report.lines] == ["1010", "1020"]


class TestProfitAndLossBuilder:

    def test_multi_step_totals(self):
        sales = _account("4100", "revenue")
        purchases = _account("5100", "expense")
        rent = _account("6100", "expense")
        interest = _account("7100", "expense")
        cash = _account("1010", "asset")
        chart = {a.id: a for a in (sales, purchases, rent, interest, cash)}
        activity = {
            sales.id: Decimal("10000"),
            purchases.id: Decimal("4000"),
            rent.id: Decimal("1500"),
            interest.id: Decimal("200"),
            cash.id: Decimal("4300"),
        }

        report = build_profit_and_loss(activity, chart, ReportingConfig(), _metadata(ReportType.PROFIT_AND_LOSS))

        assert report.total_revenue == Decimal("10000")
        assert report.gross_profit == Decimal("6000")
        assert report.operating_profit == Decimal("4500")
        assert report.net_profit == Decimal("4300")
        assert report.total_expenses == Decimal("5700")
        assert report.cogs.label == "Cost of Goods Sold"

    def test_zero_lines_hidden_by_default(self):
        sales = _account("4100", "revenue")
        services = _account("4200", "revenue")
        chart = {a.id: a for a in (sales, services)}

        report = build_profit_and_loss(
            {sales.id: Decimal("5")}, chart, ReportingConfig(), _metadata(ReportType.PROFIT_AND_LOSS),
        )

        assert [l.account_code for l in report.revenue.lines] == ["4100"]


class TestBalanceSheetBuilder:

    def test_equity_includes_earnings(self):
        cash = _account("1010", "asset")
        equipment = _account("1510", "asset")
        payable = _account("2100", "liability")
        capital = _account("3100", "equity")
        chart = {a.id: a for a in (cash, equipment, payable, capital)}
        balances = {
            cash.id: Decimal("8000"),
            equipment.id: Decimal("5000"),
            payable.id: Decimal("1000"),
            capital.id: Decimal("10000"),
        }

        report = build_balance_sheet(
            balances, chart, ReportingConfig(), _metadata(),
            retained_earnings=Decimal("1500"),
            current_year_earnings=Decimal("500"),
        )

        assert report.total_assets == Decimal("13000")
        assert report.non_current_assets.total == Decimal("5000")
        assert report.total_liabilities == Decimal("1000")
        assert report.total_equity == Decimal("12000")
        assert report.is_balanced
        assert report.difference == Decimal("0")

    def test_imbalance_reported(self):
        cash = _account("1010", "asset")
        chart = {cash.id: cash}

        report = build_balance_sheet(
            {cash.id: Decimal("1")}, chart, ReportingConfig(), _metadata(),
            retained_earnings=Decimal("0"), current_year_earnings=Decimal("0"),
        )

        assert not report.is_balanced
        assert report.difference == Decimal("1")


class TestRounding:

    def test_lines_and_totals_use_minor_units(self):
        cash = _account("1010", "asset")
        bank = _account("1020", "asset")
        chart = {cash.id: cash, bank.id: bank}

        report = build_balance_sheet(
            {cash.id: Decimal("10.000000000"), bank.id: Decimal("0.305")},
            chart, ReportingConfig(), _metadata(),
            retained_earnings=Decimal("10.305"), current_year_earnings=Decimal("0"),
        )

        assert [str(line.amount) for line in report.current_assets.lines] == ["10.00", "0.31"]
        assert str(report.total_assets) == "10.31"
        assert str(report.retained_earnings) == "10.31"
        assert report.is_balanced

    def test_zero_decimal_currency(self):
        revenue = _account("4100", "revenue")

        report = build_profit_and_loss(
            {revenue.id: Decimal("1500.000000000")}, {revenue.id: revenue},
            ReportingConfig(), _metadata(ReportType.PROFIT_AND_LOSS, currency="JPY"),
        )

        assert str(report.total_revenue) == "1500"
        assert str(report.net_profit) == "1500"


class TestRenderToDict:

    def test_json_safe(self):
        cash = _account("1010", "asset")
        report = build_balance_sheet(
            {cash.id: Decimal("1.50")}, {cash.id: cash}, ReportingConfig(), _metadata(),
            retained_earnings=Decimal("1.50"), current_year_earnings=Decimal("0"),
        )

        data = render_to_dict(report)

        assert data["total_assets"] == "1.50"
        assert data["metadata"]["report_type"] == "balance_sheet"
        assert data["metadata"]["as_of_date"] == "2024-01-31"
        assert data["current_assets"]["lines"][0]["account_id"] == str(cash.id)
        assert data["comparative"] is None
        assert data["is_balanced"] is True

    def test_normal_balance_enum_rendered(self):
        assert render_to_dict({"side": NormalBalance.CREDIT}) == {"side": "credit"}
