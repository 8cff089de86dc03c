"""
Reporting Module Service (``ledger_modules.reporting.service``).

Responsibility
--------------
Orchestrates statement generation -- trial balance, profit and loss,
balance sheet and the tax summary -- by bridging ``LedgerSelector`` and
``AccountSelector`` to the pure builders in ``statements.py`` and the
``TaxAggregator`` engine.  Read-only: nothing is posted.

Architecture position
---------------------
**Modules layer** -- thin glue above the kernel.  Constructor:
``session`` + ``tenant_id`` + ``clock`` + ``config``.

Invariants enforced
-------------------
* Read-only -- no flush, no commit.
* Profit and loss uses period activity, never cumulative balances.
* Trial balance debits == credits and balance sheet
  assets == liabilities + equity are checked on every report.

Failure modes
-------------
* ``ValueError`` for an inverted date range, before any query runs.
* ``TrialBalanceMismatchError`` / ``BalanceSheetMismatchError`` when an
  integrity check fails and ``config.enforce_integrity`` is on.  With it
  off the report is returned with ``is_balanced=False``.  Either way the
  imbalance is logged at ERROR.

Audit relevance
---------------
A structured log event is emitted for every report with its parameters
and headline totals.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from ledger_engines.tax import TaxAggregator, TaxSummary
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import AccountInfo
from ledger_kernel.exceptions import (
    BalanceSheetMismatchError,
    TrialBalanceMismatchError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.selectors.account_selector import AccountSelector
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_modules.reporting.config import ReportingConfig
from ledger_modules.reporting.models import (
    BalanceSheetReport,
    ProfitAndLossReport,
    ReportMetadata,
    ReportType,
    TrialBalanceReport,
)
from ledger_modules.reporting.statements import (
    build_balance_sheet,
    build_profit_and_loss,
    build_trial_balance,
    fiscal_year_start,
    net_profit,
    prior_year_end,
    render_to_dict,
)

logger = get_logger("modules.reporting.service")


class ReportingService:
    """
    Financial statement generation for one tenant.

    Contract
    --------
    * Every public method returns a typed report DTO.
    * Report generation delegates to pure functions; no classification or
      arithmetic lives in this class.
    * Clock is injectable for deterministic ``generated_at`` stamps.
    """

    def __init__(
        self,
        session: Session,
        tenant_id: UUID,
        clock: Clock | None = None,
        config: ReportingConfig | None = None,
    ):
        self._session = session
        self.tenant_id = tenant_id
        self._clock = clock or SystemClock()
        self._config = config or ReportingConfig.with_defaults()
        self._accounts = AccountSelector(session, tenant_id)
        self._ledger = LedgerSelector(
            session, tenant_id, base_currency=self._config.default_currency,
        )

    @property
    def config(self) -> ReportingConfig:
        return self._config

    # =========================================================================
    # Internal helpers
    # =========================================================================

    def _metadata(
        self,
        report_type: ReportType,
        as_of_date: date,
        currency: str | None,
        period_start: date | None = None,
        period_end: date | None = None,
        comparative_date: date | None = None,
        comparative_start: date | None = None,
    ) -> ReportMetadata:
        return ReportMetadata(
            report_type=report_type,
            entity_name=self._config.entity_name,
            currency=currency or self._config.default_currency,
            as_of_date=as_of_date,
            generated_at=self._clock.now().isoformat(),
            period_start=period_start,
            period_end=period_end,
            comparative_date=comparative_date,
            comparative_start=comparative_start,
        )

    @staticmethod
    def _check_range(start_date: date, end_date: date) -> None:
        if end_date < start_date:
            raise ValueError(
                f"end_date ({end_date}) must be on or after start_date ({start_date})"
            )

    def _earnings_split(
        self,
        as_of_date: date,
        currency: str | None,
        chart: dict[UUID, AccountInfo],
    ) -> tuple[Decimal, Decimal]:
        """(retained earnings to last year end, current-year earnings)."""
        start_month = self._config.fiscal_year_start_month
        cutoff = prior_year_end(as_of_date, start_month)
        retained = net_profit(self._ledger.balances_as_of(cutoff, currency, chart), chart)
        current = net_profit(
            self._ledger.period_activity(
                fiscal_year_start(as_of_date, start_month), as_of_date, currency, chart,
            ),
            chart,
        )
        return retained, current

    # =========================================================================
    # Trial balance
    # =========================================================================

    def trial_balance(
        self,
        as_of_date: date,
        currency: str | None = None,
        comparative_date: date | None = None,
    ) -> TrialBalanceReport:
        """
        Trial balance at ``as_of_date``.

        Raises:
            TrialBalanceMismatchError: Columns differ and integrity is enforced.
        """
        chart = self._accounts.chart()
        rows = self._ledger.trial_balance(as_of_date, currency)
        comparative_rows = (
            self._ledger.trial_balance(comparative_date, currency)
            if comparative_date is not None
            else None
        )
        metadata = self._metadata(
            ReportType.TRIAL_BALANCE,
            as_of_date,
            currency,
            comparative_date=comparative_date,
        )
        report = build_trial_balance(
            rows, self._config, metadata, chart=chart, comparative_rows=comparative_rows,
        )

        if not report.is_balanced:
            logger.error(
                "trial_balance_imbalance",
                extra={
                    "tenant_id": str(self.tenant_id),
                    "as_of_date": as_of_date.isoformat(),
                    "total_debits": str(report.total_debits),
                    "total_credits": str(report.total_credits),
                },
            )
            if self._config.enforce_integrity:
                raise TrialBalanceMismatchError(
                    as_of_date, report.total_debits, report.total_credits,
                )

        logger.info(
            "trial_balance_generated",
            extra={
                "tenant_id": str(self.tenant_id),
                "as_of_date": as_of_date.isoformat(),
                "line_count": len(report.lines),
                "total_debits": str(report.total_debits),
                "total_credits": str(report.total_credits),
                "is_balanced": report.is_balanced,
            },
        )
        return report

    # =========================================================================
    # Profit and loss
    # =========================================================================

    def _build_profit_and_loss(
        self,
        start_date: date,
        end_date: date,
        currency: str | None,
        chart: dict[UUID, AccountInfo],
        comparative: ProfitAndLossReport | None = None,
        comparative_start: date | None = None,
        comparative_end: date | None = None,
    ) -> ProfitAndLossReport:
        activity = self._ledger.period_activity(start_date, end_date, currency, chart)
        metadata = self._metadata(
            ReportType.PROFIT_AND_LOSS,
            end_date,
            currency,
            period_start=start_date,
            period_end=end_date,
            comparative_date=comparative_end,
            comparative_start=comparative_start,
        )
        return build_profit_and_loss(
            activity, chart, self._config, metadata, comparative=comparative,
        )

    def profit_and_loss(
        self,
        start_date: date,
        end_date: date,
        currency: str | None = None,
        comparative_start: date | None = None,
        comparative_end: date | None = None,
    ) -> ProfitAndLossReport:
        """
        Profit and loss for [start_date, end_date].

        Raises:
            ValueError: end_date before start_date, or only one comparative
                bound given.
        """
        self._check_range(start_date, end_date)
        if (comparative_start is None) != (comparative_end is None):
            raise ValueError("comparative_start and comparative_end must be given together")
        if comparative_start is not None:
            self._check_range(comparative_start, comparative_end)

        chart = self._accounts.chart()
        comparative = None
        if comparative_start is not None:
            comparative = self._build_profit_and_loss(
                comparative_start, comparative_end, currency, chart,
            )
        report = self._build_profit_and_loss(
            start_date,
            end_date,
            currency,
            chart,
            comparative=comparative,
            comparative_start=comparative_start,
            comparative_end=comparative_end,
        )

        logger.info(
            "profit_and_loss_generated",
            extra={
                "tenant_id": str(self.tenant_id),
                "period_start": start_date.isoformat(),
                "period_end": end_date.isoformat(),
                "total_revenue": str(report.total_revenue),
                "total_expenses": str(report.total_expenses),
                "net_profit": str(report.net_profit),
            },
        )
        return report

    # =========================================================================
    # Balance sheet
    # =========================================================================

    def _build_balance_sheet(
        self,
        as_of_date: date,
        currency: str | None,
        chart: dict[UUID, AccountInfo],
        comparative: BalanceSheetReport | None = None,
        comparative_date: date | None = None,
    ) -> BalanceSheetReport:
        balances = self._ledger.balances_as_of(as_of_date, currency, chart)
        retained, current = self._earnings_split(as_of_date, currency, chart)
        metadata = self._metadata(
            ReportType.BALANCE_SHEET,
            as_of_date,
            currency,
            comparative_date=comparative_date,
        )
        report = build_balance_sheet(
            balances,
            chart,
            self._config,
            metadata,
            retained_earnings=retained,
            current_year_earnings=current,
            comparative=comparative,
        )

        if not report.is_balanced:
            logger.error(
                "balance_sheet_imbalance",
                extra={
                    "tenant_id": str(self.tenant_id),
                    "as_of_date": as_of_date.isoformat(),
                    "total_assets": str(report.total_assets),
                    "total_liabilities": str(report.total_liabilities),
                    "total_equity": str(report.total_equity),
                    "difference": str(report.difference),
                },
            )
            if self._config.enforce_integrity:
                raise BalanceSheetMismatchError(
                    as_of_date,
                    report.total_assets,
                    report.total_liabilities,
                    report.total_equity,
                )
        return report

    def balance_sheet(
        self,
        as_of_date: date,
        currency: str | None = None,
        comparative_date: date | None = None,
    ) -> BalanceSheetReport:
        """
        Classified balance sheet at ``as_of_date``.

        Raises:
            BalanceSheetMismatchError: Assets differ from liabilities plus
                equity and integrity is enforced.
        """
        chart = self._accounts.chart()
        comparative = None
        if comparative_date is not None:
            comparative = self._build_balance_sheet(comparative_date, currency, chart)
        report = self._build_balance_sheet(
            as_of_date,
            currency,
            chart,
            comparative=comparative,
            comparative_date=comparative_date,
        )

        logger.info(
            "balance_sheet_generated",
            extra={
                "tenant_id": str(self.tenant_id),
                "as_of_date": as_of_date.isoformat(),
                "total_assets": str(report.total_assets),
                "total_liabilities": str(report.total_liabilities),
                "total_equity": str(report.total_equity),
                "is_balanced": report.is_balanced,
            },
        )
        return report

    # =========================================================================
    # Tax
    # =========================================================================

    def tax_summary(
        self,
        start_date: date,
        end_date: date,
        currency: str | None = None,
    ) -> TaxSummary:
        """SST summary for [start_date, end_date] in one currency."""
        self._check_range(start_date, end_date)
        currency = currency or self._config.default_currency
        lines = self._ledger.tax_lines(start_date, end_date, currency)
        return TaxAggregator().summarize(
            lines,
            start_date=start_date,
            end_date=end_date,
            currency=currency,
        )

    # =========================================================================
    # Rendering
    # =========================================================================

    @staticmethod
    def to_dict(report: object) -> dict:
        """Render any report to a JSON-safe dict."""
        return render_to_dict(report)
