"""
Tax aggregation engine -- statutory (SST) tax summary over posted lines.

Responsibility:
    Groups tax-coded journal lines by tax code and totals the taxable
    base and the tax on the sales (output) and purchase (input) sides.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Lines come from
    ``LedgerSelector.tax_lines()``; any object with the same attributes
    works.

Invariants enforced:
    - A line on a credit-normal account is output tax, a line on a
      debit-normal account is input tax.
    - A line on its account's normal side counts positive, on the opposite
      side negative.  Credit notes and reversal pairs therefore net out.
    - Every TaxCode appears in the summary, zero when unused.
    - net_payable == output_tax - input_tax.
    - With a currency, totals are rounded to its minor units.

Failure modes:
    - ValueError for a tax code outside TaxCode.

Usage:
    from ledger_engines.tax import TaxAggregator

    summary = TaxAggregator().summarize(
        lines, start_date=date(2024, 1, 1), end_date=date(2024, 2, 29),
    )
    summary.net_payable
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any

from ledger_kernel.db.types import ZERO, minor_units, round_money
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import NormalBalance
from ledger_kernel.models.tax import TaxCode
from ledger_engines.tracer import traced_engine

logger = get_logger("engines.tax")


@dataclass(frozen=True)
class TaxCodeTotal:
    """Totals for one tax code."""

    tax_code: TaxCode
    output_taxable: Decimal = ZERO
    output_tax: Decimal = ZERO
    input_taxable: Decimal = ZERO
    input_tax: Decimal = ZERO
    line_count: int = 0

    @property
    def label(self) -> str:
        return self.tax_code.label

    @property
    def net_tax(self) -> Decimal:
        return self.output_tax - self.input_tax


@dataclass(frozen=True)
class TaxSummary:
    """Tax totals over [start_date, end_date]."""

    start_date: date
    end_date: date
    by_code: tuple[TaxCodeTotal, ...]
    currency: str | None = None

    @property
    def output_tax(self) -> Decimal:
        return sum((t.output_tax for t in self.by_code), ZERO)

    @property
    def input_tax(self) -> Decimal:
        return sum((t.input_tax for t in self.by_code), ZERO)

    @property
    def output_taxable(self) -> Decimal:
        return sum((t.output_taxable for t in self.by_code), ZERO)

    @property
    def input_taxable(self) -> Decimal:
        return sum((t.input_taxable for t in self.by_code), ZERO)

    @property
    def net_payable(self) -> Decimal:
        return self.output_tax - self.input_tax

    def for_code(self, tax_code: TaxCode | str) -> TaxCodeTotal:
        code = TaxCode(tax_code)
        for total in self.by_code:
            if total.tax_code == code:
                return total
        return TaxCodeTotal(tax_code=code)

    def to_dict(self) -> dict[str, Any]:
        return {
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "currency": self.currency,
            "by_code": [
                {
                    "tax_code": t.tax_code.value,
                    "label": t.label,
                    "output_taxable": str(t.output_taxable),
                    "output_tax": str(t.output_tax),
                    "input_taxable": str(t.input_taxable),
                    "input_tax": str(t.input_tax),
                    "line_count": t.line_count,
                }
                for t in self.by_code
            ],
            "output_tax": str(self.output_tax),
            "input_tax": str(self.input_tax),
            "net_payable": str(self.net_payable),
        }


class _Accumulator:
    __slots__ = ("output_taxable", "output_tax", "input_taxable", "input_tax", "line_count")

    def __init__(self) -> None:
        self.output_taxable = ZERO
        self.output_tax = ZERO
        self.input_taxable = ZERO
        self.input_tax = ZERO
        self.line_count = 0


def _signed(line) -> Decimal:
    """+1 when the line sits on its account's normal side, else -1."""
    normal = NormalBalance(line.normal_balance)
    on_normal_side = getattr(line.side, "value", line.side) == normal.value
    return Decimal(1) if on_normal_side else Decimal(-1)


class TaxAggregator:
    """
    Pure tax summary builder.

    Contract:
        ``summarize`` only reads its inputs.  Lines outside the date range
        are ignored, so the caller may pass a wider feed.
    """

    @traced_engine("tax", "1.0", fingerprint_fields=("start_date", "end_date"))
    def summarize(
        self,
        lines: Iterable[Any],
        start_date: date,
        end_date: date,
        currency: str | None = None,
    ) -> TaxSummary:
        totals = {code: _Accumulator() for code in TaxCode}

        def money(amount: Decimal) -> Decimal:
            return amount if currency is None else round_money(amount, minor_units(currency))

        for line in lines:
            if line.entry_date < start_date or line.entry_date > end_date:
                continue
            code = TaxCode(line.tax_code)
            sign = _signed(line)
            acc = totals[code]
            taxable = sign * line.amount
            tax = sign * (line.tax_amount or ZERO)
            if NormalBalance(line.normal_balance) == NormalBalance.CREDIT:
                acc.output_taxable += taxable
                acc.output_tax += tax
            else:
                acc.input_taxable += taxable
                acc.input_tax += tax
            acc.line_count += 1

        summary = TaxSummary(
            start_date=start_date,
            end_date=end_date,
            currency=currency,
            by_code=tuple(
                TaxCodeTotal(
                    tax_code=code,
                    output_taxable=money(acc.output_taxable),
                    output_tax=money(acc.output_tax),
                    input_taxable=money(acc.input_taxable),
                    input_tax=money(acc.input_tax),
                    line_count=acc.line_count,
                )
                for code, acc in totals.items()
            ),
        )

        logger.info(
            "tax_summary_generated",
            extra={
                "start_date": start_date.isoformat(),
                "end_date": end_date.isoformat(),
                "line_count": sum(acc.line_count for acc in totals.values()),
                "output_tax": str(summary.output_tax),
                "input_tax": str(summary.input_tax),
                "net_payable": str(summary.net_payable),
            },
        )
        return summary
