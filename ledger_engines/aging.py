"""
Module: ledger_engines.aging
Responsibility:
    Receivable and payable aging: days overdue, the five fixed aging
    buckets, display labels and severity, and the bucketed aging report.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  The reference date is
    always passed in; nothing here reads the clock.

Invariants enforced:
    - ``categorize_into_bucket`` is total over the integers: <= 0 current,
      1-30, 31-60, 61-90, > 90.  No gaps, no overlap.
    - Reports always carry all five buckets; empty ones are zero.
    - Bucket sums do not depend on item order (Decimal addition is exact).
    - overdue_amount == amount - amounts[current].

Failure modes:
    - Missing or unparseable due dates are not errors; they count as
      current (0 days overdue).
    - InvalidAgingDateError for a missing or unparseable reference date.
    - TypeError from ``amount_of`` returning a float.

Audit relevance:
    Aging feeds the allowance for doubtful debts and vendor payment
    planning.  Every report is traced via ``@traced_engine``.

Usage:
    from datetime import date
    from ledger_engines.aging import AgingCalculator

    report = AgingCalculator().generate_report(
        invoices,
        due_date_of=lambda inv: inv.due_date,
        amount_of=lambda inv: inv.balance_due,
        reference_date=date(2024, 12, 15),
    )
    report.amounts["days1to30"]
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, TypeVar

from ledger_kernel.db.types import ZERO, to_decimal
from ledger_kernel.exceptions import InvalidAgingDateError
from ledger_kernel.logging_config import get_logger
from ledger_engines.tracer import traced_engine

logger = get_logger("engines.aging")

T = TypeVar("T")


class AgingBucketKey(str, Enum):
    """The five aging buckets, in ascending age order."""

    CURRENT = "current"
    DAYS_1_TO_30 = "days1to30"
    DAYS_31_TO_60 = "days31to60"
    DAYS_61_TO_90 = "days61to90"
    OVER_90 = "over90"


class AgingSeverity(str, Enum):
    NORMAL = "normal"
    WARNING = "warning"
    DANGER = "danger"
    CRITICAL = "critical"


@dataclass(frozen=True)
class AgeBucket:
    """
    One aging window.

    ``min_days`` None means unbounded below (everything not yet overdue),
    ``max_days`` None means unbounded above.
    """

    key: AgingBucketKey
    label: str
    short_label: str
    min_days: int | None
    max_days: int | None

    def contains(self, days_overdue: int) -> bool:
        if self.min_days is not None and days_overdue < self.min_days:
            return False
        if self.max_days is not None and days_overdue > self.max_days:
            return False
        return True


AGING_BUCKETS: tuple[AgeBucket, ...] = (
    AgeBucket(AgingBucketKey.CURRENT, "Current", "Current", None, 0),
    AgeBucket(AgingBucketKey.DAYS_1_TO_30, "1-30 Days", "1-30", 1, 30),
    AgeBucket(AgingBucketKey.DAYS_31_TO_60, "31-60 Days", "31-60", 31, 60),
    AgeBucket(AgingBucketKey.DAYS_61_TO_90, "61-90 Days", "61-90", 61, 90),
    AgeBucket(AgingBucketKey.OVER_90, "Over 90 Days", "90+", 91, None),
)

_BUCKETS_BY_KEY: dict[AgingBucketKey, AgeBucket] = {b.key: b for b in AGING_BUCKETS}


# =============================================================================
# Pure helpers
# =============================================================================


def _as_date(value: Any) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.strip()).date()
        except ValueError:
            return None
    return None


def _reference_date(value: Any) -> date:
    reference = _as_date(value)
    if reference is None:
        raise InvalidAgingDateError(value)
    return reference


def calculate_days_overdue(
    due_date: date | datetime | str | None,
    reference_date: date | datetime | str,
) -> int:
    """
    Whole days from ``due_date`` to ``reference_date``.

    Negative when not yet due.  A missing or unparseable due date gives 0.

    Raises:
        InvalidAgingDateError: ``reference_date`` missing or unparseable.
    """
    reference = _reference_date(reference_date)
    due = _as_date(due_date)
    if due is None:
        return 0
    return (reference - due).days


def categorize_into_bucket(days_overdue: int) -> AgingBucketKey:
    if days_overdue <= 0:
        return AgingBucketKey.CURRENT
    if days_overdue <= 30:
        return AgingBucketKey.DAYS_1_TO_30
    if days_overdue <= 60:
        return AgingBucketKey.DAYS_31_TO_60
    if days_overdue <= 90:
        return AgingBucketKey.DAYS_61_TO_90
    return AgingBucketKey.OVER_90


def bucket_label(key: AgingBucketKey | str, short: bool = False) -> str:
    bucket = _BUCKETS_BY_KEY[AgingBucketKey(key)]
    return bucket.short_label if short else bucket.label


def aging_label(days_overdue: int) -> str:
    """'Current', '1 day', 'N days'."""
    if days_overdue <= 0:
        return "Current"
    if days_overdue == 1:
        return "1 day"
    return f"{days_overdue} days"


def aging_severity(days_overdue: int) -> AgingSeverity:
    if days_overdue <= 0:
        return AgingSeverity.NORMAL
    if days_overdue <= 30:
        return AgingSeverity.WARNING
    if days_overdue <= 60:
        return AgingSeverity.DANGER
    return AgingSeverity.CRITICAL


def empty_aging_buckets() -> dict[str, Decimal]:
    """All five bucket keys mapped to zero."""
    return {key.value: ZERO for key in AgingBucketKey}


def _empty_counts() -> dict[str, int]:
    return {key.value: 0 for key in AgingBucketKey}


# =============================================================================
# Report
# =============================================================================


@dataclass(frozen=True)
class AgingReport:
    """
    Bucketed totals for a set of outstanding documents.

    ``counts`` and ``amounts`` always hold all five bucket keys.
    """

    reference_date: date
    counts: dict[str, int] = field(default_factory=_empty_counts)
    amounts: dict[str, Decimal] = field(default_factory=empty_aging_buckets)
    count: int = 0
    amount: Decimal = ZERO
    overdue_count: int = 0
    overdue_amount: Decimal = ZERO

    def amount_in(self, key: AgingBucketKey | str) -> Decimal:
        return self.amounts[AgingBucketKey(key).value]

    def count_in(self, key: AgingBucketKey | str) -> int:
        return self.counts[AgingBucketKey(key).value]

    def to_dict(self) -> dict[str, Any]:
        return {
            "reference_date": self.reference_date.isoformat(),
            "counts": dict(self.counts),
            "amounts": {k: str(v) for k, v in self.amounts.items()},
            "totals": {
                "count": self.count,
                "amount": str(self.amount),
                "overdue_count": self.overdue_count,
                "overdue_amount": str(self.overdue_amount),
            },
        }


@dataclass(frozen=True)
class AgedItem:
    """One document with its computed age."""

    item: Any
    due_date: date | None
    amount: Decimal
    days_overdue: int
    bucket: AgingBucketKey

    @property
    def is_overdue(self) -> bool:
        return self.days_overdue > 0


class AgingCalculator:
    """
    Ages documents against a reference date.

    Contract:
        Pure -- no I/O, no clock.  Selector callables pull the due date and
        amount out of whatever document type the caller holds.
    """

    def age_item(
        self,
        item: T,
        due_date_of: Callable[[T], Any],
        amount_of: Callable[[T], Any],
        reference_date: date,
    ) -> AgedItem:
        due = _as_date(due_date_of(item))
        days = calculate_days_overdue(due, reference_date)
        return AgedItem(
            item=item,
            due_date=due,
            amount=to_decimal(amount_of(item)),
            days_overdue=days,
            bucket=categorize_into_bucket(days),
        )

    def age_items(
        self,
        items: Iterable[T],
        due_date_of: Callable[[T], Any],
        amount_of: Callable[[T], Any],
        reference_date: date,
    ) -> list[AgedItem]:
        reference_date = _reference_date(reference_date)
        return [self.age_item(i, due_date_of, amount_of, reference_date) for i in items]

    @traced_engine("aging", "1.0", fingerprint_fields=("reference_date",))
    def generate_report(
        self,
        items: Iterable[T],
        due_date_of: Callable[[T], Any],
        amount_of: Callable[[T], Any],
        reference_date: date,
    ) -> AgingReport:
        """
        Bucket every item and total counts and amounts per bucket.

        Returns:
            AgingReport; overdue totals cover every bucket except current.

        Raises:
            InvalidAgingDateError: ``reference_date`` missing or unparseable.
        """
        reference_date = _reference_date(reference_date)
        counts = _empty_counts()
        amounts = empty_aging_buckets()
        total_count = 0
        total_amount = ZERO
        overdue_count = 0
        overdue_amount = ZERO

        for aged in self.age_items(items, due_date_of, amount_of, reference_date):
            key = aged.bucket.value
            counts[key] += 1
            amounts[key] += aged.amount
            total_count += 1
            total_amount += aged.amount
            if aged.is_overdue:
                overdue_count += 1
                overdue_amount += aged.amount

        logger.info(
            "aging_report_generated",
            extra={
                "reference_date": reference_date.isoformat(),
                "item_count": total_count,
                "total_amount": str(total_amount),
                "overdue_count": overdue_count,
                "overdue_amount": str(overdue_amount),
            },
        )

        return AgingReport(
            reference_date=reference_date,
            counts=counts,
            amounts=amounts,
            count=total_count,
            amount=total_amount,
            overdue_count=overdue_count,
            overdue_amount=overdue_amount,
        )


def aging_report(
    items: Iterable[T],
    due_date_of: Callable[[T], Any],
    amount_of: Callable[[T], Any],
    reference_date: date,
) -> AgingReport:
    """Module-level shortcut for ``AgingCalculator().generate_report``."""
    return AgingCalculator().generate_report(items, due_date_of, amount_of, reference_date)
