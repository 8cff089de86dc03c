"""
Module: ledger_kernel.models.accounting_period
Responsibility: Monthly posting control per tenant.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - (tenant_id, year, month) is unique.
    - A month with no row is open.  Rows only exist once a month has been
      closed at least once.
    - LOCKED is terminal; a locked row is frozen (db/immutability.py).

Audit relevance:
    closed_by_id / closed_at and reopened_by_id / reopen_reason record who
    changed the month's status and why.
"""

import calendar
from datetime import date, datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import DateTime, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase, UUIDString


class PeriodStatus(str, Enum):
    """Status of an accounting month.

    OPEN <-> CLOSED -> LOCKED.  A closed month may be reopened; a locked
    month may not.
    """

    OPEN = "open"
    CLOSED = "closed"
    LOCKED = "locked"


def period_code(year: int, month: int) -> str:
    """``2024-01`` style code for a month."""
    return f"{year:04d}-{month:02d}"


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last calendar day of a month."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


class AccountingPeriod(TrackedBase):
    """
    Status row for one calendar month of one tenant.

    Contract:
        Postings dated inside a CLOSED or LOCKED month are rejected by the
        journal and reversal services.
    """

    __tablename__ = "accounting_periods"

    __table_args__ = (
        UniqueConstraint("tenant_id", "year", "month", name="uq_period_tenant_month"),
        Index("idx_period_tenant_status", "tenant_id", "status"),
    )

    tenant_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    year: Mapped[int] = mapped_column(Integer, nullable=False)

    month: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[PeriodStatus] = mapped_column(
        String(20),
        default=PeriodStatus.OPEN,
        nullable=False,
    )

    closed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    closed_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    reopened_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    reopened_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    reopen_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    locked_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<AccountingPeriod {self.period_code}: {self.status}>"

    @property
    def period_code(self) -> str:
        return period_code(self.year, self.month)

    @property
    def start_date(self) -> date:
        return month_bounds(self.year, self.month)[0]

    @property
    def end_date(self) -> date:
        return month_bounds(self.year, self.month)[1]

    @property
    def is_open(self) -> bool:
        return self.status == PeriodStatus.OPEN

    @property
    def is_closed(self) -> bool:
        """Closed or locked."""
        return self.status in (PeriodStatus.CLOSED, PeriodStatus.LOCKED)

    def contains_date(self, check_date: date) -> bool:
        return check_date.year == self.year and check_date.month == self.month
