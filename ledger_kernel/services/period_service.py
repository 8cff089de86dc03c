"""
PeriodService -- monthly posting control and period close.

Responsibility:
    Tracks whether each calendar month of a tenant is open, closed or
    locked, and rejects postings dated inside a month that is not open.

Architecture position:
    Kernel > Services -- imperative shell.
    Called by JournalService and ReversalService before posting, and by
    the tenant facade for the close / reopen / lock workflow.

Invariants enforced:
    - A month without a row is open.
    - close_period refuses while drafts exist in the month, and refuses
      when the trial balance at month end does not balance.
    - LOCKED is permanent.  A closed month may be reopened with a reason.
    - Flush-only: never commits.

Failure modes:
    - ClosedPeriodError: posting date in a closed or locked month.
    - PeriodTransitionError: illegal close / reopen / lock.
    - TrialBalanceMismatchError: month-end trial balance out of balance.
    - InvalidPeriodError: month outside 1..12.

Audit relevance:
    Close, reopen and lock are logged with the actor and, for reopen, the
    reason.  Rejected postings are logged at WARNING.
"""

from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import PeriodInfo
from ledger_kernel.exceptions import (
    ClosedPeriodError,
    InvalidPeriodError,
    PeriodTransitionError,
    TrialBalanceMismatchError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.accounting_period import (
    AccountingPeriod,
    PeriodStatus,
    month_bounds,
    period_code,
)
from ledger_kernel.selectors.journal_selector import JournalSelector
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_kernel.services.base import BaseService

logger = get_logger("services.period")


class PeriodService(BaseService[AccountingPeriod]):
    """
    Accounting period lifecycle for one tenant.

    Contract:
        Returns PeriodInfo DTOs.  ``validate_posting_date()`` raises
        ClosedPeriodError when ``enforce_locks`` is on and the month is not
        open; with enforcement off it only logs.
    """

    def __init__(
        self,
        session: Session,
        tenant_id: UUID,
        clock: Clock | None = None,
        enforce_locks: bool = True,
        base_currency: str = "MYR",
    ):
        super().__init__(session)
        self.tenant_id = tenant_id
        self._clock = clock or SystemClock()
        self._enforce_locks = enforce_locks
        self.base_currency = base_currency

    @staticmethod
    def _check_month(year: int, month: int) -> None:
        if not 1 <= month <= 12 or not 1 <= year <= 9999:
            raise InvalidPeriodError(year, month)

    def _get_period(self, year: int, month: int, for_update: bool = False) -> AccountingPeriod | None:
        query = select(AccountingPeriod).where(
            AccountingPeriod.tenant_id == self.tenant_id,
            AccountingPeriod.year == year,
            AccountingPeriod.month == month,
        )
        if for_update:
            query = query.with_for_update()
        return self.session.execute(query).scalar_one_or_none()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def period_status(self, year: int, month: int) -> PeriodInfo:
        """Status of a month; implicitly open when never closed."""
        self._check_month(year, month)
        period = self._get_period(year, month)
        if period is None:
            return PeriodInfo.implicit_open(self.tenant_id, year, month)
        return PeriodInfo.from_model(period)

    def can_post_to_date(self, entry_date: date) -> bool:
        return self.period_status(entry_date.year, entry_date.month).accepts_postings

    def validate_posting_date(self, entry_date: date) -> None:
        """
        Raise ClosedPeriodError if ``entry_date`` falls in a month that is
        not open (when enforcement is on).
        """
        info = self.period_status(entry_date.year, entry_date.month)
        if info.accepts_postings:
            return

        logger.warning(
            "posting_to_closed_period",
            extra={
                "period_code": info.period_code,
                "entry_date": str(entry_date),
                "period_status": info.status.value,
                "enforced": self._enforce_locks,
            },
        )
        if self._enforce_locks:
            raise ClosedPeriodError(info.period_code, entry_date, info.status.value)

    def list_periods(self, year: int | None = None) -> list[PeriodInfo]:
        """Persisted period rows, newest first."""
        query = select(AccountingPeriod).where(AccountingPeriod.tenant_id == self.tenant_id)
        if year is not None:
            query = query.where(AccountingPeriod.year == year)
        query = query.order_by(AccountingPeriod.year.desc(), AccountingPeriod.month.desc())
        return [PeriodInfo.from_model(p) for p in self.session.execute(query).scalars()]

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close_period(self, year: int, month: int, actor_id: UUID) -> PeriodInfo:
        """
        Close a month.

        Raises:
            PeriodTransitionError: Already closed / locked, or drafts remain.
            TrialBalanceMismatchError: Month-end trial balance out of balance.
        """
        self._check_month(year, month)
        code = period_code(year, month)
        period = self._get_period(year, month, for_update=True)

        if period is not None and period.status != PeriodStatus.OPEN.value:
            raise PeriodTransitionError(code, period.status, PeriodStatus.CLOSED.value)

        start, end = month_bounds(year, month)
        drafts = JournalSelector(self.session, self.tenant_id).count_drafts_between(start, end)
        if drafts:
            raise PeriodTransitionError(
                code,
                PeriodStatus.OPEN.value,
                PeriodStatus.CLOSED.value,
                reason=f"{drafts} draft entries must be posted or deleted first",
            )

        ledger = LedgerSelector(self.session, self.tenant_id, self.base_currency)
        for currency in ledger.booked_currencies():
            debits, credits = LedgerSelector.column_totals(ledger.trial_balance(end, currency))
            if debits != credits:
                logger.error(
                    "trial_balance_imbalance",
                    extra={
                        "period_code": code,
                        "as_of_date": str(end),
                        "currency": currency,
                        "total_debits": str(debits),
                        "total_credits": str(credits),
                    },
                )
                raise TrialBalanceMismatchError(end, debits, credits)

        now = self._clock.now()
        if period is None:
            period = AccountingPeriod(
                tenant_id=self.tenant_id,
                year=year,
                month=month,
                created_by_id=actor_id,
            )
            self.session.add(period)
        else:
            period.updated_by_id = actor_id
        period.status = PeriodStatus.CLOSED.value
        period.closed_at = now
        period.closed_by_id = actor_id
        self.session.flush()

        logger.info(
            "period_closed",
            extra={"period_code": code, "actor_id": str(actor_id)},
        )
        return PeriodInfo.from_model(period)

    def reopen_period(self, year: int, month: int, actor_id: UUID, reason: str) -> PeriodInfo:
        """
        Reopen a closed month.

        Raises:
            PeriodTransitionError: Month is open, locked, or no reason given.
        """
        self._check_month(year, month)
        code = period_code(year, month)
        period = self._get_period(year, month, for_update=True)
        current = period.status if period is not None else PeriodStatus.OPEN.value

        if current != PeriodStatus.CLOSED.value:
            raise PeriodTransitionError(code, current, PeriodStatus.OPEN.value)
        if not reason or not reason.strip():
            raise PeriodTransitionError(
                code, current, PeriodStatus.OPEN.value, reason="a reopen reason is required"
            )

        period.status = PeriodStatus.OPEN.value
        period.reopened_at = self._clock.now()
        period.reopened_by_id = actor_id
        period.reopen_reason = reason.strip()
        period.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "period_reopened",
            extra={"period_code": code, "actor_id": str(actor_id), "reason": reason},
        )
        return PeriodInfo.from_model(period)

    def lock_period(self, year: int, month: int, actor_id: UUID) -> PeriodInfo:
        """
        Permanently lock a closed month.

        Raises:
            PeriodTransitionError: Month is not closed.
        """
        self._check_month(year, month)
        code = period_code(year, month)
        period = self._get_period(year, month, for_update=True)
        current = period.status if period is not None else PeriodStatus.OPEN.value

        if current != PeriodStatus.CLOSED.value:
            raise PeriodTransitionError(
                code,
                current,
                PeriodStatus.LOCKED.value,
                reason="only closed periods can be locked",
            )

        period.status = PeriodStatus.LOCKED.value
        period.locked_at = self._clock.now()
        period.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "period_locked",
            extra={"period_code": code, "actor_id": str(actor_id)},
        )
        return PeriodInfo.from_model(period)
