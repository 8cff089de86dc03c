"""
ledger_services.tenant_ledger -- Per-tenant ledger facade.

Responsibility:
    Creates every kernel service for one tenant exactly once, wires them
    with a shared session, clock and settings, and exposes the command
    surface (accounts, drafts, post, reverse, periods) and the query
    surface (balances, trial balance, statements, general ledger, tax,
    aging) as plain methods returning DTOs.

Architecture position:
    Services -- top of the stack.  The only place where ``ledger_config``,
    ``ledger_kernel``, ``ledger_engines`` and ``ledger_modules`` meet.

Invariants enforced:
    - Single-instance lifecycle: one AccountRegistry, JournalService,
      ReversalService, PeriodService and ReportingService per facade.
    - The facade never commits.  Wrap calls in ``session_scope()`` (or
      commit the session yourself) so that a failed ``post`` or
      ``reverse`` leaves nothing behind.

Failure modes:
    - Every kernel error propagates unchanged.
    - EntryNotFoundError from ``get_entry`` for an unknown id.

Usage:
    from ledger_kernel.db.engine import session_scope
    from ledger_services import TenantLedger

    with session_scope() as session:
        ledger = TenantLedger(session, tenant_id)
        ledger.initialize_default_chart(actor_id)
        draft = ledger.create_draft(date(2024, 1, 10), "Sale", lines, actor_id)
        ledger.post(draft.id, actor_id)
        ledger.trial_balance(date(2024, 1, 31))
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from datetime import date
from decimal import Decimal
from typing import Any, TypeVar
from uuid import UUID

from sqlalchemy.orm import Session

from ledger_config.loader import load_chart_of_accounts
from ledger_config.schema import ChartAccountDef, LedgerSettings
from ledger_engines.aging import AgingCalculator, AgingReport
from ledger_engines.tax import TaxSummary
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import (
    AccountInfo,
    AccountNode,
    JournalEntryRecord,
    LineInput,
    PeriodInfo,
    SourceDocument,
)
from ledger_kernel.exceptions import EntryNotFoundError
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.account import AccountType
from ledger_kernel.models.journal import JournalEntryStatus, SourceType
from ledger_kernel.selectors.journal_selector import JournalSelector
from ledger_kernel.selectors.ledger_selector import (
    AccountBalance,
    GeneralLedger,
    LedgerSelector,
)
from ledger_kernel.services.account_registry import AccountRegistry
from ledger_kernel.services.journal_service import JournalService
from ledger_kernel.services.period_service import PeriodService
from ledger_kernel.services.reversal_service import ReversalResult, ReversalService
from ledger_modules.reporting.config import ReportingConfig
from ledger_modules.reporting.models import (
    BalanceSheetReport,
    ProfitAndLossReport,
    TrialBalanceReport,
)
from ledger_modules.reporting.service import ReportingService

logger = get_logger("services.tenant_ledger")

T = TypeVar("T")


class TenantLedger:
    """Command and query surface of one tenant's ledger.

    Contract:
        Receives a Session, the tenant id and optional Clock, settings and
        reporting config.  All services share the same Session and Clock.

    Non-goals:
        - Does NOT manage transaction boundaries (caller's responsibility).
        - Does NOT know invoices or bills; collaborators translate them
          into balanced entries tagged with a SourceDocument.
    """

    def __init__(
        self,
        session: Session,
        tenant_id: UUID,
        clock: Clock | None = None,
        settings: LedgerSettings | None = None,
        reporting_config: ReportingConfig | None = None,
    ) -> None:
        self._session = session
        self.tenant_id = tenant_id
        self._clock = clock or SystemClock()
        self.settings = settings or LedgerSettings()

        if reporting_config is None:
            reporting = {"default_currency": self.settings.default_currency}
            reporting.update(self.settings.reporting)
            reporting_config = ReportingConfig.from_dict(reporting)

        self.accounts = AccountRegistry(
            session, tenant_id, base_currency=self.settings.default_currency,
        )
        self.periods = PeriodService(
            session,
            tenant_id,
            clock=self._clock,
            enforce_locks=self.settings.enforce_period_locks,
            base_currency=self.settings.default_currency,
        )
        self.journal = JournalService(
            session,
            tenant_id,
            clock=self._clock,
            default_currency=self.settings.default_currency,
            entry_number_prefix=self.settings.entry_number_prefix,
            entry_number_digits=self.settings.entry_number_digits,
            enforce_period_locks=self.settings.enforce_period_locks,
        )
        self.reversals = ReversalService(
            session,
            tenant_id,
            clock=self._clock,
            entry_number_prefix=self.settings.entry_number_prefix,
            entry_number_digits=self.settings.entry_number_digits,
            enforce_period_locks=self.settings.enforce_period_locks,
        )
        self.reporting = ReportingService(
            session, tenant_id, clock=self._clock, config=reporting_config,
        )
        self._entries = JournalSelector(session, tenant_id)
        self._ledger = LedgerSelector(
            session, tenant_id, base_currency=self.settings.default_currency,
        )
        self._aging = AgingCalculator()

    @property
    def session(self) -> Session:
        return self._session

    @property
    def clock(self) -> Clock:
        return self._clock

    # =========================================================================
    # Accounts
    # =========================================================================

    def create_account(
        self,
        code: str,
        name: str,
        account_type: AccountType | str,
        actor_id: UUID,
        parent_id: UUID | None = None,
        is_header: bool = False,
        opening_balance: Decimal | None = None,
        opening_balance_date: date | None = None,
        **kwargs: Any,
    ) -> AccountInfo:
        return self.accounts.create_account(
            code=code,
            name=name,
            account_type=account_type,
            actor_id=actor_id,
            parent_id=parent_id,
            is_header=is_header,
            opening_balance=opening_balance,
            opening_balance_date=opening_balance_date,
            **kwargs,
        )

    def update_account(
        self,
        account_id: UUID,
        patch: Mapping[str, Any],
        actor_id: UUID,
        force: bool = False,
    ) -> AccountInfo:
        return self.accounts.update_account(account_id, patch, actor_id, force=force)

    def deactivate_account(self, account_id: UUID, actor_id: UUID, force: bool = False) -> AccountInfo:
        return self.accounts.deactivate_account(account_id, actor_id, force=force)

    def reactivate_account(self, account_id: UUID, actor_id: UUID) -> AccountInfo:
        return self.accounts.reactivate_account(account_id, actor_id)

    def delete_account(self, account_id: UUID, actor_id: UUID) -> None:
        self.accounts.delete_account(account_id, actor_id)

    def get_account(self, account_id: UUID) -> AccountInfo:
        return self.accounts.get_account(account_id)

    def get_account_by_code(self, code: str) -> AccountInfo:
        return self.accounts.get_account_by_code(code)

    def list_accounts(
        self,
        account_type: AccountType | str | None = None,
        active_only: bool = False,
    ) -> list[AccountInfo]:
        return self.accounts.list_accounts(account_type=account_type, active_only=active_only)

    def account_tree(self) -> list[AccountNode]:
        return self.accounts.account_tree()

    def initialize_default_chart(
        self,
        actor_id: UUID,
        definitions: Iterable[ChartAccountDef] | None = None,
    ) -> list[AccountInfo]:
        """
        Seed the tenant's chart from a template.

        ``definitions`` None loads the chart named by ``settings.chart_path``
        or, failing that, the bundled default chart.
        """
        if definitions is None:
            definitions = load_chart_of_accounts(self.settings.chart_path)
        with LogContext.bind(tenant_id=str(self.tenant_id), actor_id=str(actor_id)):
            return self.accounts.initialize_default_chart(definitions, actor_id)

    # =========================================================================
    # Journal entries
    # =========================================================================

    def create_draft(
        self,
        entry_date: date,
        description: str,
        lines: Sequence[LineInput],
        actor_id: UUID,
        reference: str | None = None,
        source: SourceDocument | None = None,
        currency: str | None = None,
    ) -> JournalEntryRecord:
        with LogContext.bind(tenant_id=str(self.tenant_id), actor_id=str(actor_id)):
            return self.journal.create_draft(
                entry_date,
                description,
                lines,
                actor_id,
                reference=reference,
                source=source,
                currency=currency,
            )

    def update_draft(self, entry_id: UUID, actor_id: UUID, **changes: Any) -> JournalEntryRecord:
        with LogContext.bind(tenant_id=str(self.tenant_id), actor_id=str(actor_id)):
            return self.journal.update_draft(entry_id, actor_id, **changes)

    def delete_entry(self, entry_id: UUID, actor_id: UUID) -> None:
        """Delete a draft.  Posted history is never deleted, only reversed."""
        with LogContext.bind(tenant_id=str(self.tenant_id), actor_id=str(actor_id)):
            self.journal.delete_draft(entry_id, actor_id)

    def post(self, entry_id: UUID, actor_id: UUID) -> JournalEntryRecord:
        with LogContext.bind(tenant_id=str(self.tenant_id)):
            return self.journal.post(entry_id, actor_id)

    def reverse(
        self,
        entry_id: UUID,
        actor_id: UUID,
        reversal_date: date | None = None,
        description: str | None = None,
    ) -> ReversalResult:
        with LogContext.bind(tenant_id=str(self.tenant_id)):
            return self.reversals.reverse(
                entry_id, actor_id, reversal_date=reversal_date, description=description,
            )

    def get_entry(self, entry_id: UUID) -> JournalEntryRecord:
        record = self._entries.get_entry(entry_id)
        if record is None:
            raise EntryNotFoundError(str(entry_id))
        return record

    def get_entry_by_number(self, entry_number: str) -> JournalEntryRecord | None:
        return self._entries.get_by_number(entry_number)

    def list_entries(
        self,
        status: JournalEntryStatus | str | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
        source_type: SourceType | str | None = None,
        source_id: str | None = None,
    ) -> list[JournalEntryRecord]:
        return self._entries.list_entries(
            status=status,
            start_date=start_date,
            end_date=end_date,
            source_type=source_type,
            source_id=source_id,
        )

    # =========================================================================
    # Periods
    # =========================================================================

    def period_status(self, year: int, month: int) -> PeriodInfo:
        return self.periods.period_status(year, month)

    def list_periods(self, year: int | None = None) -> list[PeriodInfo]:
        return self.periods.list_periods(year)

    def close_period(self, year: int, month: int, actor_id: UUID) -> PeriodInfo:
        return self.periods.close_period(year, month, actor_id)

    def reopen_period(self, year: int, month: int, actor_id: UUID, reason: str) -> PeriodInfo:
        return self.periods.reopen_period(year, month, actor_id, reason)

    def lock_period(self, year: int, month: int, actor_id: UUID) -> PeriodInfo:
        return self.periods.lock_period(year, month, actor_id)

    # =========================================================================
    # Balances and reports
    # =========================================================================

    def account_balance(
        self,
        account_id: UUID,
        as_of_date: date,
        currency: str | None = None,
    ) -> Decimal:
        """Normal-side balance at ``as_of_date``; headers sum their subtree."""
        return self._ledger.account_balance(account_id, as_of_date, currency)

    def account_balances(self, as_of_date: date, currency: str | None = None) -> list[AccountBalance]:
        return self._ledger.account_balances(as_of_date, currency)

    def trial_balance(
        self,
        as_of_date: date,
        currency: str | None = None,
        comparative_date: date | None = None,
    ) -> TrialBalanceReport:
        return self.reporting.trial_balance(as_of_date, currency, comparative_date)

    def profit_and_loss(
        self,
        start_date: date,
        end_date: date,
        currency: str | None = None,
        comparative_start: date | None = None,
        comparative_end: date | None = None,
    ) -> ProfitAndLossReport:
        return self.reporting.profit_and_loss(
            start_date, end_date, currency, comparative_start, comparative_end,
        )

    def balance_sheet(
        self,
        as_of_date: date,
        currency: str | None = None,
        comparative_date: date | None = None,
    ) -> BalanceSheetReport:
        return self.reporting.balance_sheet(as_of_date, currency, comparative_date)

    def general_ledger(
        self,
        account_id: UUID,
        start_date: date | None = None,
        end_date: date | None = None,
        currency: str | None = None,
    ) -> GeneralLedger:
        return self._ledger.general_ledger(
            account_id, start_date, end_date or self._clock.today(), currency,
        )

    def tax_summary(
        self,
        start_date: date,
        end_date: date,
        currency: str | None = None,
    ) -> TaxSummary:
        return self.reporting.tax_summary(start_date, end_date, currency)

    def aging_report(
        self,
        items: Iterable[T],
        due_date_of: Callable[[T], Any],
        amount_of: Callable[[T], Any],
        reference_date: date | None = None,
    ) -> AgingReport:
        """Bucket outstanding documents held by a collaborator."""
        return self._aging.generate_report(
            items,
            due_date_of,
            amount_of,
            reference_date or self._clock.today(),
        )
