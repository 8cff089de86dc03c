"""
Module: ledger_kernel.selectors.ledger_selector
Responsibility: Balance computation.  Point-in-time account balances, period
    activity, the trial balance, the general ledger and the tax line feed
    are all derived from journal lines at query time.
Architecture position: Kernel > Selectors.  Uses domain/balances.py for the
    arithmetic and AccountSelector for the chart.

Invariants enforced:
    - No stored balances.  Recomputing from scratch always gives the same
      answer because there is nothing else to drift from.
    - Only posted and reversed entries count.  A reversed original and its
      mirror are both included, so the pair nets to zero from the mirror's
      date onward while the history stays visible.
    - Period activity is balance(end) - balance(start - 1 day) per account.
    - Trial balance debit column == credit column whenever every posted
      entry balanced (and opening balances were entered balanced).

Failure modes:
    - AccountNotFoundError for an account outside the tenant.
    - Empty results / zero balances when nothing has been posted.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from uuid import UUID

from sqlalchemy import case, func, select
from sqlalchemy.orm import Session

from ledger_kernel.db.types import ZERO
from ledger_kernel.domain.balances import (
    build_children_index,
    descendant_ids,
    normal_balances,
    opening_raw,
    orient,
    raw_balances,
    trial_balance_columns,
)
from ledger_kernel.domain.dtos import AccountInfo
from ledger_kernel.exceptions import AccountNotFoundError
from ledger_kernel.models.account import Account, AccountType, NormalBalance
from ledger_kernel.models.journal import (
    JournalEntry,
    JournalEntryStatus,
    JournalLine,
    LineSide,
)
from ledger_kernel.selectors.account_selector import AccountSelector
from ledger_kernel.selectors.base import BaseSelector

BOOKED_STATUSES = (JournalEntryStatus.POSTED.value, JournalEntryStatus.REVERSED.value)


def _dec(value) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


@dataclass
class AccountBalance:
    """Balance of one account at a date, oriented to its normal side."""

    account_id: UUID
    account_code: str
    account_name: str
    account_type: AccountType
    normal_balance: NormalBalance
    is_header: bool
    debit_total: Decimal
    credit_total: Decimal
    balance: Decimal


@dataclass
class TrialBalanceRow:
    """An account's balance placed in the debit or the credit column."""

    account_id: UUID
    account_code: str
    account_name: str
    account_type: AccountType
    normal_balance: NormalBalance
    debit_total: Decimal
    credit_total: Decimal

    @property
    def balance(self) -> Decimal:
        """Net balance (debits - credits)."""
        return self.debit_total - self.credit_total


@dataclass
class GeneralLedgerLine:
    """One posting in an account's ledger, with the running balance after it."""

    entry_id: UUID
    entry_number: str | None
    entry_date: date
    description: str
    reference: str | None
    line_description: str | None
    account_code: str
    debit: Decimal
    credit: Decimal
    running_balance: Decimal


@dataclass
class GeneralLedger:
    """Account activity between two dates."""

    account: AccountInfo
    start_date: date | None
    end_date: date
    opening_balance: Decimal
    lines: list[GeneralLedgerLine]
    total_debits: Decimal
    total_credits: Decimal
    closing_balance: Decimal


@dataclass
class TaxLine:
    """A posted line carrying a tax code."""

    entry_id: UUID
    entry_date: date
    account_id: UUID
    account_code: str
    normal_balance: NormalBalance
    tax_code: str
    side: LineSide
    amount: Decimal
    tax_amount: Decimal


class LedgerSelector(BaseSelector[JournalLine]):
    """
    Balance computation engine for one tenant.

    Contract:
        Every method is a pure read of posted/reversed journal lines plus
        the account chart.  Amounts are never summed across currencies: a
        ``currency`` of None means the tenant's base currency.  Opening
        balances are expressed in the base currency and are left out when
        another currency is requested.
    """

    def __init__(self, session: Session, tenant_id: UUID, base_currency: str = "MYR"):
        super().__init__(session)
        self.tenant_id = tenant_id
        self.base_currency = base_currency
        self._accounts = AccountSelector(session, tenant_id)

    # ------------------------------------------------------------------
    # Raw sums
    # ------------------------------------------------------------------

    def _booked_lines(self):
        return (
            select()
            .select_from(JournalLine)
            .join(JournalEntry, JournalLine.journal_entry_id == JournalEntry.id)
            .where(JournalEntry.tenant_id == self.tenant_id)
            .where(JournalEntry.status.in_(BOOKED_STATUSES))
        )

    def line_sums(
        self,
        as_of_date: date | None = None,
        start_date: date | None = None,
        currency: str | None = None,
    ) -> dict[UUID, tuple[Decimal, Decimal]]:
        """account_id -> (debit_total, credit_total) for booked lines."""
        debit_sum = func.sum(
            case(
                (JournalLine.side == LineSide.DEBIT.value, JournalLine.amount),
                else_=ZERO,
            )
        ).label("debit_total")
        credit_sum = func.sum(
            case(
                (JournalLine.side == LineSide.CREDIT.value, JournalLine.amount),
                else_=ZERO,
            )
        ).label("credit_total")

        query = self._booked_lines().add_columns(
            JournalLine.account_id, debit_sum, credit_sum
        )
        if as_of_date is not None:
            query = query.where(JournalEntry.entry_date <= as_of_date)
        if start_date is not None:
            query = query.where(JournalEntry.entry_date >= start_date)
        query = query.where(JournalEntry.currency == self._currency(currency))
        query = query.group_by(JournalLine.account_id)

        return {
            row.account_id: (_dec(row.debit_total), _dec(row.credit_total))
            for row in self.session.execute(query)
        }

    def _currency(self, currency: str | None) -> str:
        return currency or self.base_currency

    def _include_opening(self, currency: str | None) -> bool:
        return self._currency(currency) == self.base_currency

    def booked_currencies(self) -> list[str]:
        """Currencies with at least one booked entry, base currency first."""
        query = self._booked_lines().add_columns(JournalEntry.currency).distinct()
        found = {row.currency for row in self.session.execute(query)}
        found.discard(self.base_currency)
        return [self.base_currency, *sorted(found)]

    # ------------------------------------------------------------------
    # Point-in-time balances
    # ------------------------------------------------------------------

    def account_balance(
        self,
        account_id: UUID,
        as_of_date: date,
        currency: str | None = None,
    ) -> Decimal:
        """
        Balance of one account at ``as_of_date`` on its normal side.

        Header accounts return the sum over all their descendants.

        Raises:
            AccountNotFoundError: Unknown account for this tenant.
        """
        chart = self._accounts.chart()
        if account_id not in chart:
            raise AccountNotFoundError(str(account_id))
        balances = normal_balances(
            chart,
            self.line_sums(as_of_date=as_of_date, currency=currency),
            as_of_date,
            include_opening=self._include_opening(currency),
        )
        return balances[account_id]

    def account_balances(
        self,
        as_of_date: date,
        currency: str | None = None,
        chart: dict[UUID, AccountInfo] | None = None,
    ) -> list[AccountBalance]:
        """Every account's balance (headers included), ordered by code."""
        chart = chart if chart is not None else self._accounts.chart()
        sums = self.line_sums(as_of_date=as_of_date, currency=currency)
        oriented = normal_balances(
            chart, sums, as_of_date, include_opening=self._include_opening(currency)
        )
        children_index = build_children_index(chart.values())

        results = []
        for account in sorted(chart.values(), key=lambda a: a.code):
            subtree = [account.id, *descendant_ids(account.id, children_index)]
            debit_total = sum((sums.get(i, (ZERO, ZERO))[0] for i in subtree), ZERO)
            credit_total = sum((sums.get(i, (ZERO, ZERO))[1] for i in subtree), ZERO)
            results.append(
                AccountBalance(
                    account_id=account.id,
                    account_code=account.code,
                    account_name=account.name,
                    account_type=account.account_type,
                    normal_balance=account.normal_balance,
                    is_header=account.is_header,
                    debit_total=debit_total,
                    credit_total=credit_total,
                    balance=oriented[account.id],
                )
            )
        return results

    def balances_as_of(
        self,
        as_of_date: date,
        currency: str | None = None,
        chart: dict[UUID, AccountInfo] | None = None,
    ) -> dict[UUID, Decimal]:
        """account_id -> normal-side balance at ``as_of_date``."""
        chart = chart if chart is not None else self._accounts.chart()
        return normal_balances(
            chart,
            self.line_sums(as_of_date=as_of_date, currency=currency),
            as_of_date,
            include_opening=self._include_opening(currency),
        )

    def period_activity(
        self,
        start_date: date,
        end_date: date,
        currency: str | None = None,
        chart: dict[UUID, AccountInfo] | None = None,
    ) -> dict[UUID, Decimal]:
        """
        Movement per account inside [start_date, end_date].

        Computed as balance(end_date) - balance(start_date - 1 day), so an
        opening balance dated inside the range counts as movement.
        """
        chart = chart if chart is not None else self._accounts.chart()
        closing = self.balances_as_of(end_date, currency, chart)
        opening = self.balances_as_of(start_date - timedelta(days=1), currency, chart)
        return {
            account_id: closing[account_id] - opening.get(account_id, ZERO)
            for account_id in chart
        }

    # ------------------------------------------------------------------
    # Trial balance
    # ------------------------------------------------------------------

    def trial_balance(
        self,
        as_of_date: date,
        currency: str | None = None,
    ) -> list[TrialBalanceRow]:
        """
        One row per postable account with a nonzero balance.

        Deactivated accounts that still carry a balance (forced
        deactivation) are listed; leaving them out would break the
        debit == credit equality.
        """
        chart = self._accounts.chart()
        raw = raw_balances(
            chart,
            self.line_sums(as_of_date=as_of_date, currency=currency),
            as_of_date,
            include_opening=self._include_opening(currency),
        )
        rows = []
        for account in sorted(chart.values(), key=lambda a: a.code):
            if account.is_header:
                continue
            debit, credit = trial_balance_columns(raw[account.id])
            if debit == ZERO and credit == ZERO:
                continue
            rows.append(
                TrialBalanceRow(
                    account_id=account.id,
                    account_code=account.code,
                    account_name=account.name,
                    account_type=account.account_type,
                    normal_balance=account.normal_balance,
                    debit_total=debit,
                    credit_total=credit,
                )
            )
        return rows

    @staticmethod
    def column_totals(rows: Iterable[TrialBalanceRow]) -> tuple[Decimal, Decimal]:
        """(sum of debit column, sum of credit column)."""
        debits = ZERO
        credits = ZERO
        for row in rows:
            debits += row.debit_total
            credits += row.credit_total
        return debits, credits

    # ------------------------------------------------------------------
    # General ledger
    # ------------------------------------------------------------------

    def general_ledger(
        self,
        account_id: UUID,
        start_date: date | None,
        end_date: date,
        currency: str | None = None,
    ) -> GeneralLedger:
        """
        Postings to an account (and its descendants) with running balance.

        Raises:
            AccountNotFoundError: Unknown account for this tenant.
        """
        chart = self._accounts.chart()
        account = chart.get(account_id)
        if account is None:
            raise AccountNotFoundError(str(account_id))

        subtree = [account_id, *descendant_ids(account_id, build_children_index(chart.values()))]

        if start_date is not None:
            opening = self.balances_as_of(
                start_date - timedelta(days=1), currency, chart
            )[account_id]
        elif self._include_opening(currency):
            opening = orient(
                sum((opening_raw(chart[i], end_date) for i in subtree), ZERO),
                account.normal_balance,
            )
        else:
            opening = ZERO

        query = (
            self._booked_lines()
            .add_columns(
                JournalEntry.id.label("entry_id"),
                JournalEntry.entry_number,
                JournalEntry.entry_date,
                JournalEntry.description,
                JournalEntry.reference,
                JournalLine.description.label("line_description"),
                JournalLine.account_id,
                JournalLine.side,
                JournalLine.amount,
            )
            .where(JournalLine.account_id.in_(subtree))
            .where(JournalEntry.currency == self._currency(currency))
            .where(JournalEntry.entry_date <= end_date)
            .order_by(JournalEntry.entry_date, JournalEntry.seq, JournalLine.line_seq)
        )
        if start_date is not None:
            query = query.where(JournalEntry.entry_date >= start_date)

        running = opening
        total_debits = ZERO
        total_credits = ZERO
        lines: list[GeneralLedgerLine] = []
        for row in self.session.execute(query):
            amount = _dec(row.amount)
            debit = amount if row.side == LineSide.DEBIT.value else ZERO
            credit = amount if row.side == LineSide.CREDIT.value else ZERO
            total_debits += debit
            total_credits += credit
            running += orient(debit - credit, account.normal_balance)
            lines.append(
                GeneralLedgerLine(
                    entry_id=row.entry_id,
                    entry_number=row.entry_number,
                    entry_date=row.entry_date,
                    description=row.description,
                    reference=row.reference,
                    line_description=row.line_description,
                    account_code=chart[row.account_id].code,
                    debit=debit,
                    credit=credit,
                    running_balance=running,
                )
            )

        return GeneralLedger(
            account=account,
            start_date=start_date,
            end_date=end_date,
            opening_balance=opening,
            lines=lines,
            total_debits=total_debits,
            total_credits=total_credits,
            closing_balance=running,
        )

    # ------------------------------------------------------------------
    # Tax feed
    # ------------------------------------------------------------------

    def tax_lines(
        self,
        start_date: date,
        end_date: date,
        currency: str | None = None,
    ) -> list[TaxLine]:
        """Booked lines in one currency carrying a tax code, dated inside the range."""
        query = (
            self._booked_lines()
            .add_columns(
                JournalEntry.id.label("entry_id"),
                JournalEntry.entry_date,
                JournalLine.account_id,
                Account.code.label("account_code"),
                Account.normal_balance,
                JournalLine.tax_code,
                JournalLine.side,
                JournalLine.amount,
                JournalLine.tax_amount,
            )
            .join(Account, JournalLine.account_id == Account.id)
            .where(JournalLine.tax_code.is_not(None))
            .where(JournalEntry.currency == self._currency(currency))
            .where(JournalEntry.entry_date >= start_date)
            .where(JournalEntry.entry_date <= end_date)
            .order_by(JournalEntry.entry_date, JournalEntry.seq, JournalLine.line_seq)
        )
        return [
            TaxLine(
                entry_id=row.entry_id,
                entry_date=row.entry_date,
                account_id=row.account_id,
                account_code=row.account_code,
                normal_balance=NormalBalance(row.normal_balance),
                tax_code=row.tax_code,
                side=LineSide(row.side),
                amount=_dec(row.amount),
                tax_amount=_dec(row.tax_amount),
            )
            for row in self.session.execute(query)
        ]
