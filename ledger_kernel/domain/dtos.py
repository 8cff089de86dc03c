"""
DTOs -- immutable records crossing the ledger's command and query surfaces.

Responsibility:
    Plain frozen dataclasses that callers pass in (LineInput, SourceDocument)
    and get back (AccountInfo, JournalEntryRecord, PeriodInfo, AccountNode).
    Callers never receive ORM objects.

Architecture position:
    Kernel > Domain -- no I/O.  ``from_model()`` converters are boundary
    helpers invoked only by services and selectors.

Invariants enforced:
    - A line input carries a debit or a credit, checked by
      domain/validation.py before anything is persisted.
    - A source id is meaningless without a source type.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from ledger_kernel.models.account import AccountType, NormalBalance
from ledger_kernel.models.accounting_period import (
    PeriodStatus,
    month_bounds,
    period_code,
)
from ledger_kernel.models.journal import JournalEntryStatus, LineSide, SourceType

if TYPE_CHECKING:
    from ledger_kernel.models.account import Account as AccountModel
    from ledger_kernel.models.accounting_period import (
        AccountingPeriod as AccountingPeriodModel,
    )
    from ledger_kernel.models.journal import JournalEntry as JournalEntryModel


# =============================================================================
# Inputs
# =============================================================================


@dataclass(frozen=True)
class LineInput:
    """
    One requested entry line.

    Exactly one of ``debit`` / ``credit`` must be strictly positive; the
    other is None or zero.
    """

    account_id: UUID
    debit: Decimal | None = None
    credit: Decimal | None = None
    description: str | None = None
    tax_code: str | None = None
    tax_amount: Decimal | None = None

    @classmethod
    def debit_line(cls, account_id: UUID, amount: Decimal, **kwargs) -> LineInput:
        return cls(account_id=account_id, debit=Decimal(amount), **kwargs)

    @classmethod
    def credit_line(cls, account_id: UUID, amount: Decimal, **kwargs) -> LineInput:
        return cls(account_id=account_id, credit=Decimal(amount), **kwargs)


@dataclass(frozen=True)
class SourceDocument:
    """Link from an entry back to the business document that raised it."""

    source_type: SourceType
    source_id: str | None = None

    def __post_init__(self) -> None:
        # Coerce plain strings ("invoice") into the closed enum
        object.__setattr__(self, "source_type", SourceType(self.source_type))


# =============================================================================
# Accounts
# =============================================================================


@dataclass(frozen=True)
class AccountInfo:
    """Immutable snapshot of an account."""

    id: UUID
    tenant_id: UUID
    code: str
    name: str
    account_type: AccountType
    normal_balance: NormalBalance
    is_header: bool
    is_active: bool
    parent_id: UUID | None = None
    is_system: bool = False
    opening_balance: Decimal | None = None
    opening_balance_date: date | None = None
    tax_code: str | None = None
    tags: tuple[str, ...] = ()
    description: str | None = None

    def has_tag(self, tag) -> bool:
        return getattr(tag, "value", tag) in self.tags

    @classmethod
    def from_model(cls, model: AccountModel) -> AccountInfo:
        return cls(
            id=model.id,
            tenant_id=model.tenant_id,
            code=model.code,
            name=model.name,
            account_type=AccountType(model.account_type),
            normal_balance=NormalBalance(model.normal_balance),
            is_header=model.is_header,
            is_active=model.is_active,
            parent_id=model.parent_id,
            is_system=model.is_system,
            opening_balance=model.opening_balance,
            opening_balance_date=model.opening_balance_date,
            tax_code=model.tax_code,
            tags=tuple(model.tags or ()),
            description=model.description,
        )


@dataclass(frozen=True)
class AccountNode:
    """An account with its children, as returned by ``account_tree()``."""

    account: AccountInfo
    children: tuple[AccountNode, ...] = ()

    @property
    def depth(self) -> int:
        if not self.children:
            return 0
        return 1 + max(child.depth for child in self.children)


# =============================================================================
# Journal entries
# =============================================================================


@dataclass(frozen=True)
class JournalLineRecord:
    """Read-side view of one entry line."""

    id: UUID
    line_seq: int
    account_id: UUID
    account_code: str
    side: LineSide
    amount: Decimal
    tax_code: str | None = None
    tax_amount: Decimal | None = None
    description: str | None = None

    @property
    def debit(self) -> Decimal:
        return self.amount if self.side == LineSide.DEBIT else Decimal("0")

    @property
    def credit(self) -> Decimal:
        return self.amount if self.side == LineSide.CREDIT else Decimal("0")


@dataclass(frozen=True)
class JournalEntryRecord:
    """
    Read-side view of a journal entry and its ordered lines.

    ``entry_number`` and ``seq`` are None while the entry is a draft.
    """

    id: UUID
    tenant_id: UUID
    entry_date: date
    description: str
    currency: str
    status: JournalEntryStatus
    lines: tuple[JournalLineRecord, ...]
    entry_number: str | None = None
    seq: int | None = None
    reference: str | None = None
    source_type: SourceType | None = None
    source_id: str | None = None
    posted_at: datetime | None = None
    posted_by_id: UUID | None = None
    reversal_of_id: UUID | None = None
    reversed_by_id: UUID | None = None
    created_by_id: UUID | None = None

    @property
    def total_debits(self) -> Decimal:
        return sum((line.debit for line in self.lines), Decimal("0"))

    @property
    def total_credits(self) -> Decimal:
        return sum((line.credit for line in self.lines), Decimal("0"))

    @property
    def is_draft(self) -> bool:
        return self.status == JournalEntryStatus.DRAFT

    @property
    def is_posted(self) -> bool:
        return self.status == JournalEntryStatus.POSTED

    @property
    def is_reversed(self) -> bool:
        return self.status == JournalEntryStatus.REVERSED

    @classmethod
    def from_model(cls, model: JournalEntryModel) -> JournalEntryRecord:
        lines = tuple(
            JournalLineRecord(
                id=line.id,
                line_seq=line.line_seq,
                account_id=line.account_id,
                account_code=line.account.code if line.account else "",
                side=LineSide(line.side),
                amount=line.amount,
                tax_code=line.tax_code,
                tax_amount=line.tax_amount,
                description=line.description,
            )
            for line in sorted(model.lines, key=lambda x: x.line_seq)
        )
        return cls(
            id=model.id,
            tenant_id=model.tenant_id,
            entry_date=model.entry_date,
            description=model.description,
            currency=model.currency,
            status=JournalEntryStatus(model.status),
            lines=lines,
            entry_number=model.entry_number,
            seq=model.seq,
            reference=model.reference,
            source_type=SourceType(model.source_type) if model.source_type else None,
            source_id=model.source_id,
            posted_at=model.posted_at,
            posted_by_id=model.posted_by_id,
            reversal_of_id=model.reversal_of_id,
            reversed_by_id=model.reversed_by_id,
            created_by_id=model.created_by_id,
        )


# =============================================================================
# Periods
# =============================================================================


@dataclass(frozen=True)
class PeriodInfo:
    """Status of one accounting month."""

    tenant_id: UUID
    year: int
    month: int
    status: PeriodStatus
    closed_at: datetime | None = None
    closed_by_id: UUID | None = None
    reopened_at: datetime | None = None
    reopened_by_id: UUID | None = None
    reopen_reason: str | None = None
    locked_at: datetime | None = None
    id: UUID | None = None
    start_date: date = field(init=False)
    end_date: date = field(init=False)

    def __post_init__(self) -> None:
        start, end = month_bounds(self.year, self.month)
        object.__setattr__(self, "start_date", start)
        object.__setattr__(self, "end_date", end)

    @property
    def period_code(self) -> str:
        return period_code(self.year, self.month)

    @property
    def is_open(self) -> bool:
        return self.status == PeriodStatus.OPEN

    @property
    def accepts_postings(self) -> bool:
        return self.status == PeriodStatus.OPEN

    @classmethod
    def implicit_open(cls, tenant_id: UUID, year: int, month: int) -> PeriodInfo:
        """A month that has never been closed."""
        return cls(tenant_id=tenant_id, year=year, month=month, status=PeriodStatus.OPEN)

    @classmethod
    def from_model(cls, model: AccountingPeriodModel) -> PeriodInfo:
        return cls(
            id=model.id,
            tenant_id=model.tenant_id,
            year=model.year,
            month=model.month,
            status=PeriodStatus(model.status),
            closed_at=model.closed_at,
            closed_by_id=model.closed_by_id,
            reopened_at=model.reopened_at,
            reopened_by_id=model.reopened_by_id,
            reopen_reason=model.reopen_reason,
            locked_at=model.locked_at,
        )
