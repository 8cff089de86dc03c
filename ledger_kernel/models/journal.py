"""
Module: ledger_kernel.models.journal
Responsibility: ORM persistence for journal entries and their lines, the
    single source of financial truth.  Every balance, statement and tax
    summary is derived from these rows.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - (tenant_id, entry_number) and (tenant_id, seq) are unique.  Both are
      assigned at post time, so drafts carry neither.
    - A line stores a side and a strictly positive amount, so a line can
      never be debit and credit at once.
    - (journal_entry_id, line_seq) is unique; line_seq preserves input order.
    - Posted and reversed entries and their lines are frozen
      (db/immutability.py).

Failure modes:
    - ImmutabilityViolationError on UPDATE/DELETE of a non-draft entry or
      its lines.
    - IntegrityError on a duplicate entry number (sequence misuse).

Audit relevance:
    A reversal never edits the original's lines.  The original keeps its
    postings, gains reversed_by_id, and the mirror entry carries
    reversal_of_id, so both directions of the link survive.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    BigInteger,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TrackedBase, UUIDString

if TYPE_CHECKING:
    from ledger_kernel.models.account import Account


class JournalEntryStatus(str, Enum):
    """Lifecycle status of a journal entry.

    Transitions are one-way: DRAFT -> POSTED -> REVERSED.  See
    domain/lifecycle.py for the transition table.
    """

    DRAFT = "draft"
    POSTED = "posted"
    REVERSED = "reversed"


class LineSide(str, Enum):
    """Which side of the entry a line is on."""

    DEBIT = "debit"
    CREDIT = "credit"

    def opposite(self) -> "LineSide":
        return LineSide.CREDIT if self is LineSide.DEBIT else LineSide.DEBIT


class SourceType(str, Enum):
    """Kind of source document an entry was raised from."""

    MANUAL = "manual"
    INVOICE = "invoice"
    BILL = "bill"
    BANK_TRANSACTION = "bank_transaction"
    CREDIT_NOTE = "credit_note"
    DEBIT_NOTE = "debit_note"
    FIXED_ASSET_DEPRECIATION = "fixed_asset_depreciation"
    FIXED_ASSET_DISPOSAL = "fixed_asset_disposal"


class JournalEntry(TrackedBase):
    """
    Journal entry header, the atomic unit of double-entry bookkeeping.

    Contract:
        Drafts may be edited, unbalanced or deleted.  Posting re-checks the
        balance, assigns ``seq`` and ``entry_number`` and freezes the row.
        Reversal leaves the row untouched except for ``status`` and
        ``reversed_by_id``.
    """

    __tablename__ = "journal_entries"

    __table_args__ = (
        UniqueConstraint("tenant_id", "entry_number", name="uq_journal_tenant_number"),
        UniqueConstraint("tenant_id", "seq", name="uq_journal_tenant_seq"),
        Index("idx_journal_tenant_date", "tenant_id", "entry_date"),
        Index("idx_journal_tenant_status", "tenant_id", "status"),
        Index("idx_journal_source", "source_type", "source_id"),
    )

    tenant_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    # Human-readable number, e.g. JE-2024-00001.  Null while draft.
    entry_number: Mapped[str | None] = mapped_column(String(40), nullable=True)

    # Per-tenant posting sequence.  Null while draft.
    seq: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    entry_date: Mapped[date] = mapped_column(Date, nullable=False)

    description: Mapped[str] = mapped_column(Text, nullable=False)

    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)

    currency: Mapped[str] = mapped_column(String(3), nullable=False)

    source_type: Mapped[SourceType | None] = mapped_column(String(40), nullable=True)

    source_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    status: Mapped[JournalEntryStatus] = mapped_column(
        String(20),
        nullable=False,
        default=JournalEntryStatus.DRAFT,
    )

    posted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    posted_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    # Set on the mirror entry: the entry it cancels
    reversal_of_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("journal_entries.id"),
        nullable=True,
    )

    # Set on the original once reversed
    reversed_by_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("journal_entries.id"),
        nullable=True,
    )

    lines: Mapped[list["JournalLine"]] = relationship(
        back_populates="entry",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="JournalLine.line_seq",
    )

    reversal_of: Mapped["JournalEntry | None"] = relationship(
        remote_side="JournalEntry.id",
        foreign_keys=[reversal_of_id],
    )

    def __repr__(self) -> str:
        return f"<JournalEntry {self.entry_number or self.id} status={self.status}>"

    @property
    def is_posted(self) -> bool:
        return self.status == JournalEntryStatus.POSTED

    @property
    def is_draft(self) -> bool:
        return self.status == JournalEntryStatus.DRAFT

    @property
    def is_reversed(self) -> bool:
        return self.status == JournalEntryStatus.REVERSED

    @property
    def total_debits(self) -> Decimal:
        return sum(
            (line.amount for line in self.lines if line.side == LineSide.DEBIT),
            Decimal("0"),
        )

    @property
    def total_credits(self) -> Decimal:
        return sum(
            (line.amount for line in self.lines if line.side == LineSide.CREDIT),
            Decimal("0"),
        )


class JournalLine(TrackedBase):
    """
    One side of a journal entry.

    Contract:
        ``amount`` is strictly positive and ``side`` gives its direction.
        Lines of a posted or reversed entry are immutable.
    """

    __tablename__ = "journal_lines"

    __table_args__ = (
        UniqueConstraint("journal_entry_id", "line_seq", name="uq_line_entry_seq"),
        Index("idx_line_account", "account_id"),
        Index("idx_line_tax_code", "tax_code"),
    )

    journal_entry_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("journal_entries.id"),
        nullable=False,
    )

    account_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=False,
    )

    side: Mapped[LineSide] = mapped_column(String(10), nullable=False)

    amount: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    tax_code: Mapped[str | None] = mapped_column(String(10), nullable=True)

    tax_amount: Mapped[Decimal | None] = mapped_column(Numeric(38, 9), nullable=True)

    description: Mapped[str | None] = mapped_column(String(500), nullable=True)

    line_seq: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    entry: Mapped["JournalEntry"] = relationship(back_populates="lines")

    account: Mapped["Account"] = relationship(back_populates="journal_lines")

    def __repr__(self) -> str:
        return f"<JournalLine {self.side} {self.amount}>"

    @property
    def is_debit(self) -> bool:
        return self.side == LineSide.DEBIT

    @property
    def is_credit(self) -> bool:
        return self.side == LineSide.CREDIT

    @property
    def debit_amount(self) -> Decimal:
        return self.amount if self.is_debit else Decimal("0")

    @property
    def credit_amount(self) -> Decimal:
        return self.amount if self.is_credit else Decimal("0")

    @property
    def signed_amount(self) -> Decimal:
        """Debits positive, credits negative."""
        return self.amount if self.is_debit else -self.amount
