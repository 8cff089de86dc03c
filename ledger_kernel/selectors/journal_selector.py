"""
Module: ledger_kernel.selectors.journal_selector
Responsibility: Read-only journal entry queries for one tenant.
Architecture position: Kernel > Selectors.
"""

from datetime import date
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ledger_kernel.domain.dtos import JournalEntryRecord
from ledger_kernel.models.journal import JournalEntry, JournalEntryStatus, SourceType
from ledger_kernel.selectors.base import BaseSelector


class JournalSelector(BaseSelector[JournalEntry]):
    """Entry lookups returning JournalEntryRecord DTOs."""

    def __init__(self, session: Session, tenant_id: UUID):
        super().__init__(session)
        self.tenant_id = tenant_id

    def get_entry(self, entry_id: UUID) -> JournalEntryRecord | None:
        entry = self.session.execute(
            select(JournalEntry).where(
                JournalEntry.tenant_id == self.tenant_id,
                JournalEntry.id == entry_id,
            )
        ).scalar_one_or_none()
        return JournalEntryRecord.from_model(entry) if entry else None

    def get_by_number(self, entry_number: str) -> JournalEntryRecord | None:
        entry = self.session.execute(
            select(JournalEntry).where(
                JournalEntry.tenant_id == self.tenant_id,
                JournalEntry.entry_number == entry_number,
            )
        ).scalar_one_or_none()
        return JournalEntryRecord.from_model(entry) if entry else None

    def list_entries(
        self,
        status: JournalEntryStatus | str | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
        source_type: SourceType | str | None = None,
        source_id: str | None = None,
    ) -> list[JournalEntryRecord]:
        """
        Entries ordered by date then posting sequence.

        Drafts (no sequence yet) sort after posted entries of the same day.
        """
        query = select(JournalEntry).where(JournalEntry.tenant_id == self.tenant_id)
        if status is not None:
            query = query.where(JournalEntry.status == JournalEntryStatus(status).value)
        if start_date is not None:
            query = query.where(JournalEntry.entry_date >= start_date)
        if end_date is not None:
            query = query.where(JournalEntry.entry_date <= end_date)
        if source_type is not None:
            query = query.where(JournalEntry.source_type == SourceType(source_type).value)
        if source_id is not None:
            query = query.where(JournalEntry.source_id == source_id)

        query = query.order_by(
            JournalEntry.entry_date,
            JournalEntry.seq.is_(None),
            JournalEntry.seq,
            JournalEntry.created_at,
        )
        entries = self.session.execute(query).scalars().all()
        return [JournalEntryRecord.from_model(e) for e in entries]

    def count_drafts_between(self, start_date: date, end_date: date) -> int:
        return self.session.execute(
            select(func.count(JournalEntry.id)).where(
                JournalEntry.tenant_id == self.tenant_id,
                JournalEntry.status == JournalEntryStatus.DRAFT.value,
                JournalEntry.entry_date >= start_date,
                JournalEntry.entry_date <= end_date,
            )
        ).scalar_one()
