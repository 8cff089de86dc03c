"""
Module: ledger_kernel.selectors.account_selector
Responsibility: Read-only chart of accounts queries for one tenant.
Architecture position: Kernel > Selectors.
"""

from uuid import UUID

from sqlalchemy import exists, func, select
from sqlalchemy.orm import Session

from ledger_kernel.domain.dtos import AccountInfo
from ledger_kernel.models.account import Account, AccountType
from ledger_kernel.models.journal import JournalEntry, JournalEntryStatus, JournalLine
from ledger_kernel.selectors.base import BaseSelector

_BOOKED_STATUSES = (JournalEntryStatus.POSTED.value, JournalEntryStatus.REVERSED.value)


class AccountSelector(BaseSelector[Account]):
    """Chart of accounts lookups returning AccountInfo DTOs."""

    def __init__(self, session: Session, tenant_id: UUID):
        super().__init__(session)
        self.tenant_id = tenant_id

    def _tenant_query(self):
        return select(Account).where(Account.tenant_id == self.tenant_id)

    def get(self, account_id: UUID) -> AccountInfo | None:
        account = self.session.execute(
            self._tenant_query().where(Account.id == account_id)
        ).scalar_one_or_none()
        return AccountInfo.from_model(account) if account else None

    def get_by_code(self, code: str) -> AccountInfo | None:
        account = self.session.execute(
            self._tenant_query().where(Account.code == code)
        ).scalar_one_or_none()
        return AccountInfo.from_model(account) if account else None

    def list_accounts(
        self,
        account_type: AccountType | str | None = None,
        active_only: bool = False,
    ) -> list[AccountInfo]:
        """Accounts ordered by code, optionally filtered."""
        query = self._tenant_query()
        if account_type is not None:
            query = query.where(Account.account_type == AccountType(account_type).value)
        if active_only:
            query = query.where(Account.is_active.is_(True))
        accounts = self.session.execute(query.order_by(Account.code)).scalars().all()
        return [AccountInfo.from_model(a) for a in accounts]

    def chart(self) -> dict[UUID, AccountInfo]:
        """The whole chart keyed by id (the arena balances are computed over)."""
        return {account.id: account for account in self.list_accounts()}

    def count(self) -> int:
        return self.session.execute(
            select(func.count(Account.id)).where(Account.tenant_id == self.tenant_id)
        ).scalar_one()

    def child_ids(self, account_id: UUID) -> list[UUID]:
        return list(
            self.session.execute(
                select(Account.id).where(
                    Account.tenant_id == self.tenant_id,
                    Account.parent_id == account_id,
                )
            ).scalars()
        )

    def has_lines(self, account_id: UUID) -> bool:
        """True if any journal line (draft included) references the account."""
        return bool(
            self.session.execute(
                select(exists().where(JournalLine.account_id == account_id))
            ).scalar()
        )

    def has_posted_lines(self, account_id: UUID) -> bool:
        """True if a posted or reversed entry references the account."""
        return bool(
            self.session.execute(
                select(
                    exists()
                    .where(JournalLine.account_id == account_id)
                    .where(JournalLine.journal_entry_id == JournalEntry.id)
                    .where(JournalEntry.status.in_(_BOOKED_STATUSES))
                )
            ).scalar()
        )
