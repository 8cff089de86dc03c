"""
Module: ledger_kernel.models.account
Responsibility: ORM persistence for the chart of accounts, the target of
    every journal line.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - (tenant_id, code) is unique.
    - normal_balance is derived from account_type (asset/expense -> debit,
      liability/equity/revenue -> credit) and never accepted as input.
    - The tree is held as parent pointers only.  Children are found by
      indexing parent_id, never through a stored child list.
    - code, account_type and normal_balance freeze once a posted line
      references the account (db/immutability.py).

Failure modes:
    - IntegrityError on a duplicate (tenant_id, code) that slipped past the
      registry's own check.

Audit relevance:
    Changing the type of a referenced account would silently re-classify
    historical postings, so those fields are locked once used.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import TrackedBase, UUIDString

if TYPE_CHECKING:
    from ledger_kernel.models.journal import JournalLine


class AccountType(str, Enum):
    """Account classification."""

    ASSET = "asset"
    LIABILITY = "liability"
    EQUITY = "equity"
    REVENUE = "revenue"
    EXPENSE = "expense"


class NormalBalance(str, Enum):
    """Side on which an account's balance is positive."""

    DEBIT = "debit"
    CREDIT = "credit"


class AccountTag(str, Enum):
    """Tags that refine statement placement."""

    COGS = "cogs"  # Cost of goods sold
    OTHER_EXPENSE = "other_expense"  # Below operating profit
    NON_CURRENT = "non_current"  # Long-term asset / liability
    CURRENT = "current"
    RETAINED_EARNINGS = "retained_earnings"
    TAX_INPUT = "tax_input"
    TAX_OUTPUT = "tax_output"


_NORMAL_BALANCE_BY_TYPE: dict[AccountType, NormalBalance] = {
    AccountType.ASSET: NormalBalance.DEBIT,
    AccountType.EXPENSE: NormalBalance.DEBIT,
    AccountType.LIABILITY: NormalBalance.CREDIT,
    AccountType.EQUITY: NormalBalance.CREDIT,
    AccountType.REVENUE: NormalBalance.CREDIT,
}


def normal_balance_for(account_type: AccountType | str) -> NormalBalance:
    """Normal balance side implied by an account type."""
    return _NORMAL_BALANCE_BY_TYPE[AccountType(account_type)]


class Account(TrackedBase):
    """
    A node in a tenant's chart of accounts.

    Contract:
        Header accounts aggregate their descendants and never receive
        postings.  Inactive accounts keep their history but reject new lines.
        Referenced accounts are deactivated, never deleted.
    """

    __tablename__ = "accounts"

    __table_args__ = (
        UniqueConstraint("tenant_id", "code", name="uq_account_tenant_code"),
        Index("idx_account_tenant_type", "tenant_id", "account_type"),
        Index("idx_account_parent", "parent_id"),
    )

    tenant_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    code: Mapped[str] = mapped_column(String(50), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    account_type: Mapped[AccountType] = mapped_column(String(20), nullable=False)

    normal_balance: Mapped[NormalBalance] = mapped_column(String(10), nullable=False)

    parent_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("accounts.id"),
        nullable=True,
    )

    is_header: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Seeded by the default chart; cannot be deleted
    is_system: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    opening_balance: Mapped[Decimal | None] = mapped_column(
        Numeric(38, 9),
        nullable=True,
    )

    # Null means "since inception"
    opening_balance_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    tax_code: Mapped[str | None] = mapped_column(String(10), nullable=True)

    tags: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)

    journal_lines: Mapped[list["JournalLine"]] = relationship(
        back_populates="account",
        lazy="dynamic",
    )

    def __repr__(self) -> str:
        return f"<Account {self.code}: {self.name}>"

    @property
    def is_debit_normal(self) -> bool:
        return self.normal_balance == NormalBalance.DEBIT

    @property
    def is_credit_normal(self) -> bool:
        return self.normal_balance == NormalBalance.CREDIT

    def has_tag(self, tag: AccountTag | str) -> bool:
        """True if ``tag`` is in this account's tags."""
        if not self.tags:
            return False
        tag_value = tag.value if isinstance(tag, AccountTag) else tag
        return tag_value in self.tags
