"""
AccountRegistry -- the tenant's chart of accounts.

Responsibility:
    Creates, edits, deactivates and (rarely) deletes accounts, and builds
    the account tree.  Never posts entries.

Architecture position:
    Kernel > Services -- imperative shell.  Reads balances through
    LedgerSelector when deactivating.

Invariants enforced:
    - (tenant, code) unique; the check runs before INSERT so the caller
      gets DuplicateCodeError rather than an IntegrityError.
    - normal_balance is derived from account_type and never taken as input.
    - The parent chain never loops back on itself.
    - Only header accounts have children, so a balance is never counted
      on both a postable parent and its child.
    - code / account_type / normal_balance freeze once posted lines
      reference the account.
    - An account with a nonzero balance is only deactivated when forced.
    - Header accounts take neither postings nor opening balances.
    - Referenced, parent or system accounts are deactivated, never deleted.

Failure modes:
    - DuplicateCodeError, InvalidParentError, AccountNotFoundError
    - ImmutableFieldError, AccountInUseError, AccountReferencedError
    - InvalidAccountDataError for malformed attributes
    - ChartAlreadyInitializedError when seeding a non-empty chart

Audit relevance:
    Every create, update, deactivate and delete is logged with the actor
    and the fields that changed.
"""

import re
from collections.abc import Iterable, Mapping
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.db.types import ZERO, to_decimal
from ledger_kernel.domain.balances import build_children_index
from ledger_kernel.domain.dtos import AccountInfo, AccountNode
from ledger_kernel.exceptions import (
    AccountInUseError,
    AccountNotFoundError,
    AccountReferencedError,
    ChartAlreadyInitializedError,
    DuplicateCodeError,
    ImmutableFieldError,
    InvalidAccountDataError,
    InvalidParentError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import Account, AccountType, normal_balance_for
from ledger_kernel.models.tax import TaxCode
from ledger_kernel.selectors.account_selector import AccountSelector
from ledger_kernel.selectors.ledger_selector import LedgerSelector
from ledger_kernel.services.base import BaseService

logger = get_logger("services.account_registry")

_CODE_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9.\-]{0,49}$")

UPDATABLE_FIELDS = frozenset({
    "code",
    "name",
    "description",
    "account_type",
    "normal_balance",
    "parent_id",
    "is_header",
    "is_active",
    "opening_balance",
    "opening_balance_date",
    "tax_code",
    "tags",
})


def _validate_code(code: str) -> str:
    if not isinstance(code, str) or not _CODE_PATTERN.match(code.strip()):
        raise InvalidAccountDataError("code", f"'{code}' is not an alphanumeric account code")
    return code.strip()


def _validate_name(name: str) -> str:
    if not isinstance(name, str) or not name.strip():
        raise InvalidAccountDataError("name", "name is required")
    return name.strip()


def _validate_type(account_type) -> AccountType:
    try:
        return AccountType(account_type)
    except ValueError:
        raise InvalidAccountDataError("account_type", f"unknown account type '{account_type}'") from None


def _validate_tax_code(tax_code) -> str | None:
    if tax_code is None:
        return None
    try:
        return TaxCode(tax_code).value
    except ValueError:
        raise InvalidAccountDataError("tax_code", f"unknown tax code '{tax_code}'") from None


def _validate_opening(amount) -> Decimal | None:
    if amount is None:
        return None
    try:
        return to_decimal(amount)
    except (TypeError, ArithmeticError):
        raise InvalidAccountDataError("opening_balance", f"'{amount}' is not a decimal amount") from None


class AccountRegistry(BaseService[Account]):
    """
    Chart of accounts for one tenant.

    Contract:
        Public methods return AccountInfo / AccountNode DTOs and flush
        within the caller's transaction.
    """

    def __init__(self, session: Session, tenant_id: UUID, base_currency: str = "MYR"):
        super().__init__(session)
        self.tenant_id = tenant_id
        self.base_currency = base_currency
        self._selector = AccountSelector(session, tenant_id)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _get_orm(self, account_id: UUID) -> Account:
        account = self.session.execute(
            select(Account).where(
                Account.tenant_id == self.tenant_id,
                Account.id == account_id,
            )
        ).scalar_one_or_none()
        if account is None:
            raise AccountNotFoundError(str(account_id))
        return account

    def _code_taken(self, code: str, exclude_id: UUID | None = None) -> bool:
        query = select(Account.id).where(
            Account.tenant_id == self.tenant_id,
            Account.code == code,
        )
        if exclude_id is not None:
            query = query.where(Account.id != exclude_id)
        return self.session.execute(query).first() is not None

    def _validate_parent(self, parent_id: UUID, account_id: UUID | None = None) -> None:
        """Parent must be a header in this tenant and not the account or a descendant."""
        chart = self._selector.chart()
        if parent_id not in chart:
            raise InvalidParentError(str(parent_id), "parent account does not exist")
        if not chart[parent_id].is_header:
            raise InvalidParentError(str(parent_id), "parent must be a header account")
        if account_id is None:
            return
        # Walk up from the proposed parent; meeting the account means a cycle
        current: UUID | None = parent_id
        seen: set[UUID] = set()
        while current is not None and current not in seen:
            if current == account_id:
                raise InvalidParentError(str(parent_id), "would create a cycle")
            seen.add(current)
            current = chart[current].parent_id if current in chart else None

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

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
        description: str | None = None,
        tax_code: str | None = None,
        tags: Iterable[str] | None = None,
        is_system: bool = False,
    ) -> AccountInfo:
        """
        Create an account.  Its normal balance follows from ``account_type``.

        Raises:
            DuplicateCodeError: Code already used by this tenant.
            InvalidParentError: Parent missing or not a header.
            InvalidAccountDataError: Malformed attribute, or an opening
                balance on a header account.
        """
        code = _validate_code(code)
        name = _validate_name(name)
        account_type = _validate_type(account_type)
        tax_code = _validate_tax_code(tax_code)
        opening_balance = _validate_opening(opening_balance)

        if is_header and opening_balance:
            raise InvalidAccountDataError("opening_balance", "header accounts cannot carry an opening balance")
        if self._code_taken(code):
            raise DuplicateCodeError(code)
        if parent_id is not None:
            self._validate_parent(parent_id)

        account = Account(
            tenant_id=self.tenant_id,
            code=code,
            name=name,
            description=description,
            account_type=account_type.value,
            normal_balance=normal_balance_for(account_type).value,
            parent_id=parent_id,
            is_header=is_header,
            is_active=True,
            is_system=is_system,
            opening_balance=opening_balance,
            opening_balance_date=opening_balance_date,
            tax_code=tax_code,
            tags=list(tags) if tags else None,
            created_by_id=actor_id,
        )
        self.session.add(account)
        self.session.flush()

        logger.info(
            "account_created",
            extra={
                "account_id": str(account.id),
                "account_code": code,
                "account_type": account_type.value,
                "is_header": is_header,
                "actor_id": str(actor_id),
            },
        )
        return AccountInfo.from_model(account)

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    def update_account(
        self,
        account_id: UUID,
        patch: Mapping[str, Any],
        actor_id: UUID,
        force: bool = False,
    ) -> AccountInfo:
        """
        Apply ``patch`` (field -> new value) to an account.

        Args:
            account_id: Account to change.
            patch: Any of UPDATABLE_FIELDS.
            actor_id: Who is changing it.
            force: Allow deactivation while the balance is nonzero.

        Raises:
            ImmutableFieldError: code / account_type / normal_balance changed
                after posted lines reference the account.
            AccountInUseError: Deactivation with a nonzero balance, unforced.
            DuplicateCodeError, InvalidParentError, InvalidAccountDataError
        """
        unknown = set(patch) - UPDATABLE_FIELDS
        if unknown:
            raise InvalidAccountDataError(sorted(unknown)[0], "field cannot be updated")

        account = self._get_orm(account_id)
        changes: dict[str, Any] = {}

        def _changed(field: str, new_value) -> bool:
            return field in patch and new_value != getattr(account, field)

        posted = None

        def _has_posted() -> bool:
            nonlocal posted
            if posted is None:
                posted = self._selector.has_posted_lines(account_id)
            return posted

        if "code" in patch:
            new_code = _validate_code(patch["code"])
            if new_code != account.code:
                if _has_posted():
                    raise ImmutableFieldError(str(account_id), "code")
                if self._code_taken(new_code, exclude_id=account_id):
                    raise DuplicateCodeError(new_code)
                changes["code"] = new_code

        new_type = AccountType(account.account_type)
        if "account_type" in patch:
            new_type = _validate_type(patch["account_type"])
            if new_type.value != account.account_type:
                if _has_posted():
                    raise ImmutableFieldError(str(account_id), "account_type")
                changes["account_type"] = new_type.value
                changes["normal_balance"] = normal_balance_for(new_type).value

        if "normal_balance" in patch:
            requested = patch["normal_balance"]
            requested = getattr(requested, "value", requested)
            if requested != normal_balance_for(new_type).value:
                if _has_posted():
                    raise ImmutableFieldError(str(account_id), "normal_balance")
                raise InvalidAccountDataError(
                    "normal_balance", "normal balance is derived from the account type"
                )

        if "name" in patch:
            changes["name"] = _validate_name(patch["name"])
        if "description" in patch:
            changes["description"] = patch["description"]
        if "tax_code" in patch:
            changes["tax_code"] = _validate_tax_code(patch["tax_code"])
        if "tags" in patch:
            changes["tags"] = list(patch["tags"]) if patch["tags"] else None

        if _changed("parent_id", patch.get("parent_id")):
            parent_id = patch["parent_id"]
            if parent_id is not None:
                self._validate_parent(parent_id, account_id)
            changes["parent_id"] = parent_id

        is_header = bool(patch.get("is_header", account.is_header))
        opening_balance = (
            _validate_opening(patch["opening_balance"])
            if "opening_balance" in patch
            else account.opening_balance
        )
        if is_header and opening_balance:
            raise InvalidAccountDataError("opening_balance", "header accounts cannot carry an opening balance")
        if is_header and not account.is_header and self._selector.has_lines(account_id):
            raise InvalidAccountDataError("is_header", "account already has journal lines")
        if account.is_header and not is_header and self._selector.child_ids(account_id):
            raise InvalidAccountDataError("is_header", "account still has child accounts")
        if is_header != account.is_header:
            changes["is_header"] = is_header
        if "opening_balance" in patch:
            changes["opening_balance"] = opening_balance
        if "opening_balance_date" in patch:
            changes["opening_balance_date"] = patch["opening_balance_date"]

        if "is_active" in patch and bool(patch["is_active"]) != account.is_active:
            if not patch["is_active"]:
                self._check_deactivation(account, force)
            changes["is_active"] = bool(patch["is_active"])

        for field, value in changes.items():
            setattr(account, field, value)
        account.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "account_updated",
            extra={
                "account_id": str(account_id),
                "account_code": account.code,
                "fields": sorted(changes),
                "forced": force,
                "actor_id": str(actor_id),
            },
        )
        return AccountInfo.from_model(account)

    def _check_deactivation(self, account: Account, force: bool) -> None:
        ledger = LedgerSelector(self.session, self.tenant_id, self.base_currency)
        for currency in ledger.booked_currencies():
            balance = ledger.account_balance(account.id, date.max, currency)
            if balance == ZERO:
                continue
            if not force:
                raise AccountInUseError(str(account.id), balance)
            logger.warning(
                "account_force_deactivated",
                extra={
                    "account_id": str(account.id),
                    "account_code": account.code,
                    "balance": str(balance),
                    "currency": currency,
                },
            )

    def deactivate_account(self, account_id: UUID, actor_id: UUID, force: bool = False) -> AccountInfo:
        return self.update_account(account_id, {"is_active": False}, actor_id, force=force)

    def reactivate_account(self, account_id: UUID, actor_id: UUID) -> AccountInfo:
        return self.update_account(account_id, {"is_active": True}, actor_id)

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    def delete_account(self, account_id: UUID, actor_id: UUID) -> None:
        """
        Hard-delete an unused account.

        Raises:
            AccountReferencedError: System account, has children, or any
                journal line references it.  Deactivate it instead.
        """
        account = self._get_orm(account_id)
        if account.is_system:
            raise AccountReferencedError(str(account_id), "system accounts cannot be deleted")
        if self._selector.child_ids(account_id):
            raise AccountReferencedError(str(account_id), "account has child accounts")
        if self._selector.has_lines(account_id):
            raise AccountReferencedError(str(account_id), "referenced by journal lines")

        code = account.code
        self.session.delete(account)
        self.session.flush()

        logger.info(
            "account_deleted",
            extra={"account_id": str(account_id), "account_code": code, "actor_id": str(actor_id)},
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_account(self, account_id: UUID) -> AccountInfo:
        account = self._selector.get(account_id)
        if account is None:
            raise AccountNotFoundError(str(account_id))
        return account

    def get_account_by_code(self, code: str) -> AccountInfo:
        account = self._selector.get_by_code(code)
        if account is None:
            raise AccountNotFoundError(code)
        return account

    def list_accounts(
        self,
        account_type: AccountType | str | None = None,
        active_only: bool = False,
    ) -> list[AccountInfo]:
        return self._selector.list_accounts(account_type, active_only)

    def account_tree(self) -> list[AccountNode]:
        """Root nodes (ordered by code) with nested children."""
        chart = self._selector.chart()
        children_index = build_children_index(chart.values())

        def _node(account_id: UUID) -> AccountNode:
            return AccountNode(
                account=chart[account_id],
                children=tuple(_node(child) for child in children_index.get(account_id, [])),
            )

        roots = list(children_index.get(None, []))
        # Orphans whose parent is outside the tenant still show up as roots
        roots.extend(
            a.id for a in sorted(chart.values(), key=lambda a: a.code)
            if a.parent_id is not None and a.parent_id not in chart
        )
        return [_node(account_id) for account_id in roots]

    # ------------------------------------------------------------------
    # Seeding
    # ------------------------------------------------------------------

    def initialize_default_chart(self, definitions: Iterable[Any], actor_id: UUID) -> list[AccountInfo]:
        """
        Seed an empty chart from account definitions.

        Each definition exposes ``code``, ``name``, ``account_type`` and
        optionally ``parent_code``, ``is_header``, ``tags``, ``tax_code``,
        ``description``.  Parents must come before their children.

        Raises:
            ChartAlreadyInitializedError: The tenant already has accounts.
        """
        existing = self._selector.count()
        if existing:
            raise ChartAlreadyInitializedError(str(self.tenant_id), existing)

        created: dict[str, AccountInfo] = {}
        for definition in definitions:
            parent_code = getattr(definition, "parent_code", None)
            parent_id = None
            if parent_code:
                if parent_code not in created:
                    raise InvalidParentError(parent_code, "parent must be defined before its children")
                parent_id = created[parent_code].id
            created[definition.code] = self.create_account(
                code=definition.code,
                name=definition.name,
                account_type=definition.account_type,
                actor_id=actor_id,
                parent_id=parent_id,
                is_header=getattr(definition, "is_header", False),
                description=getattr(definition, "description", None),
                tax_code=getattr(definition, "tax_code", None),
                tags=getattr(definition, "tags", None),
                is_system=True,
            )

        logger.info(
            "chart_initialized",
            extra={"account_count": len(created), "actor_id": str(actor_id)},
        )
        return list(created.values())
