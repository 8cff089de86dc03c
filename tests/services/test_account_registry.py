"""
Tests for AccountRegistry.

Covers:
- Account creation and derived normal balance
- Code uniqueness and format
- Parent validation and cycle prevention
- Structural fields frozen after posting
- Deactivation with and without balance
- Hard delete guards
- Account tree
- Default chart seeding
"""

from datetime import date
from decimal import Decimal

import pytest

from ledger_config.schema import ChartAccountDef
from ledger_kernel.domain.dtos import LineInput
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
from ledger_kernel.models.account import AccountType, NormalBalance


class TestCreateAccount:

    def test_normal_balance_derived_from_type(self, registry, test_actor_id):
        revenue = registry.create_account("4100", "Sales", "revenue", test_actor_id)
        cash = registry.create_account("1010", "Cash", AccountType.ASSET, test_actor_id)

        assert revenue.normal_balance == NormalBalance.CREDIT
        assert cash.normal_balance == NormalBalance.DEBIT
        assert cash.is_active
        assert not cash.is_header

    def test_code_and_name_trimmed(self, registry, test_actor_id):
        account = registry.create_account(" 1010 ", "  Cash ", "asset", test_actor_id)
        assert account.code == "1010"
        assert account.name == "Cash"

    def test_duplicate_code_rejected(self, registry, test_actor_id):
        registry.create_account("1010", "Cash", "asset", test_actor_id)
        with pytest.raises(DuplicateCodeError) as exc_info:
            registry.create_account("1010", "Petty Cash", "asset", test_actor_id)
        assert exc_info.value.account_code == "1010"

    def test_same_code_in_another_tenant(self, session, registry, test_actor_id):
        from uuid import uuid4

        from ledger_kernel.services.account_registry import AccountRegistry

        registry.create_account("1010", "Cash", "asset", test_actor_id)
        other = AccountRegistry(session, uuid4()).create_account("1010", "Cash", "asset", test_actor_id)
        assert other.code == "1010"

    @pytest.mark.parametrize("code", ["", "  ", "10 10", "-100", "a" * 51, "10/10"])
    def test_malformed_code_rejected(self, registry, test_actor_id, code):
        with pytest.raises(InvalidAccountDataError) as exc_info:
            registry.create_account(code, "Bad", "asset", test_actor_id)
        assert exc_info.value.field == "code"

    def test_dotted_code_accepted(self, registry, test_actor_id):
        assert registry.create_account("1010.01", "Cash - MYR", "asset", test_actor_id).code == "1010.01"

    def test_unknown_type_rejected(self, registry, test_actor_id):
        with pytest.raises(InvalidAccountDataError):
            registry.create_account("1010", "Cash", "contra", test_actor_id)

    def test_unknown_tax_code_rejected(self, registry, test_actor_id):
        with pytest.raises(InvalidAccountDataError):
            registry.create_account("4100", "Sales", "revenue", test_actor_id, tax_code="vat")

    def test_missing_parent_rejected(self, registry, test_actor_id):
        from uuid import uuid4

        with pytest.raises(InvalidParentError):
            registry.create_account("1010", "Cash", "asset", test_actor_id, parent_id=uuid4())

    def test_postable_parent_rejected(self, registry, test_actor_id):
        cash = registry.create_account("1010", "Cash", "asset", test_actor_id)
        with pytest.raises(InvalidParentError) as exc_info:
            registry.create_account("1011", "Petty cash", "asset", test_actor_id, parent_id=cash.id)
        assert exc_info.value.reason == "parent must be a header account"

    def test_header_cannot_carry_opening_balance(self, registry, test_actor_id):
        with pytest.raises(InvalidAccountDataError):
            registry.create_account(
                "1000", "Assets", "asset", test_actor_id,
                is_header=True, opening_balance=Decimal("10"),
            )

    def test_opening_balance_stored(self, registry, test_actor_id):
        account = registry.create_account(
            "1010", "Cash", "asset", test_actor_id,
            opening_balance=Decimal("500.00"), opening_balance_date=date(2024, 1, 1),
        )
        assert account.opening_balance == Decimal("500.00")
        assert account.opening_balance_date == date(2024, 1, 1)

    def test_creation_logged(self, registry, test_actor_id, captured_logs):
        registry.create_account("1010", "Cash", "asset", test_actor_id)

        records = [r for r in captured_logs() if r["message"] == "account_created"]
        assert records
        assert records[0]["account_code"] == "1010"
        assert records[0]["actor_id"] == str(test_actor_id)


class TestUpdateAccount:

    def test_rename(self, registry, test_actor_id):
        account = registry.create_account("1010", "Cash", "asset", test_actor_id)
        updated = registry.update_account(account.id, {"name": "Cash on Hand"}, test_actor_id)
        assert updated.name == "Cash on Hand"

    def test_change_type_rederives_normal_balance(self, registry, test_actor_id):
        account = registry.create_account("2100", "Deposits", "asset", test_actor_id)
        updated = registry.update_account(account.id, {"account_type": "liability"}, test_actor_id)

        assert updated.account_type == AccountType.LIABILITY
        assert updated.normal_balance == NormalBalance.CREDIT

    def test_normal_balance_is_not_settable(self, registry, test_actor_id):
        account = registry.create_account("1010", "Cash", "asset", test_actor_id)
        with pytest.raises(InvalidAccountDataError):
            registry.update_account(account.id, {"normal_balance": "credit"}, test_actor_id)

    def test_unknown_field_rejected(self, registry, test_actor_id):
        account = registry.create_account("1010", "Cash", "asset", test_actor_id)
        with pytest.raises(InvalidAccountDataError):
            registry.update_account(account.id, {"tenant_id": "x"}, test_actor_id)

    def test_unknown_account(self, registry, test_actor_id):
        from uuid import uuid4

        with pytest.raises(AccountNotFoundError):
            registry.update_account(uuid4(), {"name": "x"}, test_actor_id)

    def test_code_and_type_frozen_after_posting(
        self, registry, journal_service, simple_accounts, test_actor_id,
    ):
        draft = journal_service.create_draft(
            date(2024, 1, 5), "Sale",
            [
                LineInput.debit_line(simple_accounts["cash"].id, Decimal("10")),
                LineInput.credit_line(simple_accounts["revenue"].id, Decimal("10")),
            ],
            test_actor_id,
        )
        journal_service.post(draft.id, test_actor_id)

        with pytest.raises(ImmutableFieldError) as exc_info:
            registry.update_account(simple_accounts["cash"].id, {"code": "1011"}, test_actor_id)
        assert exc_info.value.field == "code"
        with pytest.raises(ImmutableFieldError):
            registry.update_account(
                simple_accounts["revenue"].id, {"account_type": "liability"}, test_actor_id,
            )

    def test_reparent_into_own_subtree_rejected(self, registry, test_actor_id):
        root = registry.create_account("1000", "Assets", "asset", test_actor_id, is_header=True)
        child = registry.create_account(
            "1001", "Current", "asset", test_actor_id, parent_id=root.id, is_header=True,
        )
        with pytest.raises(InvalidParentError) as exc_info:
            registry.update_account(root.id, {"parent_id": child.id}, test_actor_id)
        assert "cycle" in exc_info.value.reason

    def test_reparent_under_postable_rejected(self, registry, simple_accounts, test_actor_id):
        with pytest.raises(InvalidParentError):
            registry.update_account(
                simple_accounts["receivable"].id, {"parent_id": simple_accounts["cash"].id}, test_actor_id,
            )

    def test_header_with_children_stays_header(self, registry, test_actor_id):
        assets = registry.create_account("1000", "Assets", "asset", test_actor_id, is_header=True)
        registry.create_account("1010", "Cash", "asset", test_actor_id, parent_id=assets.id)
        with pytest.raises(InvalidAccountDataError) as exc_info:
            registry.update_account(assets.id, {"is_header": False}, test_actor_id)
        assert exc_info.value.field == "is_header"

    def test_self_parent_rejected(self, registry, test_actor_id):
        account = registry.create_account("1000", "Assets", "asset", test_actor_id, is_header=True)
        with pytest.raises(InvalidParentError):
            registry.update_account(account.id, {"parent_id": account.id}, test_actor_id)

    def test_cannot_turn_used_account_into_header(
        self, registry, journal_service, simple_accounts, test_actor_id,
    ):
        journal_service.create_draft(
            date(2024, 1, 5), "Draft",
            [
                LineInput.debit_line(simple_accounts["cash"].id, Decimal("10")),
                LineInput.credit_line(simple_accounts["revenue"].id, Decimal("10")),
            ],
            test_actor_id,
        )
        with pytest.raises(InvalidAccountDataError):
            registry.update_account(simple_accounts["cash"].id, {"is_header": True}, test_actor_id)


class TestDeactivation:

    def test_deactivate_zero_balance(self, registry, simple_accounts, test_actor_id):
        info = registry.deactivate_account(simple_accounts["expense"].id, test_actor_id)
        assert not info.is_active

    def test_deactivate_with_balance_requires_force(
        self, registry, journal_service, simple_accounts, test_actor_id, captured_logs,
    ):
        draft = journal_service.create_draft(
            date(2024, 1, 5), "Sale",
            [
                LineInput.debit_line(simple_accounts["cash"].id, Decimal("10")),
                LineInput.credit_line(simple_accounts["revenue"].id, Decimal("10")),
            ],
            test_actor_id,
        )
        journal_service.post(draft.id, test_actor_id)

        with pytest.raises(AccountInUseError) as exc_info:
            registry.deactivate_account(simple_accounts["cash"].id, test_actor_id)
        assert exc_info.value.balance == Decimal("10")

        info = registry.deactivate_account(simple_accounts["cash"].id, test_actor_id, force=True)
        assert not info.is_active
        assert any(r["message"] == "account_force_deactivated" for r in captured_logs())

    def test_foreign_currency_balance_blocks_deactivation(
        self, registry, journal_service, simple_accounts, test_actor_id,
    ):
        draft = journal_service.create_draft(
            date(2024, 1, 5), "Yen sale",
            [
                LineInput.debit_line(simple_accounts["cash"].id, Decimal("500")),
                LineInput.credit_line(simple_accounts["revenue"].id, Decimal("500")),
            ],
            test_actor_id,
            currency="JPY",
        )
        journal_service.post(draft.id, test_actor_id)

        with pytest.raises(AccountInUseError) as exc_info:
            registry.deactivate_account(simple_accounts["cash"].id, test_actor_id)
        assert exc_info.value.balance == Decimal("500")

    def test_reactivate(self, registry, simple_accounts, test_actor_id):
        registry.deactivate_account(simple_accounts["expense"].id, test_actor_id)
        assert registry.reactivate_account(simple_accounts["expense"].id, test_actor_id).is_active

    def test_active_only_listing(self, registry, simple_accounts, test_actor_id):
        registry.deactivate_account(simple_accounts["expense"].id, test_actor_id)

        codes = [a.code for a in registry.list_accounts(active_only=True)]
        assert "6100" not in codes
        assert len(registry.list_accounts()) == len(simple_accounts)


class TestDeleteAccount:

    def test_unused_account_deleted(self, registry, simple_accounts, test_actor_id):
        registry.delete_account(simple_accounts["expense"].id, test_actor_id)
        with pytest.raises(AccountNotFoundError):
            registry.get_account(simple_accounts["expense"].id)

    def test_referenced_account_not_deleted(
        self, registry, journal_service, simple_accounts, test_actor_id,
    ):
        journal_service.create_draft(
            date(2024, 1, 5), "Draft",
            [
                LineInput.debit_line(simple_accounts["cash"].id, Decimal("10")),
                LineInput.credit_line(simple_accounts["revenue"].id, Decimal("10")),
            ],
            test_actor_id,
        )
        with pytest.raises(AccountReferencedError) as exc_info:
            registry.delete_account(simple_accounts["cash"].id, test_actor_id)
        assert exc_info.value.code == "ACCOUNT_REFERENCED"

    def test_parent_not_deleted(self, registry, test_actor_id):
        root = registry.create_account("1000", "Assets", "asset", test_actor_id, is_header=True)
        registry.create_account("1010", "Cash", "asset", test_actor_id, parent_id=root.id)
        with pytest.raises(AccountReferencedError):
            registry.delete_account(root.id, test_actor_id)

    def test_system_account_not_deleted(self, ledger, chart, test_actor_id):
        with pytest.raises(AccountReferencedError):
            ledger.delete_account(chart["6100"].id, test_actor_id)


class TestQueries:

    def test_get_by_code(self, registry, simple_accounts):
        assert registry.get_account_by_code("4100").id == simple_accounts["revenue"].id

    def test_get_by_unknown_code(self, registry):
        with pytest.raises(AccountNotFoundError):
            registry.get_account_by_code("9999")

    def test_list_by_type(self, registry, simple_accounts):
        assets = registry.list_accounts(account_type="asset")
        assert [a.code for a in assets] == ["1010", "1100"]

    def test_account_tree(self, registry, test_actor_id):
        assets = registry.create_account("1000", "Assets", "asset", test_actor_id, is_header=True)
        registry.create_account("1020", "Bank", "asset", test_actor_id, parent_id=assets.id)
        registry.create_account("1010", "Cash", "asset", test_actor_id, parent_id=assets.id)
        registry.create_account("3100", "Capital", "equity", test_actor_id)

        tree = registry.account_tree()

        assert [node.account.code for node in tree] == ["1000", "3100"]
        assert [child.account.code for child in tree[0].children] == ["1010", "1020"]
        assert tree[0].depth == 1
        assert tree[1].children == ()


class TestInitializeDefaultChart:

    def test_seeds_definitions_in_order(self, registry, test_actor_id):
        definitions = [
            ChartAccountDef("1000", "Assets", "asset", is_header=True),
            ChartAccountDef("1010", "Cash", "asset", parent_code="1000"),
            ChartAccountDef("5100", "Purchases", "expense", tags=("cogs",), tax_code="sr"),
        ]
        created = registry.initialize_default_chart(definitions, test_actor_id)

        by_code = {a.code: a for a in created}
        assert by_code["1010"].parent_id == by_code["1000"].id
        assert by_code["5100"].has_tag("cogs")
        assert by_code["5100"].tax_code == "sr"
        assert all(a.is_system for a in created)

    def test_refuses_non_empty_chart(self, registry, simple_accounts, test_actor_id):
        with pytest.raises(ChartAlreadyInitializedError) as exc_info:
            registry.initialize_default_chart(
                [ChartAccountDef("9000", "X", "expense")], test_actor_id,
            )
        assert exc_info.value.account_count == len(simple_accounts)

    def test_child_before_parent_rejected(self, registry, test_actor_id):
        with pytest.raises(InvalidParentError):
            registry.initialize_default_chart(
                [ChartAccountDef("1010", "Cash", "asset", parent_code="1000")],
                test_actor_id,
            )
