"""
Balance arithmetic -- pure functions over account snapshots and line sums.

Responsibility:
    Turns per-account debit/credit sums into normal-side balances, folds in
    opening balances and rolls leaf balances up into header accounts.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  LedgerSelector feeds it query
    results; the reporting module consumes its output.

Invariants enforced:
    - The chart is an arena keyed by id with parent pointers only.  The
      children index is rebuilt on every call from those pointers.
    - A header's balance is the sum of its descendants' balances, computed
      bottom-up on each query and never stored.
    - Debit-normal accounts: debits positive.  Credit-normal: credits
      positive.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Mapping
from datetime import date
from decimal import Decimal
from uuid import UUID

from ledger_kernel.db.types import ZERO
from ledger_kernel.domain.dtos import AccountInfo
from ledger_kernel.models.account import NormalBalance


def orient(raw: Decimal, normal_balance: NormalBalance | str) -> Decimal:
    """Convert a debit-minus-credit amount to the account's normal side."""
    if NormalBalance(normal_balance) == NormalBalance.DEBIT:
        return raw
    return -raw


def opening_raw(account: AccountInfo, as_of: date | None) -> Decimal:
    """
    Opening balance as debit-minus-credit, or zero when not yet effective.

    An opening balance with no date counts from inception.
    """
    if not account.opening_balance:
        return ZERO
    if (
        as_of is not None
        and account.opening_balance_date is not None
        and account.opening_balance_date > as_of
    ):
        return ZERO
    return orient(account.opening_balance, account.normal_balance)


def build_children_index(accounts: Iterable[AccountInfo]) -> dict[UUID | None, list[UUID]]:
    """parent_id -> child ids (roots under ``None``), ordered by code."""
    index: dict[UUID | None, list[AccountInfo]] = defaultdict(list)
    for account in accounts:
        index[account.parent_id].append(account)
    return {
        parent: [child.id for child in sorted(children, key=lambda a: a.code)]
        for parent, children in index.items()
    }


def descendant_ids(root_id: UUID, children_index: Mapping[UUID | None, list[UUID]]) -> list[UUID]:
    """All descendants of ``root_id`` (excluding itself), depth first."""
    result: list[UUID] = []
    stack = list(reversed(children_index.get(root_id, [])))
    while stack:
        current = stack.pop()
        result.append(current)
        stack.extend(reversed(children_index.get(current, [])))
    return result


def raw_balances(
    accounts: Mapping[UUID, AccountInfo],
    line_sums: Mapping[UUID, tuple[Decimal, Decimal]],
    as_of: date | None,
    include_opening: bool = True,
) -> dict[UUID, Decimal]:
    """
    Debit-minus-credit per account, header accounts rolled up.

    Args:
        accounts: The tenant's whole chart, keyed by id.
        line_sums: account_id -> (debit_total, credit_total).
        as_of: Cut-off used for opening balance dates.
        include_opening: Fold opening balances in.
    """
    own: dict[UUID, Decimal] = {}
    for account_id, account in accounts.items():
        debit_total, credit_total = line_sums.get(account_id, (ZERO, ZERO))
        amount = debit_total - credit_total
        if include_opening:
            amount += opening_raw(account, as_of)
        own[account_id] = amount

    children_index = build_children_index(accounts.values())
    totals: dict[UUID, Decimal] = {}

    def _total(account_id: UUID) -> Decimal:
        if account_id in totals:
            return totals[account_id]
        subtotal = own.get(account_id, ZERO)
        for child_id in children_index.get(account_id, []):
            subtotal += _total(child_id)
        totals[account_id] = subtotal
        return subtotal

    for account_id in accounts:
        _total(account_id)
    return totals


def normal_balances(
    accounts: Mapping[UUID, AccountInfo],
    line_sums: Mapping[UUID, tuple[Decimal, Decimal]],
    as_of: date | None,
    include_opening: bool = True,
) -> dict[UUID, Decimal]:
    """Like raw_balances() but oriented to each account's normal side."""
    raw = raw_balances(accounts, line_sums, as_of, include_opening)
    return {
        account_id: orient(amount, accounts[account_id].normal_balance)
        for account_id, amount in raw.items()
    }


def trial_balance_columns(raw: Decimal) -> tuple[Decimal, Decimal]:
    """Place a debit-minus-credit balance in the debit or credit column."""
    if raw > ZERO:
        return raw, ZERO
    if raw < ZERO:
        return ZERO, -raw
    return ZERO, ZERO
