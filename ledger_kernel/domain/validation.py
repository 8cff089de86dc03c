"""
Pure entry validation (no I/O).

Shared by draft creation, draft editing, posting and reversal so that every
path applies identical rules.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

from ledger_kernel.db.types import ZERO, balance_tolerance, to_decimal
from ledger_kernel.domain.dtos import LineInput
from ledger_kernel.exceptions import (
    InsufficientLinesError,
    InvalidLineAmountError,
    UnbalancedEntryError,
)
from ledger_kernel.models.journal import LineSide
from ledger_kernel.models.tax import TaxCode

MIN_LINES = 2


@dataclass(frozen=True)
class NormalizedLine:
    """A LineInput reduced to side + positive amount."""

    line_seq: int
    source: LineInput
    side: LineSide
    amount: Decimal
    tax_code: str | None
    tax_amount: Decimal | None


def _normalize_amount(value) -> Decimal:
    if value is None:
        return ZERO
    return to_decimal(value)


def normalize_lines(lines: Sequence[LineInput]) -> list[NormalizedLine]:
    """
    Check line count and debit-XOR-credit, return side/amount lines.

    Raises:
        InsufficientLinesError: Fewer than two lines.
        InvalidLineAmountError: Negative amount, both sides set, or neither.
        ValueError: Unknown tax code.
    """
    if len(lines) < MIN_LINES:
        raise InsufficientLinesError(len(lines), MIN_LINES)

    normalized: list[NormalizedLine] = []
    for index, line in enumerate(lines):
        debit = _normalize_amount(line.debit)
        credit = _normalize_amount(line.credit)

        if debit < ZERO or credit < ZERO:
            raise InvalidLineAmountError(index, line.debit, line.credit, "amounts must not be negative")
        if debit > ZERO and credit > ZERO:
            raise InvalidLineAmountError(index, line.debit, line.credit, "line has both a debit and a credit")
        if debit == ZERO and credit == ZERO:
            raise InvalidLineAmountError(index, line.debit, line.credit, "line has neither a debit nor a credit")

        tax_amount = None
        if line.tax_amount is not None:
            tax_amount = to_decimal(line.tax_amount)
            if tax_amount < ZERO:
                raise InvalidLineAmountError(index, line.debit, line.credit, "tax amount must not be negative")

        tax_code = TaxCode(line.tax_code).value if line.tax_code else None

        if debit > ZERO:
            side, amount = LineSide.DEBIT, debit
        else:
            side, amount = LineSide.CREDIT, credit

        normalized.append(
            NormalizedLine(
                line_seq=index,
                source=line,
                side=side,
                amount=amount,
                tax_code=tax_code,
                tax_amount=tax_amount,
            )
        )
    return normalized


def sum_sides(pairs) -> tuple[Decimal, Decimal]:
    """Total debits and credits from an iterable of (side, amount)."""
    debits = ZERO
    credits = ZERO
    for side, amount in pairs:
        if side == LineSide.DEBIT:
            debits += amount
        else:
            credits += amount
    return debits, credits


def require_balanced(pairs, currency: str) -> tuple[Decimal, Decimal]:
    """
    Raise UnbalancedEntryError if debits and credits differ beyond the
    currency tolerance.  Returns (debits, credits).
    """
    debits, credits = sum_sides(pairs)
    tolerance = balance_tolerance(currency)
    if abs(debits - credits) > tolerance:
        raise UnbalancedEntryError(debits, credits, currency, tolerance)
    return debits, credits
