"""
Typed exception hierarchy for the ledger kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (invoicing, billing, bank reconciliation, API layers) need to react
to ledger failures without parsing messages.  Every error here has:

  1. A class to catch by type.
  2. A ``code`` class attribute that is stable and API-safe.
  3. Structured attributes carrying the data that caused the failure.

    try:
        ledger.post(entry_id, actor_id=actor)
    except UnbalancedEntryError as e:
        return {"code": e.code, "debits": str(e.debits), "credits": str(e.credits)}

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    LedgerError
    |
    +-- ValidationError                malformed input
    |   +-- InsufficientLinesError
    |   +-- InvalidLineAmountError
    |   +-- UnbalancedEntryError
    |   +-- InvalidReversalDateError
    |   +-- InvalidAccountDataError
    |   +-- InvalidCurrencyError
    |   +-- InvalidPeriodError
    |   +-- InvalidAgingDateError
    |
    +-- StateError                     illegal transition
    |   +-- AlreadyPostedError
    |   +-- AlreadyReversedError
    |   +-- EntryNotPostedError
    |   +-- InvalidStatusError
    |   +-- ImmutableFieldError
    |   +-- AccountInUseError
    |   +-- AccountReferencedError
    |   +-- ClosedPeriodError
    |   +-- PeriodTransitionError
    |   +-- ChartAlreadyInitializedError
    |   +-- ImmutabilityViolationError
    |
    +-- LedgerReferenceError           unknown or unusable target
    |   +-- AccountNotFoundError
    |   +-- AccountInactiveError
    |   +-- HeaderAccountPostingError
    |   +-- DuplicateCodeError
    |   +-- InvalidParentError
    |   +-- EntryNotFoundError
    |
    +-- LedgerIntegrityError           core invariant broken (alerting)
        +-- TrialBalanceMismatchError
        +-- BalanceSheetMismatchError

The reference and integrity categories carry a ``Ledger`` prefix so they do
not shadow the builtin ``ReferenceError`` or ``sqlalchemy.exc.IntegrityError``.

===============================================================================
PROPAGATION
===============================================================================

Validation and state errors are raised synchronously to the caller and are
meant to be shown to the end user.  Integrity errors mean the double-entry
invariant no longer holds; they are logged at ERROR level with the totals
that disagree before being raised, and must never be swallowed.

Nothing inside the ledger retries.  Re-posting an already posted entry
raises AlreadyPostedError rather than succeeding silently.
"""

from datetime import date
from decimal import Decimal


class LedgerError(Exception):
    """
    Base exception for all ledger errors.

    Every subclass defines a ``code`` class attribute.
    """

    code: str = "LEDGER_ERROR"


# =============================================================================
# Validation
# =============================================================================


class ValidationError(LedgerError):
    """Input is malformed."""

    code: str = "VALIDATION_ERROR"


class InsufficientLinesError(ValidationError):
    """An entry needs at least two lines."""

    code: str = "INSUFFICIENT_LINES"

    def __init__(self, line_count: int, minimum: int = 2):
        self.line_count = line_count
        self.minimum = minimum
        super().__init__(
            f"Journal entry requires at least {minimum} lines, got {line_count}"
        )


class InvalidLineAmountError(ValidationError):
    """A line must carry a positive debit or a positive credit, never both."""

    code: str = "INVALID_LINE_AMOUNT"

    def __init__(
        self,
        line_index: int,
        debit: Decimal | None,
        credit: Decimal | None,
        reason: str,
    ):
        self.line_index = line_index
        self.debit = debit
        self.credit = credit
        self.reason = reason
        super().__init__(f"Line {line_index}: {reason}")


class UnbalancedEntryError(ValidationError):
    """Debits and credits differ by more than the currency tolerance."""

    code: str = "UNBALANCED"

    def __init__(
        self,
        debits: Decimal,
        credits: Decimal,
        currency: str,
        tolerance: Decimal | None = None,
    ):
        self.debits = debits
        self.credits = credits
        self.currency = currency
        self.tolerance = tolerance
        super().__init__(
            f"Entry is unbalanced: debits={debits} credits={credits} {currency}"
        )


class InvalidReversalDateError(ValidationError):
    """The reversal date precedes the original entry date."""

    code: str = "INVALID_DATE"

    def __init__(self, entry_id: str, entry_date: date, reversal_date: date):
        self.entry_id = entry_id
        self.entry_date = entry_date
        self.reversal_date = reversal_date
        super().__init__(
            f"Reversal date {reversal_date} precedes entry date {entry_date} "
            f"of entry {entry_id}"
        )


class InvalidAccountDataError(ValidationError):
    """Account attributes are missing or inconsistent."""

    code: str = "INVALID_ACCOUNT_DATA"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid account {field}: {reason}")


class InvalidCurrencyError(ValidationError):
    """Not a recognised ISO 4217 currency code."""

    code: str = "INVALID_CURRENCY"

    def __init__(self, currency: str):
        self.currency = currency
        super().__init__(f"Invalid ISO 4217 currency code: '{currency}'")


class InvalidPeriodError(ValidationError):
    """Year/month pair does not name a calendar month."""

    code: str = "INVALID_PERIOD"

    def __init__(self, year: int, month: int):
        self.year = year
        self.month = month
        super().__init__(f"Invalid accounting period: {year}-{month}")


class InvalidAgingDateError(ValidationError):
    """Aging reference date is missing or not a date."""

    code: str = "INVALID_AGING_DATE"

    def __init__(self, value: object):
        self.value = value
        super().__init__(f"Invalid aging reference date: {value!r}")


# =============================================================================
# State
# =============================================================================


class StateError(LedgerError):
    """Operation is illegal for the current lifecycle state."""

    code: str = "STATE_ERROR"


class AlreadyPostedError(StateError):
    """Entry has already been posted."""

    code: str = "ALREADY_POSTED"

    def __init__(self, entry_id: str, entry_number: str | None = None):
        self.entry_id = entry_id
        self.entry_number = entry_number
        super().__init__(f"Entry {entry_id} is already posted ({entry_number})")


class AlreadyReversedError(StateError):
    """Entry has already been reversed."""

    code: str = "ALREADY_REVERSED"

    def __init__(self, entry_id: str, reversed_by_id: str | None = None):
        self.entry_id = entry_id
        self.reversed_by_id = reversed_by_id
        super().__init__(f"Entry {entry_id} is already reversed")


class EntryNotPostedError(StateError):
    """Only posted entries can be reversed."""

    code: str = "NOT_POSTED"

    def __init__(self, entry_id: str, status: str):
        self.entry_id = entry_id
        self.status = status
        super().__init__(
            f"Entry {entry_id} cannot be reversed from status '{status}'"
        )


class InvalidStatusError(StateError):
    """Operation requires a different entry status."""

    code: str = "INVALID_STATUS"

    def __init__(self, entry_id: str, status: str, operation: str):
        self.entry_id = entry_id
        self.status = status
        self.operation = operation
        super().__init__(
            f"Cannot {operation} entry {entry_id} in status '{status}'"
        )


class ImmutableFieldError(StateError):
    """Field cannot change once the account has posted activity."""

    code: str = "IMMUTABLE_FIELD"

    def __init__(self, account_id: str, field: str):
        self.account_id = account_id
        self.field = field
        super().__init__(
            f"Field '{field}' of account {account_id} is immutable "
            f"after posting"
        )


class AccountInUseError(StateError):
    """Account still carries a balance."""

    code: str = "ACCOUNT_IN_USE"

    def __init__(self, account_id: str, balance: Decimal):
        self.account_id = account_id
        self.balance = balance
        super().__init__(
            f"Account {account_id} has nonzero balance {balance}; "
            f"pass force=True to deactivate"
        )


class AccountReferencedError(StateError):
    """Account cannot be deleted while referenced."""

    code: str = "ACCOUNT_REFERENCED"

    def __init__(self, account_id: str, reason: str):
        self.account_id = account_id
        self.reason = reason
        super().__init__(f"Account {account_id} cannot be deleted: {reason}")


class ClosedPeriodError(StateError):
    """Posting date falls in a closed or locked period."""

    code: str = "CLOSED_PERIOD"

    def __init__(self, period_code: str, entry_date: date, status: str = "closed"):
        self.period_code = period_code
        self.entry_date = entry_date
        self.status = status
        super().__init__(
            f"Cannot post to {status} period {period_code} "
            f"(entry date {entry_date})"
        )


class PeriodTransitionError(StateError):
    """Illegal accounting period status change."""

    code: str = "PERIOD_TRANSITION"

    def __init__(self, period_code: str, from_status: str, to_status: str, reason: str = ""):
        self.period_code = period_code
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        message = f"Period {period_code} cannot move from {from_status} to {to_status}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class ChartAlreadyInitializedError(StateError):
    """Default chart can only be seeded into an empty registry."""

    code: str = "CHART_ALREADY_INITIALIZED"

    def __init__(self, tenant_id: str, account_count: int):
        self.tenant_id = tenant_id
        self.account_count = account_count
        super().__init__(
            f"Tenant {tenant_id} already has {account_count} accounts"
        )


class ImmutabilityViolationError(StateError):
    """Write blocked by the ORM immutability listeners."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Cannot modify {entity_type} {entity_id}: {reason}"
        )


# =============================================================================
# Reference
# =============================================================================


class LedgerReferenceError(LedgerError):
    """Referenced record is missing or unusable."""

    code: str = "REFERENCE_ERROR"


class AccountNotFoundError(LedgerReferenceError):
    """Account does not exist for this tenant."""

    code: str = "ACCOUNT_NOT_FOUND"

    def __init__(self, account_ref: str):
        self.account_ref = account_ref
        super().__init__(f"Account not found: {account_ref}")


class AccountInactiveError(LedgerReferenceError):
    """Inactive accounts cannot receive postings."""

    code: str = "ACCOUNT_INACTIVE"

    def __init__(self, account_id: str, account_code: str | None = None):
        self.account_id = account_id
        self.account_code = account_code
        super().__init__(f"Account {account_code or account_id} is inactive")


class HeaderAccountPostingError(LedgerReferenceError):
    """Header accounts aggregate children and cannot be posted to."""

    code: str = "HEADER_ACCOUNT"

    def __init__(self, account_id: str, account_code: str | None = None):
        self.account_id = account_id
        self.account_code = account_code
        super().__init__(
            f"Account {account_code or account_id} is a header account"
        )


class DuplicateCodeError(LedgerReferenceError):
    """Account code already used by this tenant."""

    code: str = "DUPLICATE_CODE"

    def __init__(self, account_code: str):
        self.account_code = account_code
        super().__init__(f"Account code already exists: {account_code}")


class InvalidParentError(LedgerReferenceError):
    """Parent is missing, not a header, or would create a cycle."""

    code: str = "INVALID_PARENT"

    def __init__(self, parent_id: str, reason: str):
        self.parent_id = parent_id
        self.reason = reason
        super().__init__(f"Invalid parent {parent_id}: {reason}")


class EntryNotFoundError(LedgerReferenceError):
    """Journal entry does not exist for this tenant."""

    code: str = "ENTRY_NOT_FOUND"

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"Journal entry not found: {entry_id}")


# =============================================================================
# Integrity
# =============================================================================


class LedgerIntegrityError(LedgerError):
    """A derived-report invariant failed.  Indicates a bug or corruption."""

    code: str = "INTEGRITY_ERROR"


class TrialBalanceMismatchError(LedgerIntegrityError):
    """Trial balance debit column differs from credit column."""

    code: str = "TRIAL_BALANCE_MISMATCH"

    def __init__(self, as_of_date: date, total_debits: Decimal, total_credits: Decimal):
        self.as_of_date = as_of_date
        self.total_debits = total_debits
        self.total_credits = total_credits
        super().__init__(
            f"Trial balance as of {as_of_date} does not balance: "
            f"debits={total_debits} credits={total_credits}"
        )


class BalanceSheetMismatchError(LedgerIntegrityError):
    """Assets differ from liabilities plus equity."""

    code: str = "BALANCE_SHEET_MISMATCH"

    def __init__(
        self,
        as_of_date: date,
        total_assets: Decimal,
        total_liabilities: Decimal,
        total_equity: Decimal,
    ):
        self.as_of_date = as_of_date
        self.total_assets = total_assets
        self.total_liabilities = total_liabilities
        self.total_equity = total_equity
        super().__init__(
            f"Balance sheet as of {as_of_date} does not balance: "
            f"assets={total_assets} liabilities={total_liabilities} "
            f"equity={total_equity}"
        )
