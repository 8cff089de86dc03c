"""
JournalService -- the single gate for journal entry drafts and postings.

Responsibility:
    Creates, edits and deletes draft entries and posts them.  Posting
    re-validates the balance, allocates the tenant's next sequence number,
    assigns the entry number and freezes the entry.

Architecture position:
    Kernel > Services -- imperative shell.
    Pure rules come from domain/validation.py and domain/lifecycle.py;
    numbers from SequenceService; period gating from PeriodService.

Invariants enforced:
    - An entry has at least two lines, each with a debit XOR a credit.
    - Every line references an active, non-header account of the tenant,
      checked when the line is written and again when the entry posts.
    - Drafts may be unbalanced; posting is refused beyond the currency
      tolerance (one hundredth of the minor unit), never rounded.
    - Entry numbers are allocated at post time from a locked counter, so
      they strictly increase and a deleted draft never consumes one.
    - Only drafts are edited or deleted.
    - Flush-only: the caller's transaction makes post atomic.

Failure modes:
    - InsufficientLinesError, InvalidLineAmountError, UnbalancedEntryError
    - AccountNotFoundError, AccountInactiveError, HeaderAccountPostingError
    - AlreadyPostedError, AlreadyReversedError, InvalidStatusError
    - ClosedPeriodError, InvalidCurrencyError, EntryNotFoundError

Audit relevance:
    Draft, edit, delete and post each emit a structured log event carrying
    the entry id, the actor, totals and (on post) the entry number.
"""

from collections.abc import Sequence
from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_kernel.db.types import validate_currency
from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import JournalEntryRecord, LineInput, SourceDocument
from ledger_kernel.domain.lifecycle import EntryAction, require_transition
from ledger_kernel.domain.validation import (
    NormalizedLine,
    normalize_lines,
    require_balanced,
    sum_sides,
)
from ledger_kernel.exceptions import (
    AccountInactiveError,
    AccountNotFoundError,
    EntryNotFoundError,
    HeaderAccountPostingError,
)
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.account import Account
from ledger_kernel.models.journal import (
    JournalEntry,
    JournalEntryStatus,
    JournalLine,
    LineSide,
)
from ledger_kernel.services.base import BaseService
from ledger_kernel.services.period_service import PeriodService
from ledger_kernel.services.sequence_service import SequenceService

logger = get_logger("services.journal")

DEFAULT_ENTRY_PREFIX = "JE"
DEFAULT_ENTRY_DIGITS = 5


def format_entry_number(prefix: str, year: int, seq: int, digits: int = DEFAULT_ENTRY_DIGITS) -> str:
    """``JE-2024-00001`` style entry number."""
    return f"{prefix}-{year}-{seq:0{digits}d}"


class JournalService(BaseService[JournalEntry]):
    """
    Draft and post journal entries for one tenant.

    Contract:
        Returns JournalEntryRecord DTOs.  Never commits; wrap calls in
        ``session_scope()`` so a failed post leaves nothing behind.
    """

    def __init__(
        self,
        session: Session,
        tenant_id: UUID,
        clock: Clock | None = None,
        default_currency: str = "MYR",
        entry_number_prefix: str = DEFAULT_ENTRY_PREFIX,
        entry_number_digits: int = DEFAULT_ENTRY_DIGITS,
        enforce_period_locks: bool = True,
    ):
        super().__init__(session)
        self.tenant_id = tenant_id
        self._clock = clock or SystemClock()
        self._default_currency = default_currency
        self._prefix = entry_number_prefix
        self._digits = entry_number_digits
        self._sequences = SequenceService(session)
        self._periods = PeriodService(
            session,
            tenant_id,
            clock=self._clock,
            enforce_locks=enforce_period_locks,
            base_currency=default_currency,
        )

    # ------------------------------------------------------------------
    # Shared helpers (also used by ReversalService)
    # ------------------------------------------------------------------

    def load_entry(self, entry_id: UUID, for_update: bool = False) -> JournalEntry:
        query = select(JournalEntry).where(
            JournalEntry.tenant_id == self.tenant_id,
            JournalEntry.id == entry_id,
        )
        if for_update:
            query = query.with_for_update()
        entry = self.session.execute(query).scalar_one_or_none()
        if entry is None:
            raise EntryNotFoundError(str(entry_id))
        return entry

    def check_accounts(self, account_ids, *, require_active: bool = True) -> dict[UUID, Account]:
        """
        Load the referenced accounts and reject unknown, inactive or
        header accounts.
        """
        wanted = set(account_ids)
        accounts = {
            a.id: a
            for a in self.session.execute(
                select(Account).where(
                    Account.tenant_id == self.tenant_id,
                    Account.id.in_(wanted),
                )
            ).scalars()
        }
        for account_id in account_ids:
            account = accounts.get(account_id)
            if account is None:
                raise AccountNotFoundError(str(account_id))
            if account.is_header:
                raise HeaderAccountPostingError(str(account_id), account.code)
            if require_active and not account.is_active:
                raise AccountInactiveError(str(account_id), account.code)
        return accounts

    def assign_number(self, entry: JournalEntry, actor_id: UUID) -> None:
        """Allocate the next sequence value and mark the entry posted."""
        seq = self._sequences.next_value(SequenceService.journal_sequence_name(self.tenant_id))
        now = self._clock.now()
        entry.seq = seq
        entry.entry_number = format_entry_number(self._prefix, now.year, seq, self._digits)
        entry.status = JournalEntryStatus.POSTED.value
        entry.posted_at = now
        entry.posted_by_id = actor_id
        entry.updated_by_id = actor_id

    @property
    def periods(self) -> PeriodService:
        return self._periods

    def _add_lines(self, entry: JournalEntry, lines: Sequence[NormalizedLine], actor_id: UUID) -> None:
        for line in lines:
            entry.lines.append(
                JournalLine(
                    account_id=line.source.account_id,
                    side=line.side.value,
                    amount=line.amount,
                    tax_code=line.tax_code,
                    tax_amount=line.tax_amount,
                    description=line.source.description,
                    line_seq=line.line_seq,
                    created_by_id=actor_id,
                )
            )

    # ------------------------------------------------------------------
    # Drafts
    # ------------------------------------------------------------------

    def create_draft(
        self,
        entry_date: date,
        description: str,
        lines: Sequence[LineInput],
        actor_id: UUID,
        reference: str | None = None,
        source: SourceDocument | None = None,
        currency: str | None = None,
    ) -> JournalEntryRecord:
        """
        Record a draft entry.  The debit and credit totals are not compared.

        Raises:
            InsufficientLinesError: Fewer than two lines.
            InvalidLineAmountError: A line with both, neither or a negative side.
            AccountNotFoundError / AccountInactiveError /
            HeaderAccountPostingError: A line targets an unusable account.
            InvalidCurrencyError: Unknown currency code.
        """
        currency = validate_currency(currency or self._default_currency)
        normalized = normalize_lines(lines)
        self.check_accounts([line.source.account_id for line in normalized])

        entry = JournalEntry(
            tenant_id=self.tenant_id,
            entry_date=entry_date,
            description=description,
            reference=reference,
            currency=currency,
            source_type=source.source_type.value if source else None,
            source_id=source.source_id if source else None,
            status=JournalEntryStatus.DRAFT.value,
            created_by_id=actor_id,
        )
        self._add_lines(entry, normalized, actor_id)
        self.session.add(entry)
        self.session.flush()

        debits, credits = sum_sides((line.side, line.amount) for line in normalized)
        logger.info(
            "journal_entry_drafted",
            extra={
                "entry_id": str(entry.id),
                "entry_date": str(entry_date),
                "line_count": len(normalized),
                "total_debits": str(debits),
                "total_credits": str(credits),
                "currency": currency,
                "source_type": entry.source_type,
                "actor_id": str(actor_id),
            },
        )
        return JournalEntryRecord.from_model(entry)

    def update_draft(
        self,
        entry_id: UUID,
        actor_id: UUID,
        entry_date: date | None = None,
        description: str | None = None,
        lines: Sequence[LineInput] | None = None,
        reference: str | None = None,
        source: SourceDocument | None = None,
        currency: str | None = None,
    ) -> JournalEntryRecord:
        """
        Change a draft.  Arguments left as None keep their current value;
        ``lines`` replaces the whole line set.

        Raises:
            InvalidStatusError: Entry is not a draft.
            Plus the validation errors of ``create_draft``.
        """
        entry = self.load_entry(entry_id, for_update=True)
        require_transition(entry.id, entry.status, EntryAction.EDIT)

        if currency is not None:
            entry.currency = validate_currency(currency)
        if entry_date is not None:
            entry.entry_date = entry_date
        if description is not None:
            entry.description = description
        if reference is not None:
            entry.reference = reference
        if source is not None:
            entry.source_type = source.source_type.value
            entry.source_id = source.source_id

        if lines is not None:
            normalized = normalize_lines(lines)
            self.check_accounts([line.source.account_id for line in normalized])
            # Old lines go first; line_seq is unique per entry
            entry.lines.clear()
            self.session.flush()
            self._add_lines(entry, normalized, actor_id)

        entry.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "journal_entry_updated",
            extra={
                "entry_id": str(entry.id),
                "lines_replaced": lines is not None,
                "actor_id": str(actor_id),
            },
        )
        return JournalEntryRecord.from_model(entry)

    def delete_draft(self, entry_id: UUID, actor_id: UUID) -> None:
        """
        Remove a draft and its lines.

        Raises:
            InvalidStatusError: Posted or reversed entries are never deleted.
        """
        entry = self.load_entry(entry_id, for_update=True)
        require_transition(entry.id, entry.status, EntryAction.DELETE)

        self.session.delete(entry)
        self.session.flush()

        logger.info(
            "journal_entry_deleted",
            extra={"entry_id": str(entry_id), "actor_id": str(actor_id)},
        )

    # ------------------------------------------------------------------
    # Posting
    # ------------------------------------------------------------------

    def post(self, entry_id: UUID, actor_id: UUID) -> JournalEntryRecord:
        """
        Post a draft.

        Preconditions:
            The entry is a draft dated in an open period, its accounts are
            still active, and it balances within tolerance.

        Postconditions:
            ``status`` is posted; ``seq``, ``entry_number``, ``posted_at``
            and ``posted_by_id`` are set; the entry is immutable.

        Raises:
            AlreadyPostedError / AlreadyReversedError: Not a draft.
            UnbalancedEntryError: Debits and credits differ.
            ClosedPeriodError: Entry date in a closed or locked month.
        """
        entry = self.load_entry(entry_id, for_update=True)

        with LogContext.bind(entry_id=str(entry.id), actor_id=str(actor_id)):
            require_transition(
                entry.id,
                entry.status,
                EntryAction.POST,
                entry_number=entry.entry_number,
                reversed_by_id=entry.reversed_by_id,
            )

            pairs = [(LineSide(line.side), line.amount) for line in entry.lines]
            debits, credits = require_balanced(pairs, entry.currency)
            self.check_accounts([line.account_id for line in entry.lines])
            self._periods.validate_posting_date(entry.entry_date)

            self.assign_number(entry, actor_id)
            self.session.flush()

            logger.info(
                "journal_entry_posted",
                extra={
                    "entry_id": str(entry.id),
                    "entry_number": entry.entry_number,
                    "seq": entry.seq,
                    "entry_date": str(entry.entry_date),
                    "total_debits": str(debits),
                    "total_credits": str(credits),
                    "currency": entry.currency,
                    "posted_at": str(entry.posted_at),
                },
            )
        return JournalEntryRecord.from_model(entry)
