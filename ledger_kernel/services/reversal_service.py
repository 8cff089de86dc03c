"""
ReversalService -- cancel a posted entry by appending its mirror.

Responsibility:
    Validates reversal preconditions, builds the mirror entry (every line
    with its side swapped, same account, same amount), posts it under a
    fresh entry number and links the pair in both directions.

Architecture position:
    Kernel > Services -- imperative shell.  Reuses JournalService for
    entry loading, account checks and number allocation, and PeriodService
    for the reversal date.

Invariants enforced:
    - The original's lines are never touched.  Its row changes only
      ``status`` (posted -> reversed) and ``reversed_by_id``.
    - The mirror is posted in the same flush sequence, so the pair nets
      to zero from the reversal date onward.
    - A reversed entry cannot be reversed again; its mirror can.
    - The reversal date is on or after the original's entry date.

Failure modes:
    - EntryNotPostedError: Original is a draft.
    - AlreadyReversedError: Original already reversed.
    - InvalidReversalDateError: Reversal date before the entry date.
    - ClosedPeriodError: Reversal date in a closed or locked month.

Audit relevance:
    Both entries stay in history.  ``journal_entry_reversed`` is logged
    with both ids and both entry numbers.
"""

from dataclasses import dataclass
from datetime import date
from uuid import UUID

from sqlalchemy.orm import Session

from ledger_kernel.domain.clock import Clock, SystemClock
from ledger_kernel.domain.dtos import JournalEntryRecord
from ledger_kernel.domain.lifecycle import EntryAction, require_transition
from ledger_kernel.domain.validation import require_balanced
from ledger_kernel.exceptions import InvalidReversalDateError
from ledger_kernel.logging_config import LogContext, get_logger
from ledger_kernel.models.journal import (
    JournalEntry,
    JournalEntryStatus,
    JournalLine,
    LineSide,
)
from ledger_kernel.services.journal_service import (
    DEFAULT_ENTRY_DIGITS,
    DEFAULT_ENTRY_PREFIX,
    JournalService,
)

logger = get_logger("services.reversal")


@dataclass(frozen=True)
class ReversalResult:
    """Both halves of a completed reversal."""

    original: JournalEntryRecord
    reversal: JournalEntryRecord

    @property
    def reversal_entry_id(self) -> UUID:
        return self.reversal.id


class ReversalService:
    """
    Reverses posted entries for one tenant.

    Contract:
        ``reverse()`` flushes but never commits.  On any failure nothing
        has been written once the caller rolls back.
    """

    def __init__(
        self,
        session: Session,
        tenant_id: UUID,
        clock: Clock | None = None,
        entry_number_prefix: str = DEFAULT_ENTRY_PREFIX,
        entry_number_digits: int = DEFAULT_ENTRY_DIGITS,
        enforce_period_locks: bool = True,
    ):
        self._session = session
        self.tenant_id = tenant_id
        self._clock = clock or SystemClock()
        self._journal = JournalService(
            session,
            tenant_id,
            clock=self._clock,
            entry_number_prefix=entry_number_prefix,
            entry_number_digits=entry_number_digits,
            enforce_period_locks=enforce_period_locks,
        )

    def reverse(
        self,
        entry_id: UUID,
        actor_id: UUID,
        reversal_date: date | None = None,
        description: str | None = None,
    ) -> ReversalResult:
        """
        Reverse a posted entry.

        Args:
            entry_id: The posted entry to cancel.
            actor_id: Who is reversing it.
            reversal_date: Date of the mirror entry; defaults to today.
            description: Mirror description; defaults to
                ``"Reversal of <entry number>"``.

        Returns:
            ReversalResult with the (now reversed) original and the posted
            mirror entry.
        """
        reversal_date = reversal_date or self._clock.today()
        original = self._journal.load_entry(entry_id, for_update=True)

        with LogContext.bind(entry_id=str(original.id), actor_id=str(actor_id)):
            require_transition(
                original.id,
                original.status,
                EntryAction.REVERSE,
                entry_number=original.entry_number,
                reversed_by_id=original.reversed_by_id,
            )
            if reversal_date < original.entry_date:
                raise InvalidReversalDateError(str(original.id), original.entry_date, reversal_date)

            self._journal.periods.validate_posting_date(reversal_date)
            # Accounts deactivated since posting still accept the mirror
            self._journal.check_accounts(
                [line.account_id for line in original.lines],
                require_active=False,
            )

            mirror = self._build_mirror(original, reversal_date, actor_id, description)
            require_balanced(
                [(LineSide(line.side), line.amount) for line in mirror.lines],
                mirror.currency,
            )
            self._journal.assign_number(mirror, actor_id)
            self._session.add(mirror)
            self._session.flush()

            original.status = JournalEntryStatus.REVERSED.value
            original.reversed_by_id = mirror.id
            original.updated_by_id = actor_id
            self._session.flush()

            logger.info(
                "journal_entry_reversed",
                extra={
                    "original_entry_id": str(original.id),
                    "original_entry_number": original.entry_number,
                    "reversal_entry_id": str(mirror.id),
                    "reversal_entry_number": mirror.entry_number,
                    "reversal_date": str(reversal_date),
                    "line_count": len(mirror.lines),
                },
            )

        return ReversalResult(
            original=JournalEntryRecord.from_model(original),
            reversal=JournalEntryRecord.from_model(mirror),
        )

    @staticmethod
    def _build_mirror(
        original: JournalEntry,
        reversal_date: date,
        actor_id: UUID,
        description: str | None,
    ) -> JournalEntry:
        mirror = JournalEntry(
            tenant_id=original.tenant_id,
            entry_date=reversal_date,
            description=description or f"Reversal of {original.entry_number}",
            reference=original.reference,
            currency=original.currency,
            source_type=original.source_type,
            source_id=original.source_id,
            status=JournalEntryStatus.DRAFT.value,
            reversal_of_id=original.id,
            created_by_id=actor_id,
        )
        for line in sorted(original.lines, key=lambda x: x.line_seq):
            mirror.lines.append(
                JournalLine(
                    account_id=line.account_id,
                    side=LineSide(line.side).opposite().value,
                    amount=line.amount,
                    tax_code=line.tax_code,
                    tax_amount=line.tax_amount,
                    description=line.description,
                    line_seq=line.line_seq,
                    created_by_id=actor_id,
                )
            )
        return mirror
