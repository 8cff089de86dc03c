"""
SequenceService -- gap-free counters via locked rows.

Responsibility:
    Hands out strictly increasing integers per named sequence.  Journal
    entry numbers use one sequence per tenant, allocated at post time.

Architecture position:
    Kernel > Services -- imperative shell.  Called by JournalService and
    ReversalService while posting.

Invariants enforced:
    - The counter row is the only source of the next value.  MAX(seq) + 1
      is never used.
    - ``SELECT ... FOR UPDATE`` serializes concurrent allocations for the
      same sequence on PostgreSQL.  SQLite serializes writers itself.
    - An increment only becomes visible when the caller commits, so a
      rolled back post does not consume a number.

Failure modes:
    - Two transactions creating the same counter at once: the loser's
      insert fails inside a savepoint and it re-reads the winner's row.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.sequence import SequenceCounter

logger = get_logger("services.sequence")


class SequenceService:
    """
    Allocates transactional sequence numbers.

    Usage:
        seq = SequenceService(session).next_value(
            SequenceService.journal_sequence_name(tenant_id)
        )
    """

    JOURNAL_PREFIX = "journal_entry"

    def __init__(self, session: Session):
        self._session = session

    @classmethod
    def journal_sequence_name(cls, tenant_id: UUID) -> str:
        return f"{cls.JOURNAL_PREFIX}:{tenant_id}"

    def _find(self, name: str, lock: bool = False) -> SequenceCounter | None:
        stmt = select(SequenceCounter).where(SequenceCounter.name == name)
        if lock:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return self._session.scalars(stmt).one_or_none()

    def _counter_for_update(self, name: str) -> SequenceCounter:
        """Locked counter row, created at zero on first use."""
        counter = self._find(name, lock=True)
        if counter is not None:
            return counter

        try:
            with self._session.begin_nested():
                counter = SequenceCounter(name=name, current_value=0)
                self._session.add(counter)
        except IntegrityError:
            logger.debug("sequence_create_conflict", extra={"sequence_name": name})
            counter = self._find(name, lock=True)
            if counter is None:
                raise
        return counter

    def next_value(self, sequence_name: str) -> int:
        """Increment and return the counter; the first value is 1."""
        counter = self._counter_for_update(sequence_name)
        counter.current_value += 1
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value

    def current_value(self, sequence_name: str) -> int | None:
        """Last value handed out, or None if the sequence was never used."""
        counter = self._find(sequence_name)
        return None if counter is None else counter.current_value
