"""
Entry lifecycle -- explicit transition table for journal entries.

Responsibility:
    Single place that decides whether an action is legal for an entry in a
    given status, and which named error to raise when it is not.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  Used by JournalService and
    ReversalService before they touch the database.

Invariants enforced:
    - DRAFT   --post-->    POSTED
    - DRAFT   --edit-->    DRAFT
    - DRAFT   --delete-->  (gone)
    - POSTED  --reverse--> REVERSED
    - REVERSED is terminal.  Its reversing entry is a separate POSTED entry
      and can itself be reversed.

Failure modes:
    - AlreadyPostedError      post on POSTED
    - AlreadyReversedError    post or reverse on REVERSED
    - EntryNotPostedError     reverse on DRAFT
    - InvalidStatusError      edit or delete on POSTED / REVERSED
"""

from enum import Enum

from ledger_kernel.exceptions import (
    AlreadyPostedError,
    AlreadyReversedError,
    EntryNotPostedError,
    InvalidStatusError,
)
from ledger_kernel.models.journal import JournalEntryStatus


class EntryAction(str, Enum):
    """Operations that act on an existing entry."""

    EDIT = "edit"
    POST = "post"
    REVERSE = "reverse"
    DELETE = "delete"


# (current status, action) -> resulting status.  None means the row is removed.
TRANSITIONS: dict[tuple[JournalEntryStatus, EntryAction], JournalEntryStatus | None] = {
    (JournalEntryStatus.DRAFT, EntryAction.EDIT): JournalEntryStatus.DRAFT,
    (JournalEntryStatus.DRAFT, EntryAction.POST): JournalEntryStatus.POSTED,
    (JournalEntryStatus.DRAFT, EntryAction.DELETE): None,
    (JournalEntryStatus.POSTED, EntryAction.REVERSE): JournalEntryStatus.REVERSED,
}


def is_allowed(status: JournalEntryStatus | str, action: EntryAction) -> bool:
    return (JournalEntryStatus(status), action) in TRANSITIONS


def require_transition(
    entry_id,
    status: JournalEntryStatus | str,
    action: EntryAction,
    *,
    entry_number: str | None = None,
    reversed_by_id=None,
) -> JournalEntryStatus | None:
    """
    Return the status ``action`` leads to, or raise the matching error.

    Args:
        entry_id: Entry being acted on (for the error payload).
        status: Its current status.
        action: What the caller wants to do.
        entry_number: Included in AlreadyPostedError.
        reversed_by_id: Included in AlreadyReversedError.
    """
    current = JournalEntryStatus(status)
    key = (current, action)
    if key in TRANSITIONS:
        return TRANSITIONS[key]

    entry_ref = str(entry_id)
    if current == JournalEntryStatus.REVERSED and action in (
        EntryAction.POST,
        EntryAction.REVERSE,
    ):
        raise AlreadyReversedError(
            entry_ref,
            str(reversed_by_id) if reversed_by_id else None,
        )
    if current == JournalEntryStatus.POSTED and action == EntryAction.POST:
        raise AlreadyPostedError(entry_ref, entry_number)
    if action == EntryAction.REVERSE:
        raise EntryNotPostedError(entry_ref, current.value)
    raise InvalidStatusError(entry_ref, current.value, action.value)
