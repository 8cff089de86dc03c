"""
Pure domain layer.

Frozen DTOs, the entry lifecycle table, line validation and balance
arithmetic.  Nothing here opens a session or reads the clock directly;
the enums it shares with the ORM layer are plain ``str`` enums.
"""

from ledger_kernel.domain.balances import (
    build_children_index,
    descendant_ids,
    normal_balances,
    orient,
    raw_balances,
)
from ledger_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from ledger_kernel.domain.dtos import (
    AccountInfo,
    AccountNode,
    JournalEntryRecord,
    JournalLineRecord,
    LineInput,
    PeriodInfo,
    SourceDocument,
)
from ledger_kernel.domain.lifecycle import (
    TRANSITIONS,
    EntryAction,
    is_allowed,
    require_transition,
)
from ledger_kernel.domain.validation import (
    MIN_LINES,
    NormalizedLine,
    normalize_lines,
    require_balanced,
)

__all__ = [
    "AccountInfo",
    "AccountNode",
    "Clock",
    "DeterministicClock",
    "EntryAction",
    "JournalEntryRecord",
    "JournalLineRecord",
    "LineInput",
    "MIN_LINES",
    "NormalizedLine",
    "PeriodInfo",
    "SourceDocument",
    "SystemClock",
    "TRANSITIONS",
    "build_children_index",
    "descendant_ids",
    "is_allowed",
    "normal_balances",
    "normalize_lines",
    "orient",
    "raw_balances",
    "require_balanced",
    "require_transition",
]
