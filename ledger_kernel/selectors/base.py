"""
Module: ledger_kernel.selectors.base
Responsibility: Base class for read-only query objects.
Architecture position: Kernel > Selectors.  May import from db/ and models/.
    Selectors never add, delete, flush or commit.

Invariants enforced:
    - Results are derived from journal lines on every call.  No balance is
      stored anywhere, so a recomputation always matches the source rows.
    - Selectors return dataclass DTOs, not ORM instances.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from ledger_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseSelector(ABC, Generic[ModelType]):
    """Read-only query base.  The caller owns the session."""

    def __init__(self, session: Session):
        self.session = session
