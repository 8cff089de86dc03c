"""
BaseService -- common constructor for every ledger service.

Responsibility:
    Holds the caller's SQLAlchemy ``Session``.  Services write with
    ``session.flush()`` and never ``commit()`` / ``rollback()``; the caller
    (``session_scope()`` or a test fixture) owns the transaction, which is
    what makes post and reverse atomic.

Architecture position:
    Kernel > Services -- imperative shell.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from ledger_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base for write services.

    Guarantees:
        - Never commits or rolls back.

    Non-goals:
        - Read-only queries belong in ``ledger_kernel/selectors/``.
    """

    def __init__(self, session: Session):
        self.session = session
