"""
Module: ledger_kernel.db.base
Responsibility: Declarative base classes shared by every ledger table.
    Supplies the UUID primary key, the column type map that keeps money in
    Numeric rather than float, and the audit columns carried by every
    mutable record.
Architecture position: Kernel > DB.  Lowest import target in the kernel.
    MUST NOT import from models/, services/, selectors/ or domain/.

Invariants enforced:
    - Every row has a uuid4 primary key.
    - Python Decimal always maps to Numeric(38, 9).  Amounts never pass
      through float on the way to or from the database.
    - Every tracked row records its creating actor.

Audit relevance:
    created_by_id / updated_by_id identify the actor behind each change.
    They are audit metadata and may be stamped even on rows that are
    otherwise frozen by db/immutability.py.
"""

from datetime import datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID as PyUUID, uuid4

from sqlalchemy import BigInteger, DateTime, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """UUID persisted as its 36-character text form (portable to SQLite)."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return str(value)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return PyUUID(value)


class Base(DeclarativeBase):
    """
    Declarative base for all ledger models.

    Guarantees:
        - ``id`` is a uuid4 stored as String(36).
        - Decimal -> Numeric(38, 9), datetime -> DateTime(timezone=True),
          UUID -> UUIDString, int -> BigInteger.
    """

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(38, 9),
        datetime: DateTime(timezone=True),
        PyUUID: UUIDString(),
        int: BigInteger,
    }

    id: Mapped[PyUUID] = mapped_column(
        UUIDString(),
        primary_key=True,
        default=uuid4,
    )


class TrackedBase(Base):
    """
    Abstract base adding audit timestamps and actor columns.

    Guarantees:
        - created_at is set by the database on INSERT.
        - updated_at is refreshed on every UPDATE.
        - created_by_id is NOT NULL.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    created_by_id: Mapped[PyUUID] = mapped_column(
        UUIDString(),
        nullable=False,
    )

    updated_by_id: Mapped[PyUUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )


UUID = PyUUID
