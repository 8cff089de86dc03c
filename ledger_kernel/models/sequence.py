"""Named counter rows backing SequenceService."""

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import Base


class SequenceCounter(Base):
    """
    One named, monotonically increasing counter.

    Rows are locked with SELECT ... FOR UPDATE while incremented.
    """

    __tablename__ = "sequence_counters"

    # e.g. "journal_entry:<tenant uuid>"
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)

    current_value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
