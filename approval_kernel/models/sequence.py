"""
Module: approval_kernel.models.sequence
Responsibility: Named counter rows backing document number allocation.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - One row per sequence name (unique).
    - Values are only ever incremented under a row lock; aggregate
      MAX+1 over documents is never used.
"""

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from approval_kernel.db.base import Base


class SequenceCounter(Base):
    """Current value of one named sequence."""

    __tablename__ = "sequence_counters"

    # e.g. "document_no:VACATION:202409"
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)

    current_value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<SequenceCounter {self.name}={self.current_value}>"
