"""
Module: ledger_kernel.models.sequence
Responsibility: Named monotonic counters.  The ``transaction_group`` row
    hands out ledger seqs and doubles as the read watermark for snapshots.
Architecture position: Kernel > Models.
"""

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import Base


class SequenceCounter(Base):
    """
    Sequence counter table.

    Each row is a named sequence with its current value.  Rows are only
    incremented under SELECT ... FOR UPDATE (see SequenceService).
    """

    __tablename__ = "sequence_counters"

    # Sequence name (e.g., "transaction_group")
    name: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
    )

    current_value: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )
