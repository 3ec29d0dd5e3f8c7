"""
SequenceService -- monotonic ledger sequence allocation via locked counter rows.

Responsibility:
    Provides strictly increasing sequence numbers for posted transaction
    groups.  A dedicated counter row is locked with ``SELECT ... FOR UPDATE``
    so that concurrent posters queue on it: seq order is commit order.

Architecture position:
    Kernel > Services.  Called by the ledger writer when a group is posted
    and by the ledger selector to read the snapshot watermark.

Invariants enforced:
    - Monotonicity: the locked counter row is the sole source of the next
      value; max(seq)+1 is never used.
    - Transactional: an increment becomes visible only when the caller's
      transaction commits.  Rollback returns the value.

Failure modes:
    - IntegrityError: two transactions create the counter row at once
      (handled via savepoint rollback and re-read).
"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.sequence import SequenceCounter

logger = get_logger("services.sequence")


class SequenceService:
    """
    Service for generating transactional sequence numbers.

    Contract:
        ``next_value(name)`` returns a value strictly greater than every
        value previously committed for ``name``.  The counter row stays
        locked until the caller's transaction ends.

    Non-goals:
        - Does NOT call ``session.commit()``.
    """

    TRANSACTION_GROUP = "transaction_group"

    def __init__(self, session: Session):
        self._session = session

    def _locked_counter(self, sequence_name: str) -> SequenceCounter | None:
        return self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def next_value(self, sequence_name: str = TRANSACTION_GROUP) -> int:
        """
        Lock the counter row (creating it on first use), increment, return.

        Postconditions:
            - Returns an integer > 0, greater than any value previously
              returned for this name in a committed transaction.
        """
        # populate_existing re-reads the row even if it is already in the
        # identity map, so a long-lived session never sees a stale value.
        counter = self._locked_counter(sequence_name)

        if counter is None:
            savepoint = self._session.begin_nested()
            try:
                counter = SequenceCounter(name=sequence_name, current_value=1)
                self._session.add(counter)
                self._session.flush()
                savepoint.commit()
                logger.debug(
                    "sequence_allocated",
                    extra={"sequence_name": sequence_name, "value": 1},
                )
                return 1
            except IntegrityError:
                logger.debug(
                    "sequence_counter_race_retry",
                    extra={"sequence_name": sequence_name},
                )
                savepoint.rollback()
                counter = self._locked_counter(sequence_name)
                if counter is None:
                    raise

        counter.current_value += 1
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value

    def current_value(self, sequence_name: str = TRANSACTION_GROUP) -> int:
        """
        Current value without incrementing or locking (0 if never used).

        Used as a read watermark: every group with seq <= this value was
        committed before the read began.
        """
        value = self._session.execute(
            select(SequenceCounter.current_value)
            .where(SequenceCounter.name == sequence_name)
        ).scalar_one_or_none()
        return value or 0

    def reset(self, sequence_name: str, value: int = 0) -> None:
        """
        Reset a sequence to a specific value.

        WARNING: tests and migrations only.
        """
        counter = self._locked_counter(sequence_name)
        if counter is None:
            counter = SequenceCounter(name=sequence_name, current_value=value)
            self._session.add(counter)
        else:
            counter.current_value = value
        self._session.flush()
