"""
SequenceService -- named counters via locked counter rows.

Responsibility:
    Hand out strictly increasing integers per sequence name.  Document
    numbering uses one sequence per (form code, year-month).

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    - The locked counter row is the sole source of truth for the next
      value; MAX(existing)+1 over documents is never computed.
    - The increment is only visible once the caller's transaction commits;
      a rollback returns the value.

Failure modes:
    - IntegrityError on a concurrent first-use insert is absorbed with a
      savepoint rollback and a locked re-read.
"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from approval_kernel.logging_config import get_logger
from approval_kernel.models.sequence import SequenceCounter
from approval_kernel.services.base import BaseService

logger = get_logger("services.sequence")


class SequenceService(BaseService):
    """Allocates transactional sequence values."""

    def _locked_counter(self, sequence_name: str) -> SequenceCounter | None:
        return self.session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def next_value(self, sequence_name: str) -> int:
        """
        Lock (or create) the named counter, increment it and return the
        new value.  The first value of a sequence is 1.
        """
        counter = self._locked_counter(sequence_name)

        if counter is None:
            savepoint = self.session.begin_nested()
            try:
                counter = SequenceCounter(name=sequence_name, current_value=1)
                self.session.add(counter)
                self.session.flush()
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
        self.session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value

    def current_value(self, sequence_name: str) -> int | None:
        """Current value without incrementing, or None if never used."""
        counter = self.session.execute(
            select(SequenceCounter).where(SequenceCounter.name == sequence_name)
        ).scalar_one_or_none()
        return counter.current_value if counter else None
