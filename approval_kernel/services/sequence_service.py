"""
SequenceService -- request number allocation via locked counter rows.

Responsibility:
    Provides strictly increasing values per named sequence, used to build
    the human-readable ``request_number`` (``REQ-2024-000042``).  Uses a
    dedicated counter table with row-level locking (``SELECT ... FOR
    UPDATE``) to guarantee uniqueness under concurrent access.

Architecture position:
    Kernel > Services.  Called by the request state machine when a draft
    is created.

Invariants enforced:
    - Monotonic: the locked counter row is the sole source of truth for the
      next value; max(request_number)+1 is never used.
    - Transactional: the increment is only visible after the caller's
      transaction commits.  Rollback returns the value.

Failure modes:
    - IntegrityError on the first-use counter creation race is handled via
      savepoint rollback and retry.
"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from approval_kernel.logging_config import get_logger
from approval_kernel.models.sequence import SequenceCounter

logger = get_logger("services.sequence")


class SequenceService:
    """
    Service for generating transactional sequence numbers.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
    """

    REQUEST_NUMBER = "request_number"

    def __init__(self, session: Session):
        self._session = session

    def next_value(self, sequence_name: str) -> int:
        """
        Get the next value for a named sequence.

        Locks the counter row (creating it on first use), increments it and
        returns the new value.

        Returns:
            The next sequence value (always > 0).
        """
        counter = self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

        if counter is None:
            # Another session may create the counter at the same time; use a
            # savepoint so losing that race doesn't roll back the caller's work.
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
                counter = self._session.execute(
                    select(SequenceCounter)
                    .where(SequenceCounter.name == sequence_name)
                    .with_for_update()
                    .execution_options(populate_existing=True)
                ).scalar_one()

        counter.current_value += 1
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value

    def next_request_number(self, year: int) -> str:
        """Allocate the next human-readable request number."""
        value = self.next_value(self.REQUEST_NUMBER)
        return f"REQ-{year}-{value:06d}"
