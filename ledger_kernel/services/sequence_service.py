"""
SequenceService -- per-(prefix, year) reference numbers via locked counter rows.

Responsibility:
    Allocates journal reference numbers of the form ``{PREFIX}-{YYYY}-{NNN}``.
    Each (prefix, year) pair owns a row in ``reference_counters``; the row
    is locked (``SELECT ... FOR UPDATE``) and incremented inside the
    caller's transaction, so two concurrent creations can never receive
    the same number.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.
    Called by JournalEntryService when an entry is created.

Invariants enforced:
    - Counting existing entries (or MAX + 1) is FORBIDDEN: the locked counter
      row is the sole source of truth for the next number.
    - Numbers are strictly increasing within a (prefix, year) pair.
    - The increment is only visible after the caller's transaction commits;
      a rollback returns the number.

Failure modes:
    - IntegrityError: concurrent first use of a counter (handled via
      savepoint rollback and re-read under lock).

Audit relevance:
    Reference numbers are what accountants quote; a duplicate would make two
    entries indistinguishable in every printed report.  Allocation is logged
    as ``reference_number_allocated``.
"""

from sqlalchemy import BigInteger, String, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Mapped, Session, mapped_column

from ledger_kernel.db.base import Base
from ledger_kernel.logging_config import get_logger

logger = get_logger("services.sequence")

REFERENCE_DIGITS = 3


class ReferenceCounter(Base):
    """
    Counter row for one (prefix, year) reference series.

    Row-level locking on this row serialises allocation.
    """

    __tablename__ = "reference_counters"

    # Series name, e.g. "JE-2025"
    name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)

    current_value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)


def series_name(prefix: str, year: int) -> str:
    return f"{prefix}-{year:04d}"


def format_reference(prefix: str, year: int, value: int) -> str:
    """``("JE", 2025, 7)`` -> ``"JE-2025-007"``.  Widens past 999."""
    return f"{series_name(prefix, year)}-{value:0{REFERENCE_DIGITS}d}"


class SequenceService:
    """
    Service for generating transactional reference numbers.

    Guarantees:
        - Strictly increasing values per series via a locked counter row.
        - Concurrency safety: ``SELECT ... FOR UPDATE`` on PostgreSQL,
          ``BEGIN IMMEDIATE`` transactions on SQLite.

    Non-goals:
        - Does NOT call ``session.commit()`` -- the caller controls boundaries.

    Usage:
        with session_scope() as session:
            ref = SequenceService(session).next_reference("JE", 2025)
    """

    def __init__(self, session: Session):
        self._session = session

    def _locked_counter(self, name: str) -> ReferenceCounter | None:
        return self._session.execute(
            select(ReferenceCounter)
            .where(ReferenceCounter.name == name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def next_value(self, name: str) -> int:
        """
        Lock (or create) the counter row for ``name``, increment it and
        return the new value (always > 0).
        """
        counter = self._locked_counter(name)

        if counter is None:
            # First use of this series.  Another transaction may be creating
            # the same row; a savepoint keeps the caller's work intact.
            savepoint = self._session.begin_nested()
            try:
                counter = ReferenceCounter(name=name, current_value=1)
                self._session.add(counter)
                self._session.flush()
                savepoint.commit()
                logger.debug(
                    "reference_counter_created",
                    extra={"series": name},
                )
                return 1
            except IntegrityError:
                logger.debug("reference_counter_race_retry", extra={"series": name})
                savepoint.rollback()
                counter = self._locked_counter(name)
                if counter is None:
                    raise

        counter.current_value += 1
        self._session.flush()
        return counter.current_value

    def next_reference(self, prefix: str, year: int) -> str:
        """Allocate the next ``{PREFIX}-{YYYY}-{NNN}`` reference number."""
        value = self.next_value(series_name(prefix, year))
        reference = format_reference(prefix, year, value)
        logger.info(
            "reference_number_allocated",
            extra={"prefix": prefix, "year": year, "value": value, "reference_number": reference},
        )
        return reference

    def current_value(self, prefix: str, year: int) -> int | None:
        """Last allocated value of a series, or None if never used."""
        counter = self._session.execute(
            select(ReferenceCounter).where(ReferenceCounter.name == series_name(prefix, year))
        ).scalar_one_or_none()
        return counter.current_value if counter else None
