"""
LedgerStore -- journal storage with single-writer-per-company locking.

Responsibility:
    The append / query-by-predicate / update-by-id / remove-by-id storage
    abstraction behind JournalEntryService.  Every mutating call first takes
    the company's writer lock: a row in ``ledger_partitions`` selected
    ``FOR UPDATE`` (PostgreSQL) inside a ``BEGIN IMMEDIATE`` transaction
    (SQLite).  Writers for one company are therefore serialised by the
    database, not by calling code.

Architecture position:
    Kernel > Services -- imperative shell.  Owns no transaction: it flushes,
    the caller (``session_scope``) commits.

Invariants enforced:
    - Mutations of a company's ledger are linearizable: the partition lock
      is held until the caller's transaction ends.
    - ``update`` and ``remove`` re-read the entry under the lock, so guards
      evaluated by the caller's callback see committed state (a concurrent
      post cannot slip in between the check and the change).
    - Line replacement and total recomputation happen in one flush.

Failure modes:
    - JournalEntryNotFoundError for an unknown id.
    - IntegrityError on duplicate reference_number or source_key.
"""

from dataclasses import dataclass
from datetime import date
from typing import Callable
from uuid import UUID

from sqlalchemy import BigInteger, String, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Mapped, Session, mapped_column

from ledger_kernel.db.base import Base
from ledger_kernel.domain.journal import EntrySource, JournalEntryStatus
from ledger_kernel.exceptions import JournalEntryNotFoundError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.journal import JournalEntry

logger = get_logger("services.ledger_store")


class LedgerPartition(Base):
    """One row per company; locking it serialises that company's writers."""

    __tablename__ = "ledger_partitions"

    company_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)

    # Bumped by every write; also useful as a cheap change counter
    version: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)


@dataclass(frozen=True)
class JournalQuery:
    """Predicate for ``LedgerStore.query``.  None fields do not filter."""

    company_id: str | None = None
    status: JournalEntryStatus | None = None
    date_from: date | None = None
    date_to: date | None = None
    source_type: EntrySource | None = None
    limit: int | None = None


class LedgerStore:
    """
    SQLAlchemy-backed journal storage.

    Contract:
        ``append``, ``update`` and ``remove`` lock the company partition
        before touching data.  Reads take no locks.
    """

    def __init__(self, session: Session):
        self._session = session

    @property
    def session(self) -> Session:
        return self._session

    # =========================================================================
    # Locking
    # =========================================================================

    def _select_partition(self, company_id: str) -> LedgerPartition | None:
        return self._session.execute(
            select(LedgerPartition)
            .where(LedgerPartition.company_id == company_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def lock_company(self, company_id: str) -> None:
        """Take the writer lock of ``company_id`` for the rest of the transaction."""
        partition = self._select_partition(company_id)
        if partition is None:
            savepoint = self._session.begin_nested()
            try:
                self._session.add(LedgerPartition(company_id=company_id, version=1))
                self._session.flush()
                savepoint.commit()
                return
            except IntegrityError:
                savepoint.rollback()
                partition = self._select_partition(company_id)
                if partition is None:
                    raise
        partition.version += 1
        self._session.flush()

    # =========================================================================
    # Append / read
    # =========================================================================

    def append(self, entry: JournalEntry) -> JournalEntry:
        """Persist a new entry (header and lines) under the company lock."""
        self.lock_company(entry.company_id)
        self._session.add(entry)
        self._session.flush()
        logger.debug(
            "journal_entry_appended",
            extra={"entry_id": str(entry.id), "company_id": entry.company_id},
        )
        return entry

    def get(self, entry_id: UUID) -> JournalEntry | None:
        return self._session.get(JournalEntry, entry_id)

    def require(self, entry_id: UUID) -> JournalEntry:
        entry = self.get(entry_id)
        if entry is None:
            raise JournalEntryNotFoundError(str(entry_id))
        return entry

    def find_by_source_key(self, source_key: str) -> JournalEntry | None:
        return self._session.execute(
            select(JournalEntry).where(JournalEntry.source_key == source_key)
        ).scalar_one_or_none()

    def query(self, predicate: JournalQuery) -> list[JournalEntry]:
        """Entries matching ``predicate``, ordered by date then reference."""
        stmt = select(JournalEntry)
        if predicate.company_id is not None:
            stmt = stmt.where(JournalEntry.company_id == predicate.company_id)
        if predicate.status is not None:
            stmt = stmt.where(JournalEntry.status == predicate.status)
        if predicate.date_from is not None:
            stmt = stmt.where(JournalEntry.entry_date >= predicate.date_from)
        if predicate.date_to is not None:
            stmt = stmt.where(JournalEntry.entry_date <= predicate.date_to)
        if predicate.source_type is not None:
            stmt = stmt.where(JournalEntry.source_type == predicate.source_type)
        stmt = stmt.order_by(JournalEntry.entry_date, JournalEntry.reference_number)
        if predicate.limit is not None:
            stmt = stmt.limit(predicate.limit)
        return list(self._session.execute(stmt).scalars().all())

    # =========================================================================
    # Update / remove
    # =========================================================================

    def _load_locked(self, entry_id: UUID) -> JournalEntry:
        entry = self.require(entry_id)
        self.lock_company(entry.company_id)
        # Re-read under the lock so guards see committed state
        return self._session.execute(
            select(JournalEntry)
            .where(JournalEntry.id == entry_id)
            .execution_options(populate_existing=True)
        ).scalar_one()

    def update(self, entry_id: UUID, apply: Callable[[JournalEntry], None]) -> JournalEntry:
        """
        Apply ``apply(entry)`` under the company lock and flush.

        ``apply`` may raise to veto the change (e.g. the entry is posted);
        nothing is flushed in that case.
        """
        entry = self._load_locked(entry_id)
        apply(entry)
        self._session.flush()
        return entry

    def remove(self, entry_id: UUID, guard: Callable[[JournalEntry], None]) -> None:
        """Delete an entry and its lines after ``guard(entry)`` allows it."""
        entry = self._load_locked(entry_id)
        guard(entry)
        self._session.delete(entry)
        self._session.flush()
        logger.debug(
            "journal_entry_removed",
            extra={"entry_id": str(entry_id), "company_id": entry.company_id},
        )
