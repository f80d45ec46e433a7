"""
Module: ledger_kernel.models.journal
Responsibility: ORM persistence for journal entries and journal lines -- the
    single source of financial truth in the ledger.
Architecture position: Kernel > Models.  May import from db/ and the pure
    domain enums only.  MUST NOT import from services/ or selectors/.

Invariants enforced:
    - reference_number is UNIQUE and assigned once, at creation.
    - source_key is UNIQUE when present: a generated entry (revenue
      recognition, prior-year import, year-end close) can exist at most once
      per business key, even if the generating call is retried.
    - Balance (|debits - credits| < 0.01) is checked by JournalEntryService
      before posting; ``is_balanced`` here is a read-side convenience.
    - Posted entries are never updated or deleted (enforced by
      LedgerStore / JournalEntryService).

Failure modes:
    - IntegrityError on duplicate reference_number or source_key.

Audit relevance:
    JournalEntry and JournalLine rows are the authoritative financial record.
    Trial balance, balance sheet and year-end close all derive from posted
    rows only; drafts never reach a report.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import Base, TrackedBase, UUIDString
from ledger_kernel.domain.journal import (
    EntrySource,
    JournalEntryStatus,
    LineSide,
    is_balanced,
    line_totals,
)


class JournalEntry(TrackedBase):
    """
    Journal entry header -- the atomic unit of double-entry accounting.

    Contract:
        Created as DRAFT by JournalEntryService.create_entry (or directly
        as POSTED through create_posted_entry for generated historical and
        recognition entries).  Once POSTED, header and lines are frozen.

    Guarantees:
        - total_debit / total_credit equal the sums of the line reporting
          amounts; they are recomputed in the same flush as any line change.
    """

    __tablename__ = "journal_entries"

    __table_args__ = (
        UniqueConstraint("reference_number", name="uq_journal_reference_number"),
        UniqueConstraint("source_key", name="uq_journal_source_key"),
        Index("idx_journal_company_date", "company_id", "entry_date"),
        Index("idx_journal_status", "status"),
    )

    reference_number: Mapped[str] = mapped_column(String(30), nullable=False)

    company_id: Mapped[str] = mapped_column(String(64), nullable=False)

    # Accounting date; drives reports and the reference-number year
    entry_date: Mapped[date] = mapped_column(Date, nullable=False)

    description: Mapped[str] = mapped_column(String(500), nullable=False)

    status: Mapped[JournalEntryStatus] = mapped_column(
        String(10),
        default=JournalEntryStatus.DRAFT,
        nullable=False,
    )

    total_debit: Mapped[Decimal] = mapped_column(
        Numeric(38, 9), nullable=False, default=Decimal("0"),
    )

    total_credit: Mapped[Decimal] = mapped_column(
        Numeric(38, 9), nullable=False, default=Decimal("0"),
    )

    source_type: Mapped[EntrySource] = mapped_column(
        String(30),
        default=EntrySource.MANUAL,
        nullable=False,
    )

    # Idempotency key of generated entries, e.g. "revenue_recognition:<id>"
    source_key: Mapped[str | None] = mapped_column(String(200), nullable=True)

    # Entry this one derives from (a recognition entry points at its deposit)
    related_entry_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("journal_entries.id"),
        nullable=True,
    )

    posted_by: Mapped[str | None] = mapped_column(String(100), nullable=True)

    posted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )

    lines: Mapped[list["JournalLine"]] = relationship(
        back_populates="entry",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="JournalLine.line_seq",
    )

    def __repr__(self) -> str:
        return f"<JournalEntry {self.reference_number} status={self.status}>"

    @property
    def is_posted(self) -> bool:
        return self.status == JournalEntryStatus.POSTED

    @property
    def is_draft(self) -> bool:
        return self.status == JournalEntryStatus.DRAFT

    @property
    def is_balanced(self) -> bool:
        """Read-side balance check over the persisted lines."""
        return is_balanced(self.lines)

    def recompute_totals(self) -> None:
        """Set total_debit/total_credit from the current lines."""
        self.total_debit, self.total_credit = line_totals(self.lines)


class JournalLine(Base):
    """
    Individual debit or credit line within a journal entry.

    Guarantees:
        - amount is never negative; ``side`` determines the direction.
        - reporting_amount = round_money(amount * fx_rate), fixed when the
          line is recorded; reports aggregate this column.
        - line_seq gives a stable order within the entry.
    """

    __tablename__ = "journal_lines"

    __table_args__ = (
        Index("idx_line_entry", "journal_entry_id"),
        Index("idx_line_account", "account_code"),
    )

    journal_entry_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("journal_entries.id"),
        nullable=False,
    )

    line_seq: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    account_code: Mapped[str] = mapped_column(String(20), nullable=False)

    side: Mapped[LineSide] = mapped_column(String(10), nullable=False)

    # Amount in the line currency
    amount: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    currency: Mapped[str] = mapped_column(String(3), nullable=False)

    fx_rate: Mapped[Decimal] = mapped_column(
        Numeric(38, 18), nullable=False, default=Decimal("1"),
    )

    # Amount in the reporting currency
    reporting_amount: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    memo: Mapped[str | None] = mapped_column(String(500), nullable=True)

    entry: Mapped["JournalEntry"] = relationship(back_populates="lines")

    def __repr__(self) -> str:
        return f"<JournalLine {self.account_code} {self.side} {self.amount} {self.currency}>"
