"""
Module: ledger_modules.revenue.orm
Responsibility:
    SQLAlchemy ORM persistence for revenue recognition records.  Maps the
    frozen ``RevenueRecognition`` DTO to the ``revenue_recognitions``
    table.

Architecture position:
    **Modules layer** -- ORM model inheriting from ``TrackedBase``.

Invariants enforced:
    - Monetary fields are Decimal (Numeric(38,9)).
    - Status, trigger and charter type are stored as String(30).
    - At most one recognition entry per record: the journal entry is
      generated with the source key ``revenue_recognition:<id>``.

Failure modes:
    - ForeignKey violation on an unknown journal entry reference.

Audit relevance:
    - recognized_by / recognition_date / recognition_trigger record the
      release of deferred revenue; the two journal entry ids link the
      deposit and the recognition entries.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from ledger_kernel.db.base import TrackedBase, UUIDString


class RevenueRecognitionModel(TrackedBase):
    """
    Deferred income awaiting (or released by) recognition.

    Guarantees:
        - ``status`` is one of pending, recognized, needs_review,
          manual_recognized.
        - ``thb_amount`` is fixed at creation.
    """

    __tablename__ = "revenue_recognitions"

    __table_args__ = (
        Index("idx_revenue_recognition_company", "company_id"),
        Index("idx_revenue_recognition_status_end", "status", "charter_date_to"),
        Index("idx_revenue_recognition_receipt", "receipt_id"),
    )

    company_id: Mapped[str] = mapped_column(String(64), nullable=False)
    project_id: Mapped[str] = mapped_column(String(64), nullable=False)

    receipt_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    receipt_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    invoice_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    charter_type: Mapped[str | None] = mapped_column(String(30), nullable=True)
    charter_date_from: Mapped[date | None] = mapped_column(Date, nullable=True)
    charter_date_to: Mapped[date | None] = mapped_column(Date, nullable=True)

    status: Mapped[str] = mapped_column(String(30), nullable=False)

    amount: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    fx_rate: Mapped[Decimal] = mapped_column(Numeric(38, 18), nullable=False)
    thb_amount: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    deferred_revenue_account: Mapped[str] = mapped_column(String(20), nullable=False)
    revenue_account: Mapped[str] = mapped_column(String(20), nullable=False)

    recognition_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    recognition_trigger: Mapped[str | None] = mapped_column(String(30), nullable=True)
    recognized_by: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Dr Bank / Cr Deferred Revenue, recorded outside this module
    deferred_journal_entry_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("journal_entries.id"),
        nullable=True,
    )
    # Dr Deferred Revenue / Cr Revenue
    recognition_journal_entry_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("journal_entries.id"),
        nullable=True,
    )

    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    client_name: Mapped[str | None] = mapped_column(String(200), nullable=True)

    def to_dto(self):
        from ledger_modules.revenue.models import (
            CharterType,
            RecognitionStatus,
            RecognitionTrigger,
            RevenueRecognition,
        )

        return RevenueRecognition(
            id=self.id,
            company_id=self.company_id,
            project_id=self.project_id,
            status=RecognitionStatus(self.status),
            amount=self.amount,
            currency=self.currency,
            fx_rate=self.fx_rate,
            thb_amount=self.thb_amount,
            deferred_revenue_account=self.deferred_revenue_account,
            revenue_account=self.revenue_account,
            receipt_id=self.receipt_id,
            receipt_number=self.receipt_number,
            invoice_id=self.invoice_id,
            charter_type=CharterType(self.charter_type) if self.charter_type else None,
            charter_date_from=self.charter_date_from,
            charter_date_to=self.charter_date_to,
            recognition_date=self.recognition_date,
            trigger=(
                RecognitionTrigger(self.recognition_trigger)
                if self.recognition_trigger else None
            ),
            recognized_by=self.recognized_by,
            deferred_journal_entry_id=self.deferred_journal_entry_id,
            recognition_journal_entry_id=self.recognition_journal_entry_id,
            description=self.description,
            client_name=self.client_name,
        )

    def __repr__(self) -> str:
        return f"<RevenueRecognitionModel {self.id} ({self.status})>"
