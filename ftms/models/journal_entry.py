"""
Journal entry models.

A journal entry groups ordered lines. Each line hits one account on
exactly one side. Within an entry the debit total must equal the
credit total before it can be posted; that rule is enforced by
JournalService, the model only reports it through is_balanced.
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    String, Date, DateTime, Text, Numeric, Integer, ForeignKey,
    Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ftms.models.base import Base
from ftms.models.enums import JournalEntryType, JournalEntryStatus


class JournalEntry(Base):
    __tablename__ = "journal_entries"

    id: Mapped[int] = mapped_column(primary_key=True)
    code: Mapped[str | None] = mapped_column(String(20), unique=True, nullable=True)
    entry_date: Mapped[date] = mapped_column(Date, nullable=False)
    description: Mapped[str] = mapped_column(String(255), nullable=False)
    entry_type: Mapped[JournalEntryType] = mapped_column(
        SAEnum(JournalEntryType, name="journal_entry_type_enum", create_constraint=True),
        nullable=False,
        default=JournalEntryType.MANUAL,
    )
    status: Mapped[JournalEntryStatus] = mapped_column(
        SAEnum(JournalEntryStatus, name="journal_entry_status_enum", create_constraint=True),
        nullable=False,
        default=JournalEntryStatus.DRAFT,
    )
    total_debit: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    total_credit: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    source_module: Mapped[str | None] = mapped_column(String(50), nullable=True)
    source_ref: Mapped[str | None] = mapped_column(String(100), nullable=True)
    reversal_of_id: Mapped[int | None] = mapped_column(
        ForeignKey("journal_entries.id"), nullable=True
    )
    created_by: Mapped[str] = mapped_column(String(100), nullable=False)
    posted_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    posted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    reversal_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    lines: Mapped[list["JournalEntryLine"]] = relationship(
        back_populates="journal_entry",
        order_by="JournalEntryLine.line_number",
        cascade="all, delete-orphan",
    )
    reversal_of: Mapped["JournalEntry | None"] = relationship(
        remote_side=[id]
    )

    @property
    def is_balanced(self) -> bool:
        return Decimal(self.total_debit or 0) == Decimal(self.total_credit or 0)

    def __repr__(self) -> str:
        return f"<JournalEntry {self.code} {self.status.value}>"


class JournalEntryLine(Base):
    __tablename__ = "journal_entry_lines"

    id: Mapped[int] = mapped_column(primary_key=True)
    journal_entry_id: Mapped[int] = mapped_column(
        ForeignKey("journal_entries.id"), nullable=False, index=True
    )
    account_id: Mapped[int] = mapped_column(
        ForeignKey("chart_of_accounts.id"), nullable=False, index=True
    )
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)
    debit_amount: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    credit_amount: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )

    journal_entry: Mapped["JournalEntry"] = relationship(back_populates="lines")
    account: Mapped["ChartOfAccount"] = relationship(back_populates="journal_lines")

    def __repr__(self) -> str:
        return (
            f"<JournalEntryLine #{self.line_number} "
            f"Dr {self.debit_amount} Cr {self.credit_amount}>"
        )
