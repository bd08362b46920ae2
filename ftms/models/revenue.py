"""
Revenue models.

A revenue record is either collected (cash in hand on collection_date)
or receivable (collected later, tracked against due_date). Its
outstanding balance is always derived from its payments:
max(0, total_amount - sum(payments)).
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    String, Boolean, Date, DateTime, Text, Numeric, Integer, ForeignKey, Index,
    Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ftms.models.base import Base
from ftms.models.enums import ARStatus, RemittanceStatus


class RevenueRecord(Base):
    __tablename__ = "revenue_records"

    id: Mapped[int] = mapped_column(primary_key=True)
    revenue_code: Mapped[str | None] = mapped_column(String(20), unique=True, nullable=True)
    description: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    category_id: Mapped[int | None] = mapped_column(
        ForeignKey("global_categories.id"), nullable=True, index=True
    )
    source_id: Mapped[int | None] = mapped_column(
        ForeignKey("revenue_sources.id"), nullable=True
    )
    payment_method_id: Mapped[int | None] = mapped_column(
        ForeignKey("global_payment_methods.id"), nullable=True
    )
    payment_status_id: Mapped[int | None] = mapped_column(
        ForeignKey("global_payment_statuses.id"), nullable=True
    )
    total_amount: Mapped[Decimal] = mapped_column(Numeric(19, 4), nullable=False)
    collection_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    is_receivable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    ar_status: Mapped[ARStatus | None] = mapped_column(
        SAEnum(ARStatus, name="ar_status_enum", create_constraint=True),
        nullable=True,
    )
    ar_paid_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    outstanding_balance: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    bus_trip_cache_id: Mapped[int | None] = mapped_column(
        ForeignKey("bus_trip_cache.id"), nullable=True
    )
    bus_trip_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    assignment_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    remittance_status: Mapped[RemittanceStatus | None] = mapped_column(
        SAEnum(RemittanceStatus, name="remittance_status_enum", create_constraint=True),
        nullable=True,
    )
    shortage_amount: Mapped[Decimal | None] = mapped_column(Numeric(19, 4), nullable=True)
    loan_payment_id: Mapped[int | None] = mapped_column(
        ForeignKey("loan_payments.id"), unique=True, nullable=True
    )
    external_ref_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    external_ref_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    journal_entry_id: Mapped[int | None] = mapped_column(
        ForeignKey("journal_entries.id"), nullable=True
    )
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[str] = mapped_column(String(100), nullable=False)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    category: Mapped["GlobalCategory | None"] = relationship()
    source: Mapped["RevenueSource | None"] = relationship()
    payment_method: Mapped["GlobalPaymentMethod | None"] = relationship()
    payment_status: Mapped["GlobalPaymentStatus | None"] = relationship()
    payments: Mapped[list["RevenuePayment"]] = relationship(
        back_populates="revenue", cascade="all, delete-orphan"
    )
    installment_schedule: Mapped["RevenueInstallmentSchedule | None"] = relationship(
        back_populates="revenue", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<RevenueRecord {self.revenue_code} {self.total_amount}>"


# One live revenue per (trip, assignment, category). Soft-deleted rows
# don't count, so a deleted revenue can be recreated.
Index(
    "uq_revenue_bus_trip_category",
    RevenueRecord.bus_trip_id,
    RevenueRecord.assignment_id,
    RevenueRecord.category_id,
    unique=True,
    sqlite_where=RevenueRecord.is_deleted.is_(False),
    postgresql_where=RevenueRecord.is_deleted.is_(False),
)


class RevenuePayment(Base):
    __tablename__ = "revenue_payments"

    id: Mapped[int] = mapped_column(primary_key=True)
    revenue_id: Mapped[int] = mapped_column(
        ForeignKey("revenue_records.id"), nullable=False, index=True
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(19, 4), nullable=False)
    payment_method_id: Mapped[int | None] = mapped_column(
        ForeignKey("global_payment_methods.id"), nullable=True
    )
    paid_date: Mapped[date] = mapped_column(Date, nullable=False)
    reference_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    revenue: Mapped["RevenueRecord"] = relationship(back_populates="payments")


class RevenueInstallmentSchedule(Base):
    __tablename__ = "revenue_installment_schedules"

    id: Mapped[int] = mapped_column(primary_key=True)
    revenue_id: Mapped[int] = mapped_column(
        ForeignKey("revenue_records.id"), unique=True, nullable=False
    )
    number_of_payments: Mapped[int] = mapped_column(Integer, nullable=False)
    payment_amount: Mapped[Decimal] = mapped_column(Numeric(19, 4), nullable=False)
    frequency: Mapped[str] = mapped_column(String(20), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)

    revenue: Mapped["RevenueRecord"] = relationship(
        back_populates="installment_schedule"
    )


class LoanPayment(Base):
    """A repayment received against an employee or trip-deficit loan."""

    __tablename__ = "loan_payments"

    id: Mapped[int] = mapped_column(primary_key=True)
    loan_reference: Mapped[str] = mapped_column(String(100), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(19, 4), nullable=False)
    paid_date: Mapped[date] = mapped_column(Date, nullable=False)

    revenue: Mapped["RevenueRecord | None"] = relationship(
        primaryjoin="LoanPayment.id == RevenueRecord.loan_payment_id",
        uselist=False,
        viewonly=True,
    )
