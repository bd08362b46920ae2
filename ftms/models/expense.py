"""
Expense, reimbursement and accounts-payable models.

An expense may fan out into one reimbursement per claiming employee
(amounts summing to the expense total) and/or one payable row for
the balance owed to a vendor.
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    String, Boolean, Date, DateTime, Text, Numeric, ForeignKey, UniqueConstraint,
    Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ftms.models.base import Base
from ftms.models.enums import ReimbursementStatus, PayableStatus


# Reimbursement state machine. Terminal states map to an empty set.
VALID_TRANSITIONS: dict[ReimbursementStatus, set[ReimbursementStatus]] = {
    ReimbursementStatus.PENDING: {
        ReimbursementStatus.APPROVED,
        ReimbursementStatus.REJECTED,
        ReimbursementStatus.CANCELLED,
    },
    ReimbursementStatus.APPROVED: {ReimbursementStatus.PAID},
    ReimbursementStatus.PAID: set(),
    ReimbursementStatus.REJECTED: set(),
    ReimbursementStatus.CANCELLED: set(),
}


class ExpenseRecord(Base):
    __tablename__ = "expense_records"

    id: Mapped[int] = mapped_column(primary_key=True)
    expense_code: Mapped[str | None] = mapped_column(String(20), unique=True, nullable=True)
    category_id: Mapped[int] = mapped_column(
        ForeignKey("global_categories.id"), nullable=False, index=True
    )
    payment_method_id: Mapped[int] = mapped_column(
        ForeignKey("global_payment_methods.id"), nullable=False
    )
    assignment_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    bus_trip_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(19, 4), nullable=False)
    expense_date: Mapped[date] = mapped_column(Date, nullable=False)
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_by: Mapped[str] = mapped_column(String(100), nullable=False)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    category: Mapped["GlobalCategory"] = relationship()
    payment_method: Mapped["GlobalPaymentMethod"] = relationship()
    reimbursements: Mapped[list["Reimbursement"]] = relationship(
        back_populates="expense"
    )
    payable: Mapped["AccountsPayable | None"] = relationship(
        back_populates="expense"
    )

    def __repr__(self) -> str:
        return f"<ExpenseRecord {self.expense_code} {self.total_amount}>"


class Reimbursement(Base):
    __tablename__ = "reimbursements"
    __table_args__ = (
        UniqueConstraint("expense_id", "employee_id", name="uq_reimbursement_employee"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    expense_id: Mapped[int] = mapped_column(
        ForeignKey("expense_records.id"), nullable=False, index=True
    )
    employee_id: Mapped[str] = mapped_column(String(100), nullable=False)
    employee_name: Mapped[str] = mapped_column(String(255), nullable=False)
    job_title: Mapped[str | None] = mapped_column(String(100), nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(19, 4), nullable=False)
    status: Mapped[ReimbursementStatus] = mapped_column(
        SAEnum(ReimbursementStatus, name="reimbursement_status_enum", create_constraint=True),
        nullable=False,
        default=ReimbursementStatus.PENDING,
    )
    requested_date: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    approved_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    approved_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    paid_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    paid_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    payment_reference: Mapped[str | None] = mapped_column(String(100), nullable=True)
    payment_method_id: Mapped[int | None] = mapped_column(
        ForeignKey("global_payment_methods.id"), nullable=True
    )
    cancelled_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    cancelled_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[str] = mapped_column(String(100), nullable=False)
    updated_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    expense: Mapped["ExpenseRecord"] = relationship(back_populates="reimbursements")
    payment_method: Mapped["GlobalPaymentMethod | None"] = relationship()

    def can_transition_to(self, new_status: ReimbursementStatus) -> bool:
        """Check if a state transition is valid."""
        return new_status in VALID_TRANSITIONS.get(self.status, set())

    def __repr__(self) -> str:
        return (
            f"<Reimbursement {self.employee_id} "
            f"{self.amount} ({self.status.value})>"
        )


class AccountsPayable(Base):
    __tablename__ = "accounts_payable"

    id: Mapped[int] = mapped_column(primary_key=True)
    expense_id: Mapped[int] = mapped_column(
        ForeignKey("expense_records.id"), unique=True, nullable=False
    )
    vendor_name: Mapped[str] = mapped_column(String(255), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(19, 4), nullable=False)
    balance: Mapped[Decimal] = mapped_column(Numeric(19, 4), nullable=False)
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    status: Mapped[PayableStatus] = mapped_column(
        SAEnum(PayableStatus, name="payable_status_enum", create_constraint=True),
        nullable=False,
        default=PayableStatus.PENDING,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    expense: Mapped["ExpenseRecord"] = relationship(back_populates="payable")
