"""
Pydantic schemas for expenses and reimbursements.
"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field, model_validator

from ftms.models.enums import (
    ReimbursementStatus,
    ReimbursementAction,
    PayableStatus,
)


class ReimbursementIn(BaseModel):
    employee_id: str = Field(min_length=1, max_length=100)
    amount: Decimal = Field(gt=0)


class PayableIn(BaseModel):
    vendor_name: str = Field(min_length=1, max_length=255)
    amount: Decimal = Field(gt=0)
    due_date: date | None = None


class ExpenseCreate(BaseModel):
    category_id: int | None = None
    category: str | None = None
    payment_method_id: int | None = None
    payment_method: str | None = None
    assignment_id: str | None = None
    bus_trip_id: str | None = None
    total_amount: Decimal = Field(gt=0)
    expense_date: date
    description: str | None = Field(default=None, max_length=255)
    created_by: str = Field(min_length=1, max_length=100)
    reimbursements: list[ReimbursementIn] = Field(default_factory=list)
    payable: PayableIn | None = None

    @model_validator(mode="after")
    def category_and_method_given(self):
        if self.category_id is None and not self.category:
            raise ValueError("category_id or category is required")
        if self.payment_method_id is None and not self.payment_method:
            raise ValueError("payment_method_id or payment_method is required")
        return self


class ReimbursementResponse(BaseModel):
    id: int
    expense_id: int
    employee_id: str
    employee_name: str
    job_title: str | None
    amount: Decimal
    status: ReimbursementStatus
    requested_date: datetime
    approved_by: str | None
    approved_date: datetime | None
    rejection_reason: str | None
    paid_by: str | None
    paid_date: datetime | None
    payment_reference: str | None
    payment_method_id: int | None
    cancelled_by: str | None
    cancelled_date: datetime | None
    remarks: str | None

    model_config = {"from_attributes": True}


class PayableResponse(BaseModel):
    id: int
    vendor_name: str
    amount: Decimal
    balance: Decimal
    due_date: date | None
    status: PayableStatus

    model_config = {"from_attributes": True}


class ExpenseResponse(BaseModel):
    id: int
    expense_code: str | None
    category_id: int
    payment_method_id: int
    assignment_id: str | None
    bus_trip_id: str | None
    total_amount: Decimal
    expense_date: date
    description: str | None
    created_by: str
    reimbursements: list[ReimbursementResponse]
    payable: PayableResponse | None

    model_config = {"from_attributes": True}


class ReimbursementActionRequest(BaseModel):
    reimbursement_id: int
    action: ReimbursementAction
    performed_by: str = Field(min_length=1, max_length=100)
    payment_method: str | None = None
    payment_reference: str | None = Field(default=None, max_length=100)
    rejection_reason: str | None = None
    remarks: str | None = None


class EmployeeResponse(BaseModel):
    employee_id: str
    name: str
    job_title: str | None
    department: str | None
    phone: str | None = None
