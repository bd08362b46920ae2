"""
Pydantic schemas for revenue operations.

RevenueCreate keeps every field optional: missing or bad values are
reported by RevenueValidator as a complete error list rather than
rejected one at a time by pydantic.
"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from ftms.models.enums import ARStatus, RemittanceStatus


class InstallmentScheduleIn(BaseModel):
    number_of_payments: int | None = None
    payment_amount: Decimal | None = None
    frequency: str | None = None
    start_date: date | None = None


class RevenueCreate(BaseModel):
    source_id: int | None = None
    category_id: int | None = None
    description: str | None = None
    amount: Decimal | None = None
    payment_method_id: int | None = None
    created_by: str | None = None
    transaction_date: date | None = None
    bus_trip_cache_id: int | None = None
    loan_payment_id: int | None = None
    is_accounts_receivable: bool = False
    ar_due_date: date | None = None
    ar_status: str | None = None
    ar_paid_date: date | None = None
    is_installment: bool = False
    installment_schedule: InstallmentScheduleIn | None = None
    external_ref_type: str | None = None
    external_ref_id: str | None = None
    remarks: str | None = None


class PaymentIn(BaseModel):
    amount: Decimal = Field(gt=0)
    payment_method_id: int | None = None
    paid_date: date | None = None
    reference_number: str | None = Field(default=None, max_length=100)
    remarks: str | None = None


class RecordPaymentsRequest(BaseModel):
    performed_by: str = Field(min_length=1, max_length=100)
    payments: list[PaymentIn] = Field(min_length=1)
    allow_overpayment: bool = False


class CreateJournalEntryRequest(BaseModel):
    performed_by: str = Field(min_length=1, max_length=100)


class RevenuePaymentResponse(BaseModel):
    id: int
    amount: Decimal
    payment_method_id: int | None
    paid_date: date
    reference_number: str | None

    model_config = {"from_attributes": True}


class RevenueResponse(BaseModel):
    id: int
    revenue_code: str | None
    description: str
    category_id: int | None
    source_id: int | None
    payment_method_id: int | None
    payment_status_id: int | None
    total_amount: Decimal
    collection_date: date
    due_date: date | None
    is_receivable: bool
    ar_status: ARStatus | None
    outstanding_balance: Decimal
    bus_trip_id: str | None
    assignment_id: str | None
    remittance_status: RemittanceStatus | None = None
    shortage_amount: Decimal | None = None
    external_ref_type: str | None
    external_ref_id: str | None
    journal_entry_id: int | None
    created_by: str
    created_at: datetime

    model_config = {"from_attributes": True}
