"""
Pydantic schemas for bus-trip reconciliation.
"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from ftms.models.enums import RemittanceStatus


class BusTripPayload(BaseModel):
    """One assignment as published by the Operations API."""
    assignment_id: str
    bus_trip_id: str
    bus_route: str = ""
    date_assigned: datetime | None = None
    assignment_type: str | None = None
    assignment_value: Decimal = Decimal("0")
    trip_revenue: Decimal | None = None
    trip_fuel_expense: Decimal = Decimal("0")
    payment_method: str | None = None
    driver_id: str | None = None
    driver_name: str | None = None
    conductor_id: str | None = None
    conductor_name: str | None = None
    bus_plate_number: str | None = None
    is_revenue_recorded: bool = False
    is_expense_recorded: bool = False

    @field_validator("assignment_value", "trip_fuel_expense", mode="before")
    @classmethod
    def none_as_zero(cls, v):
        return Decimal("0") if v is None else v


class CreateRevenueFromTripRequest(BaseModel):
    created_by: str = Field(min_length=1, max_length=100)
    collection_date: date | None = None
    override_amount: Decimal | None = Field(default=None, gt=0)


class BusTripResponse(BaseModel):
    id: int
    assignment_id: str
    bus_trip_id: str
    bus_route: str
    date_assigned: datetime | None
    assignment_type: str | None
    assignment_value: Decimal
    trip_revenue: Decimal | None
    trip_fuel_expense: Decimal
    payment_method: str | None
    is_revenue_recorded: bool
    is_expense_recorded: bool

    model_config = {"from_attributes": True}


class ReimbursementSplitResponse(BaseModel):
    driver_amount: Decimal
    conductor_amount: Decimal
    total: Decimal


class RemittanceResponse(BaseModel):
    expected_remittance: Decimal
    collected: Decimal
    company_share: Decimal
    shortage: Decimal
    status: RemittanceStatus
    driver_share: Decimal
    conductor_share: Decimal


class SyncResultResponse(BaseModel):
    processed: int
    created: int
    updated: int
    failed: int
    errors: list[str]

    model_config = {"from_attributes": True}
