"""
Pydantic schemas for journal entries.
"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from ftms.models.enums import JournalEntryType, JournalEntryStatus


class JournalLineCreate(BaseModel):
    """A single line. Exactly one of debit_amount / credit_amount is set."""
    account_id: int
    debit_amount: Decimal = Field(default=Decimal("0"), ge=0)
    credit_amount: Decimal = Field(default=Decimal("0"), ge=0)
    description: str | None = Field(default=None, max_length=255)


class JournalEntryCreate(BaseModel):
    entry_date: date
    description: str = Field(min_length=1, max_length=255)
    entry_type: JournalEntryType = JournalEntryType.MANUAL
    created_by: str = Field(min_length=1, max_length=100)
    source_module: str | None = None
    source_ref: str | None = None
    lines: list[JournalLineCreate] = Field(min_length=2)

    @field_validator("lines")
    @classmethod
    def each_line_has_one_side(cls, v: list) -> list:
        for i, line in enumerate(v, start=1):
            has_debit = line.debit_amount > 0
            has_credit = line.credit_amount > 0
            if has_debit == has_credit:
                raise ValueError(
                    f"line {i} must carry exactly one of debit_amount or credit_amount"
                )
        return v


class PostEntryRequest(BaseModel):
    performed_by: str = Field(min_length=1, max_length=100)


class ReverseEntryRequest(BaseModel):
    performed_by: str = Field(min_length=1, max_length=100)
    reason: str | None = None


class JournalLineResponse(BaseModel):
    id: int
    account_id: int
    line_number: int
    description: str | None
    debit_amount: Decimal
    credit_amount: Decimal

    model_config = {"from_attributes": True}


class JournalEntryResponse(BaseModel):
    id: int
    code: str | None
    entry_date: date
    description: str
    entry_type: JournalEntryType
    status: JournalEntryStatus
    total_debit: Decimal
    total_credit: Decimal
    is_balanced: bool
    reversal_of_id: int | None
    created_by: str
    posted_by: str | None
    posted_at: datetime | None
    lines: list[JournalLineResponse]

    model_config = {"from_attributes": True}


class AccountBalanceResponse(BaseModel):
    account_id: int
    account_code: str
    balance: Decimal
