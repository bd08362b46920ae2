"""
Pydantic schemas for chart-of-accounts operations.

Request fields are deliberately loose (plain strings) so that the
service can report every problem with a form in one response instead
of failing on the first unparseable field.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from ftms.models.enums import AccountType, NormalBalance


class ChartOfAccountCreate(BaseModel):
    account_code: str = ""
    account_name: str = ""
    account_type: str = ""
    parent_account_id: int | None = None
    description: str | None = None
    notes: str | None = None
    is_system_account: bool = False
    created_by: str | None = None


class ChartOfAccountUpdate(BaseModel):
    """Only descriptive fields are editable once an account exists."""
    account_name: str | None = None
    description: str | None = None
    notes: str | None = None
    updated_by: str | None = None


class ArchiveRequest(BaseModel):
    performed_by: str = Field(min_length=1, max_length=100)


class ChartOfAccountResponse(BaseModel):
    id: int
    account_code: str
    account_name: str
    account_type: AccountType
    normal_balance: NormalBalance
    parent_account_id: int | None
    description: str | None
    notes: str | None
    is_system_account: bool
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class ArchiveResponse(BaseModel):
    account: ChartOfAccountResponse
    warnings: list[str]


class CodeAvailabilityResponse(BaseModel):
    code: str
    available: bool
