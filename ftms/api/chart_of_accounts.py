"""
Chart of accounts API endpoints.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ftms.api.errors import http_error
from ftms.models.base import get_db
from ftms.models.enums import AccountType
from ftms.services.chart_of_accounts import ChartOfAccountService
from ftms.schemas.chart_of_account import (
    ChartOfAccountCreate,
    ChartOfAccountUpdate,
    ChartOfAccountResponse,
    ArchiveRequest,
    ArchiveResponse,
    CodeAvailabilityResponse,
)

router = APIRouter(prefix="/chart-of-accounts", tags=["Chart of Accounts"])


@router.post("", response_model=ChartOfAccountResponse, status_code=201)
def create_account(
    request: ChartOfAccountCreate,
    db: Session = Depends(get_db),
):
    """
    Create an account.

    Returns every form error at once (400), or 409 if the code is
    already taken.
    """
    service = ChartOfAccountService(db)
    try:
        account = service.create_account(request)
        db.commit()
        return account
    except ValueError as e:
        db.rollback()
        raise http_error(e)


@router.get("", response_model=list[ChartOfAccountResponse])
def list_accounts(
    include_archived: bool = False,
    account_type: AccountType | None = None,
    db: Session = Depends(get_db),
):
    service = ChartOfAccountService(db)
    return service.list_accounts(include_archived=include_archived, account_type=account_type)


@router.get("/validate-code", response_model=CodeAvailabilityResponse)
def validate_code(
    code: str,
    exclude: int | None = None,
    db: Session = Depends(get_db),
):
    """Check whether an account code is free, optionally ignoring one account."""
    service = ChartOfAccountService(db)
    return CodeAvailabilityResponse(
        code=code,
        available=service.is_code_available(code, exclude_id=exclude),
    )


@router.get("/{account_id}", response_model=ChartOfAccountResponse)
def get_account(
    account_id: int,
    db: Session = Depends(get_db),
):
    service = ChartOfAccountService(db)
    try:
        return service.get_account(account_id)
    except ValueError as e:
        raise http_error(e)


@router.patch("/{account_id}", response_model=ChartOfAccountResponse)
def update_account(
    account_id: int,
    request: ChartOfAccountUpdate,
    db: Session = Depends(get_db),
):
    """Edit name, description or notes. System and archived accounts are locked."""
    service = ChartOfAccountService(db)
    try:
        account = service.update_account(account_id, request)
        db.commit()
        return account
    except ValueError as e:
        db.rollback()
        raise http_error(e)


@router.post("/{account_id}/archive", response_model=ArchiveResponse)
def archive_account(
    account_id: int,
    request: ArchiveRequest,
    db: Session = Depends(get_db),
):
    service = ChartOfAccountService(db)
    try:
        account, warnings = service.archive_account(account_id, request.performed_by)
        db.commit()
        return ArchiveResponse(
            account=ChartOfAccountResponse.model_validate(account),
            warnings=warnings,
        )
    except ValueError as e:
        db.rollback()
        raise http_error(e)


@router.post("/{account_id}/restore", response_model=ChartOfAccountResponse)
def restore_account(
    account_id: int,
    request: ArchiveRequest,
    db: Session = Depends(get_db),
):
    service = ChartOfAccountService(db)
    try:
        account = service.restore_account(account_id, request.performed_by)
        db.commit()
        return account
    except ValueError as e:
        db.rollback()
        raise http_error(e)
