"""
Journal entry API endpoints.

The API layer is thin: it handles status codes and commits, and
delegates all bookkeeping rules to JournalService.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ftms.api.errors import http_error
from ftms.models.base import get_db
from ftms.models.chart_of_account import ChartOfAccount
from ftms.models.enums import JournalEntryStatus, JournalEntryType
from ftms.services.journal_service import JournalService
from ftms.schemas.journal import (
    JournalEntryCreate,
    JournalEntryResponse,
    PostEntryRequest,
    ReverseEntryRequest,
    AccountBalanceResponse,
)

router = APIRouter(prefix="/journal-entries", tags=["Journal Entries"])


@router.post("", response_model=JournalEntryResponse, status_code=201)
def create_entry(
    request: JournalEntryCreate,
    db: Session = Depends(get_db),
):
    """Create a DRAFT entry. Unbalanced drafts are stored with is_balanced=false."""
    service = JournalService(db)
    try:
        entry = service.create_entry(request)
        db.commit()
        return entry
    except ValueError as e:
        db.rollback()
        raise http_error(e)


@router.get("", response_model=list[JournalEntryResponse])
def list_entries(
    status: JournalEntryStatus | None = None,
    entry_type: JournalEntryType | None = None,
    db: Session = Depends(get_db),
):
    service = JournalService(db)
    return service.list_entries(status=status, entry_type=entry_type)


@router.get("/accounts/{account_id}/balance", response_model=AccountBalanceResponse)
def get_account_balance(
    account_id: int,
    db: Session = Depends(get_db),
):
    """Balance derived from posted lines, signed by the account's normal balance."""
    service = JournalService(db)
    try:
        balance = service.get_account_balance(account_id)
    except ValueError as e:
        raise http_error(e)
    account = db.get(ChartOfAccount, account_id)
    return AccountBalanceResponse(
        account_id=account.id,
        account_code=account.account_code,
        balance=balance,
    )


@router.get("/{entry_id}", response_model=JournalEntryResponse)
def get_entry(
    entry_id: int,
    db: Session = Depends(get_db),
):
    service = JournalService(db)
    try:
        return service.get_entry(entry_id)
    except ValueError as e:
        raise http_error(e)


@router.post("/{entry_id}/post", response_model=JournalEntryResponse)
def post_entry(
    entry_id: int,
    request: PostEntryRequest,
    db: Session = Depends(get_db),
):
    service = JournalService(db)
    try:
        entry = service.post_entry(entry_id, request.performed_by)
        db.commit()
        return entry
    except ValueError as e:
        db.rollback()
        raise http_error(e)


@router.post("/{entry_id}/reverse", response_model=JournalEntryResponse, status_code=201)
def reverse_entry(
    entry_id: int,
    request: ReverseEntryRequest,
    db: Session = Depends(get_db),
):
    """Reverse a posted entry. Returns the new reversal entry."""
    service = JournalService(db)
    try:
        reversal = service.reverse_entry(entry_id, request.performed_by, request.reason)
        db.commit()
        return reversal
    except ValueError as e:
        db.rollback()
        raise http_error(e)
