"""
Revenue API endpoints.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ftms.api.errors import http_error
from ftms.models.base import get_db
from ftms.services.journal_service import JournalService
from ftms.services.revenue_service import RevenueService
from ftms.schemas.journal import JournalEntryResponse
from ftms.schemas.revenue import (
    RevenueCreate,
    RevenueResponse,
    RecordPaymentsRequest,
    CreateJournalEntryRequest,
)

router = APIRouter(prefix="/revenues", tags=["Revenues"])


@router.post("", response_model=RevenueResponse, status_code=201)
def create_revenue(
    request: RevenueCreate,
    db: Session = Depends(get_db),
):
    """
    Create a revenue record.

    Validation is exhaustive: a 400 response lists every problem
    with the request, not just the first.
    """
    service = RevenueService(db)
    try:
        revenue = service.create_revenue(request)
        db.commit()
        return revenue
    except ValueError as e:
        db.rollback()
        raise http_error(e)


@router.get("", response_model=list[RevenueResponse])
def list_revenues(
    category_id: int | None = None,
    is_receivable: bool | None = None,
    bus_trip_id: str | None = None,
    db: Session = Depends(get_db),
):
    service = RevenueService(db)
    return service.list_revenues(
        category_id=category_id,
        is_receivable=is_receivable,
        bus_trip_id=bus_trip_id,
    )


@router.get("/{revenue_id}", response_model=RevenueResponse)
def get_revenue(
    revenue_id: int,
    db: Session = Depends(get_db),
):
    service = RevenueService(db)
    try:
        return service.get_revenue(revenue_id)
    except ValueError as e:
        raise http_error(e)


@router.post("/{revenue_id}/payments", response_model=RevenueResponse)
def record_payments(
    revenue_id: int,
    request: RecordPaymentsRequest,
    db: Session = Depends(get_db),
):
    """Record payments against a receivable and recompute its outstanding balance."""
    service = RevenueService(db)
    try:
        revenue = service.record_payments(
            revenue_id,
            request.payments,
            performed_by=request.performed_by,
            allow_overpayment=request.allow_overpayment,
        )
        db.commit()
        return revenue
    except ValueError as e:
        db.rollback()
        raise http_error(e)


@router.post(
    "/{revenue_id}/journal-entry",
    response_model=JournalEntryResponse,
    status_code=201,
)
def create_revenue_journal_entry(
    revenue_id: int,
    request: CreateJournalEntryRequest,
    db: Session = Depends(get_db),
):
    service = JournalService(db)
    try:
        entry = service.create_revenue_journal_entry(revenue_id, request.performed_by)
        db.commit()
        return entry
    except ValueError as e:
        db.rollback()
        raise http_error(e)
