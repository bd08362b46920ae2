"""
Bus-trip reconciliation API endpoints.
"""

from dataclasses import asdict
from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ftms.api.dependencies import get_operations_client
from ftms.api.errors import http_error
from ftms.integrations.operations import OperationsClient
from ftms.models.base import get_db
from ftms.services.bus_trip_service import BusTripService
from ftms.schemas.bus_trip import (
    BusTripResponse,
    CreateRevenueFromTripRequest,
    ReimbursementSplitResponse,
    RemittanceResponse,
    SyncResultResponse,
)
from ftms.schemas.revenue import RevenueResponse

router = APIRouter(prefix="/bus-trips", tags=["Bus Trips"])


@router.get("", response_model=list[BusTripResponse])
def list_available_trips(
    assignment_type: str | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    include_recorded: bool = False,
    db: Session = Depends(get_db),
):
    """Cached trips that do not have a revenue record yet."""
    service = BusTripService(db)
    return service.list_available_trips(
        assignment_type=assignment_type,
        date_from=date_from,
        date_to=date_to,
        include_recorded=include_recorded,
    )


@router.post("/sync", response_model=SyncResultResponse)
def sync_bus_trips(
    db: Session = Depends(get_db),
    client: OperationsClient = Depends(get_operations_client),
):
    """Refresh the local trip cache from the Operations API."""
    service = BusTripService(db)
    try:
        result = service.sync_from_operations(client)
        db.commit()
        return asdict(result)
    except ValueError as e:
        db.rollback()
        raise http_error(e)


@router.post("/{bus_trip_id}/revenue", response_model=RevenueResponse, status_code=201)
def create_revenue_from_bus_trip(
    bus_trip_id: str,
    request: CreateRevenueFromTripRequest,
    db: Session = Depends(get_db),
):
    """
    Record revenue for a cached trip.

    Calling this again for the same trip returns the existing record.
    """
    service = BusTripService(db)
    try:
        revenue = service.create_revenue_from_bus_trip(
            bus_trip_id,
            created_by=request.created_by,
            collection_date=request.collection_date,
            override_amount=request.override_amount,
        )
        db.commit()
        return revenue
    except ValueError as e:
        db.rollback()
        raise http_error(e)


@router.get("/{trip_id}/reimbursement", response_model=ReimbursementSplitResponse)
def get_trip_reimbursement(
    trip_id: int,
    db: Session = Depends(get_db),
):
    service = BusTripService(db)
    try:
        return asdict(service.reimbursement_for_trip(trip_id))
    except ValueError as e:
        raise http_error(e)


@router.get("/{trip_id}/remittance", response_model=RemittanceResponse)
def get_trip_remittance(
    trip_id: int,
    db: Session = Depends(get_db),
):
    """
    What the crew owed for a trip against what it collected, and how
    any shortage is charged to driver and conductor.
    """
    service = BusTripService(db)
    try:
        return asdict(service.remittance_for_trip(trip_id))
    except ValueError as e:
        raise http_error(e)
