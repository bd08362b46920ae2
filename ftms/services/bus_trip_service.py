"""
Bus-trip reconciliation: revenue and reimbursements derived from the
locally cached Operations assignments.

The cache is the only source read here. Creating a revenue flips the
trip's is_revenue_recorded flag locally and nothing is written back
to Operations; the next sync brings upstream state in line.

Reimbursement rule (kept as the business runs it today):
    - only trips paid by "Reimbursement" reimburse anything
    - Percentage trips reimburse the trip's fuel expense
    - Boundary and Bus Rental trips reimburse nothing
    - the total is split between driver and conductor, and each half
      is rounded to the centavo on its own, so the halves may add up
      to one centavo more than the total

Remittance rule:
    - Boundary crews owe the quota plus fuel
    - Percentage crews owe the company's share of the fares plus fuel
    - a collection below that is a shortage, charged to driver and
      conductor by the configured share percentages
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ftms.config import get_settings
from ftms.exceptions import (
    ValidationFailedError,
    NotFoundError,
    DuplicateError,
)
from ftms.logging_config import get_logger
from ftms.models.bus_trip_cache import BusTripCache
from ftms.models.enums import AssignmentType, ExternalRefType, RemittanceStatus
from ftms.models.revenue import RevenueRecord
from ftms.schemas.bus_trip import BusTripPayload
from ftms.services.audit import record_audit
from ftms.services.reference_data import ReferenceDataService
from ftms.services.revenue_service import assign_revenue_code, REVENUE_MODULE

logger = get_logger(__name__)

CENT = Decimal("0.01")
REIMBURSEMENT_PAYMENT_METHOD = "Reimbursement"

_ASSIGNMENT_TYPES_BY_KEY = {
    "boundary": AssignmentType.BOUNDARY,
    "percentage": AssignmentType.PERCENTAGE,
    "bus rental": AssignmentType.BUS_RENTAL,
}


@dataclass(frozen=True)
class ReimbursementSplit:
    driver_amount: Decimal
    conductor_amount: Decimal
    total: Decimal


@dataclass
class SyncResult:
    processed: int = 0
    created: int = 0
    updated: int = 0
    failed: int = 0
    errors: list[str] = field(default_factory=list)


def normalize_assignment_type(value: str | None) -> AssignmentType:
    """Map "PERCENTAGE", "bus_rental" etc. onto AssignmentType; unknown -> Bus Rental."""
    key = (value or "").replace("_", " ").strip().lower()
    return _ASSIGNMENT_TYPES_BY_KEY.get(key, AssignmentType.BUS_RENTAL)


def calculate_reimbursement(trip) -> ReimbursementSplit:
    total = Decimal("0")
    if (
        trip.payment_method == REIMBURSEMENT_PAYMENT_METHOD
        and normalize_assignment_type(trip.assignment_type) == AssignmentType.PERCENTAGE
    ):
        total = Decimal(trip.trip_fuel_expense or 0)

    half = total / 2
    return ReimbursementSplit(
        driver_amount=half.quantize(CENT, rounding=ROUND_HALF_UP),
        conductor_amount=half.quantize(CENT, rounding=ROUND_HALF_UP),
        total=total.quantize(CENT, rounding=ROUND_HALF_UP),
    )


@dataclass(frozen=True)
class ShortageSplit:
    driver_share: Decimal
    conductor_share: Decimal


@dataclass(frozen=True)
class RemittanceSummary:
    expected_remittance: Decimal
    collected: Decimal
    company_share: Decimal
    shortage: Decimal
    status: RemittanceStatus
    driver_share: Decimal
    conductor_share: Decimal


def calculate_expected_remittance(
    assignment_type: str | None,
    trip_revenue: Decimal | None,
    assignment_value: Decimal | None,
    trip_fuel_expense: Decimal | None,
) -> Decimal:
    """
    What the crew must hand over for a trip.

    Boundary: the fixed quota (assignment_value) plus fuel.
    Percentage: trip_revenue x assignment_value (a fraction, 0.30 for
    30%) plus fuel. Anything else is charged like Boundary.
    """
    revenue = Decimal(trip_revenue or 0)
    value = Decimal(assignment_value or 0)
    fuel = Decimal(trip_fuel_expense or 0)
    if normalize_assignment_type(assignment_type) == AssignmentType.PERCENTAGE:
        return revenue * value + fuel
    return value + fuel


def calculate_company_share(
    assignment_type: str | None,
    trip_revenue: Decimal | None,
    assignment_value: Decimal | None,
) -> Decimal:
    revenue = Decimal(trip_revenue or 0)
    value = Decimal(assignment_value or 0)
    if normalize_assignment_type(assignment_type) == AssignmentType.PERCENTAGE:
        return revenue * value
    return value


def calculate_shortage(expected_remittance: Decimal, collected: Decimal | None) -> Decimal:
    """expected - collected, never below zero."""
    shortage = Decimal(expected_remittance) - Decimal(collected or 0)
    return shortage if shortage > 0 else Decimal("0")


def determine_remittance_status(
    collected: Decimal | None, expected_remittance: Decimal
) -> RemittanceStatus:
    if Decimal(collected or 0) >= Decimal(expected_remittance):
        return RemittanceStatus.PAID
    return RemittanceStatus.PARTIALLY_PAID


def split_shortage(
    shortage: Decimal,
    driver_percentage: Decimal,
    conductor_percentage: Decimal,
) -> ShortageSplit:
    """
    Charge a shortage to driver and conductor by their configured shares.

    The driver's part is rounded to the centavo and the conductor takes
    the rest, so the two parts always add up to the shortage.
    """
    driver_percentage = Decimal(driver_percentage)
    conductor_percentage = Decimal(conductor_percentage)
    if driver_percentage < 0 or conductor_percentage < 0:
        raise ValidationFailedError("Share percentages cannot be negative")
    if driver_percentage + conductor_percentage != 100:
        raise ValidationFailedError(
            "Driver and conductor share percentages must sum to 100"
        )
    total = Decimal(shortage).quantize(CENT, rounding=ROUND_HALF_UP)
    driver = (total * driver_percentage / 100).quantize(CENT, rounding=ROUND_HALF_UP)
    return ShortageSplit(driver_share=driver, conductor_share=total - driver)


def reconcile_remittance(
    trip,
    driver_percentage: Decimal,
    conductor_percentage: Decimal,
    collected: Decimal | None = None,
) -> RemittanceSummary:
    """
    Compare what a trip collected with what the crew owed.

    collected defaults to the trip's revenue; pass the recorded amount
    when it was overridden.
    """
    if collected is None:
        collected = trip.trip_revenue
    collected = Decimal(collected or 0).quantize(CENT, rounding=ROUND_HALF_UP)
    expected = calculate_expected_remittance(
        trip.assignment_type,
        trip.trip_revenue,
        trip.assignment_value,
        trip.trip_fuel_expense,
    ).quantize(CENT, rounding=ROUND_HALF_UP)
    shortage = calculate_shortage(expected, collected)
    split = split_shortage(shortage, driver_percentage, conductor_percentage)
    company_share = calculate_company_share(
        trip.assignment_type, trip.trip_revenue, trip.assignment_value
    ).quantize(CENT, rounding=ROUND_HALF_UP)
    return RemittanceSummary(
        expected_remittance=expected,
        collected=collected,
        company_share=company_share,
        shortage=shortage,
        status=determine_remittance_status(collected, expected),
        driver_share=split.driver_share,
        conductor_share=split.conductor_share,
    )


class BusTripService:

    def __init__(self, db: Session):
        self.db = db
        self.reference = ReferenceDataService(db)

    def get_trip(self, trip_id: int) -> BusTripCache:
        trip = self.db.get(BusTripCache, trip_id)
        if not trip or trip.is_deleted:
            raise NotFoundError(f"Bus trip {trip_id} not found")
        return trip

    def _find_cached_trip(self, bus_trip_id: str) -> BusTripCache | None:
        return self.db.execute(
            select(BusTripCache)
            .where(
                BusTripCache.bus_trip_id == bus_trip_id,
                BusTripCache.is_deleted.is_(False),
            )
            .order_by(BusTripCache.id)
            .limit(1)
        ).scalar_one_or_none()

    def _find_existing_revenue(
        self, bus_trip_id: str, assignment_id: str, category_id: int
    ) -> RevenueRecord | None:
        return self.db.execute(
            select(RevenueRecord).where(
                RevenueRecord.bus_trip_id == bus_trip_id,
                RevenueRecord.assignment_id == assignment_id,
                RevenueRecord.category_id == category_id,
                RevenueRecord.is_deleted.is_(False),
            )
        ).scalar_one_or_none()

    def create_revenue_from_bus_trip(
        self,
        bus_trip_id: str,
        created_by: str,
        collection_date: date | None = None,
        override_amount: Decimal | None = None,
    ) -> RevenueRecord:
        """
        Record the revenue of a cached bus trip.

        Idempotent per (bus_trip_id, assignment_id, category): a second
        call returns the record created by the first. If a concurrent
        request inserts first, the unique index rejects this insert and
        the winning row is returned instead.
        """
        collection_date = collection_date or date.today()
        if collection_date > date.today():
            raise ValidationFailedError("Collection date cannot be in the future")

        trip = self._find_cached_trip(bus_trip_id)
        if trip is None:
            raise NotFoundError("Bus trip not found in cache")

        assignment_type = normalize_assignment_type(trip.assignment_type)
        category_id = self.reference.find_category_id(assignment_type.value)
        if category_id is None:
            raise NotFoundError(f"GlobalCategory seed missing: {assignment_type.value}")

        existing = self._find_existing_revenue(bus_trip_id, trip.assignment_id, category_id)
        if existing:
            logger.info(
                "bus trip revenue already recorded",
                extra={"bus_trip_id": bus_trip_id, "revenue_code": existing.revenue_code},
            )
            return existing

        if trip.trip_revenue is None and override_amount is None:
            raise ValidationFailedError("Trip has no revenue (Sales)")

        pending_status_id = self.reference.find_payment_status_id("Pending", REVENUE_MODULE)
        if pending_status_id is None:
            raise NotFoundError("Missing Pending payment status for revenue module")

        amount = Decimal(override_amount if override_amount is not None else trip.trip_revenue)
        assignment_id = trip.assignment_id
        remittance = self._reconcile(trip, collected=amount)
        revenue = RevenueRecord(
            description=f"Bus trip {bus_trip_id} {trip.bus_route}".strip(),
            category_id=category_id,
            payment_status_id=pending_status_id,
            total_amount=amount,
            collection_date=collection_date,
            outstanding_balance=Decimal("0"),
            bus_trip_cache_id=trip.id,
            bus_trip_id=bus_trip_id,
            assignment_id=assignment_id,
            remittance_status=remittance.status,
            shortage_amount=remittance.shortage,
            external_ref_type=ExternalRefType.BUS_TRIP.value,
            external_ref_id=bus_trip_id,
            created_by=created_by,
        )
        try:
            with self.db.begin_nested():
                self.db.add(revenue)
                self.db.flush()
        except IntegrityError:
            winner = self._find_existing_revenue(bus_trip_id, assignment_id, category_id)
            if winner is None:
                raise DuplicateError(
                    f"Revenue for bus trip {bus_trip_id} could not be created"
                )
            logger.info(
                "bus trip revenue created concurrently",
                extra={"bus_trip_id": bus_trip_id, "revenue_code": winner.revenue_code},
            )
            return winner

        assign_revenue_code(revenue)
        trip.is_revenue_recorded = True
        self.db.flush()

        record_audit(
            self.db, "CREATE", "RevenueRecord", revenue.revenue_code, created_by,
            f"Created revenue from bus trip {bus_trip_id} amount {amount}",
        )
        logger.info(
            "bus trip revenue created",
            extra={
                "bus_trip_id": bus_trip_id,
                "assignment_type": assignment_type.value,
                "amount": amount,
                "remittance_status": remittance.status.value,
                "shortage": remittance.shortage,
            },
        )
        return revenue

    def list_available_trips(
        self,
        assignment_type: str | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
        include_recorded: bool = False,
    ) -> list[BusTripCache]:
        """Cached trips that still need a revenue record."""
        query = (
            select(BusTripCache)
            .where(BusTripCache.is_deleted.is_(False))
            .order_by(BusTripCache.date_assigned.desc(), BusTripCache.id.desc())
        )
        if not include_recorded:
            query = query.where(BusTripCache.is_revenue_recorded.is_(False))
        if date_from is not None:
            query = query.where(
                BusTripCache.date_assigned >= datetime.combine(date_from, datetime.min.time())
            )
        if date_to is not None:
            query = query.where(
                BusTripCache.date_assigned <= datetime.combine(date_to, datetime.max.time())
            )
        trips = self.db.execute(query).scalars().all()
        if assignment_type is not None:
            wanted = normalize_assignment_type(assignment_type)
            trips = [t for t in trips if normalize_assignment_type(t.assignment_type) == wanted]
        return list(trips)

    def reimbursement_for_trip(self, trip_id: int) -> ReimbursementSplit:
        return calculate_reimbursement(self.get_trip(trip_id))

    def _reconcile(
        self, trip: BusTripCache, collected: Decimal | None = None
    ) -> RemittanceSummary:
        settings = get_settings()
        return reconcile_remittance(
            trip,
            settings.DRIVER_SHARE_PERCENTAGE,
            settings.CONDUCTOR_SHARE_PERCENTAGE,
            collected=collected,
        )

    def remittance_for_trip(self, trip_id: int) -> RemittanceSummary:
        return self._reconcile(self.get_trip(trip_id))

    def mark_expense_recorded(self, trip_id: int, performed_by: str) -> BusTripCache:
        trip = self.get_trip(trip_id)
        if not trip.is_expense_recorded:
            trip.is_expense_recorded = True
            self.db.flush()
            record_audit(
                self.db, "UPDATE", "BusTripCache", trip.id, performed_by,
                f"Marked expense recorded for bus trip {trip.bus_trip_id}",
            )
        return trip

    def upsert_trip(self, payload: BusTripPayload) -> tuple[BusTripCache, bool]:
        """
        Insert or refresh one cached assignment.

        Returns the row and whether it was newly created. Local
        recorded flags are never cleared by a sync.
        """
        trip = self.db.execute(
            select(BusTripCache).where(
                BusTripCache.assignment_id == payload.assignment_id,
                BusTripCache.bus_trip_id == payload.bus_trip_id,
            )
        ).scalar_one_or_none()

        created = trip is None
        if created:
            trip = BusTripCache(
                assignment_id=payload.assignment_id,
                bus_trip_id=payload.bus_trip_id,
            )
            self.db.add(trip)

        trip.bus_route = payload.bus_route
        trip.date_assigned = payload.date_assigned
        trip.assignment_type = payload.assignment_type
        trip.assignment_value = payload.assignment_value
        trip.trip_revenue = payload.trip_revenue
        trip.trip_fuel_expense = payload.trip_fuel_expense
        trip.payment_method = payload.payment_method
        trip.driver_id = payload.driver_id
        trip.driver_name = payload.driver_name
        trip.conductor_id = payload.conductor_id
        trip.conductor_name = payload.conductor_name
        trip.bus_plate_number = payload.bus_plate_number
        trip.is_revenue_recorded = bool(trip.is_revenue_recorded) or payload.is_revenue_recorded
        trip.is_expense_recorded = bool(trip.is_expense_recorded) or payload.is_expense_recorded
        trip.is_deleted = False
        trip.last_synced_at = datetime.utcnow()
        self.db.flush()
        return trip, created

    def sync_from_operations(self, client) -> SyncResult:
        """
        Refresh the cache from the Operations API.

        A failed fetch raises IntegrationError. Each row is written in
        its own savepoint; rows that fail validation or the write are
        counted and reported, not raised.
        """
        rows = client.fetch_bus_trips()
        result = SyncResult()
        for row in rows:
            try:
                payload = BusTripPayload.model_validate(row)
                with self.db.begin_nested():
                    _, created = self.upsert_trip(payload)
            except (ValueError, SQLAlchemyError) as e:
                result.failed += 1
                ref = row.get("assignment_id") if isinstance(row, dict) else None
                result.errors.append(f"Bus Trip {ref}: {e}")
                continue
            if created:
                result.created += 1
            else:
                result.updated += 1
            result.processed += 1

        logger.info(
            "bus trip sync finished",
            extra={
                "trips_processed": result.processed,
                "trips_created": result.created,
                "trips_updated": result.updated,
                "trips_failed": result.failed,
            },
        )
        return result
