"""
Revenue validation rules.

validate_revenue_data() runs every check and concatenates the errors
so the caller gets the complete list in one round trip. Nothing short
circuits: a missing source does not stop the AR or installment checks.

Lookups that fail with a database error become a "Failed to validate"
message instead of propagating.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ftms.logging_config import get_logger
from ftms.models.bus_trip_cache import BusTripCache
from ftms.models.enums import ARStatus, ExternalRefType
from ftms.models.reference import GlobalPaymentMethod, RevenueSource
from ftms.models.revenue import LoanPayment, RevenueRecord
from ftms.schemas.revenue import RevenueCreate
from ftms.services.validation import ValidationResult

logger = get_logger(__name__)

AMOUNT_TOLERANCE = Decimal("0.01")
CENT = Decimal("0.01")

VALID_AR_STATUSES = {s.value for s in ARStatus}
VALID_EXTERNAL_REF_TYPES = {t.value for t in ExternalRefType}
# These reference types point at a concrete upstream record
REF_ID_REQUIRED_TYPES = {
    ExternalRefType.RENTAL.value,
    ExternalRefType.DISPOSAL.value,
    ExternalRefType.FORFEITED_DEPOSIT.value,
    ExternalRefType.RENTER_DAMAGE.value,
}


def _money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENT)


def validate_ar_and_dates(
    is_receivable: bool,
    collection_date: date | None,
    due_date: date | None,
    now: date | None = None,
) -> ValidationResult:
    """
    Date rules every stored revenue record satisfies.

    A receivable needs a due date on or after its collection date.
    Cash already collected cannot have a collection date in the future.
    """
    today = now or date.today()
    result = ValidationResult()
    if is_receivable:
        if due_date is None:
            result.errors.append("Due date is required for accounts receivable")
        elif collection_date is not None and due_date < collection_date:
            result.errors.append("Due date cannot be before collection date")
    elif collection_date is not None and collection_date > today:
        result.errors.append("Collection date cannot be in the future")
    return result


class RevenueValidator:

    def __init__(self, db: Session):
        self.db = db

    def validate_required_fields(self, data: RevenueCreate) -> list[str]:
        errors = []
        if not data.source_id:
            errors.append("Source is required")
        if not data.description or len(data.description.strip()) < 5:
            errors.append("Description must be at least 5 characters")
        if data.amount is None or data.amount <= 0:
            errors.append("Amount must be greater than 0")
        if not data.payment_method_id:
            errors.append("Payment method is required")
        if not data.created_by:
            errors.append("Created by is required")
        return errors

    def validate_source(self, source_id: int) -> list[str]:
        try:
            source = self.db.get(RevenueSource, source_id)
        except SQLAlchemyError:
            logger.warning("revenue source lookup failed", exc_info=True)
            return ["Failed to validate revenue source"]
        if not source:
            return ["Revenue source not found"]
        if not source.is_active:
            return ["Revenue source is inactive"]
        return []

    def validate_payment_method(self, payment_method_id: int) -> list[str]:
        try:
            method = self.db.get(GlobalPaymentMethod, payment_method_id)
        except SQLAlchemyError:
            logger.warning("payment method lookup failed", exc_info=True)
            return ["Failed to validate payment method"]
        if not method or method.is_deleted:
            return ["Payment method not found"]
        if not method.is_active:
            return ["Payment method is inactive"]
        return []

    def _has_live_revenue(self, trip: BusTripCache) -> bool:
        return self.db.execute(
            select(RevenueRecord.id).where(
                RevenueRecord.bus_trip_id == trip.bus_trip_id,
                RevenueRecord.assignment_id == trip.assignment_id,
                RevenueRecord.is_deleted.is_(False),
            ).limit(1)
        ).first() is not None

    def validate_bus_trip_revenue(
        self, bus_trip_cache_id: int, amount: Decimal | None
    ) -> list[str]:
        """
        A trip carries one revenue, and its amount must equal the trip's
        revenue to within one centavo.
        """
        try:
            trip = self.db.get(BusTripCache, bus_trip_cache_id)
            recorded = trip is not None and self._has_live_revenue(trip)
        except SQLAlchemyError:
            logger.warning("bus trip lookup failed", exc_info=True)
            return ["Failed to validate bus trip"]
        if not trip or trip.is_deleted:
            return ["Bus trip not found"]
        if trip.is_revenue_recorded or recorded:
            return ["Revenue already recorded for this bus trip"]
        if trip.trip_revenue is None:
            return ["Bus trip has no recorded revenue"]
        if amount is None:
            return []
        trip_revenue = Decimal(trip.trip_revenue)
        if abs(Decimal(amount) - trip_revenue) > AMOUNT_TOLERANCE:
            return [
                f"Amount ({_money(amount)}) must match bus trip revenue "
                f"({_money(trip_revenue)})"
            ]
        return []

    def validate_loan_payment(
        self, loan_payment_id: int, exclude_id: int | None = None
    ) -> list[str]:
        """A loan payment may back at most one revenue record."""
        try:
            loan_payment = self.db.get(LoanPayment, loan_payment_id)
            linked = loan_payment.revenue if loan_payment else None
        except SQLAlchemyError:
            logger.warning("loan payment lookup failed", exc_info=True)
            return ["Failed to validate loan payment"]
        if not loan_payment:
            return ["Loan payment not found"]
        if linked is not None and linked.id != exclude_id:
            return ["Loan payment is already linked to another revenue record"]
        return []

    def validate_accounts_receivable(self, data: RevenueCreate) -> list[str]:
        if not data.is_accounts_receivable:
            return []
        errors = []
        transaction_date = data.transaction_date or date.today()
        if not data.ar_due_date:
            errors.append("AR due date is required when accounts receivable is enabled")
        elif data.ar_due_date <= transaction_date:
            errors.append("AR due date must be after transaction date")

        if not data.ar_status:
            errors.append("AR status is required when accounts receivable is enabled")
        elif data.ar_status not in VALID_AR_STATUSES:
            errors.append("Invalid AR status")

        if data.ar_status == ARStatus.PAID.value and not data.ar_paid_date:
            errors.append("AR paid date is required when status is PAID")
        return errors

    def validate_installment_schedule(self, data: RevenueCreate) -> list[str]:
        if not data.is_installment:
            return []
        schedule = data.installment_schedule
        if schedule is None:
            return ["Installment schedule is required when installment is enabled"]

        errors = []
        if not schedule.number_of_payments or schedule.number_of_payments < 2:
            errors.append("Number of payments must be at least 2")
        if not schedule.payment_amount or schedule.payment_amount <= 0:
            errors.append("Payment amount must be greater than 0")
        if not schedule.frequency:
            errors.append("Frequency is required")
        if not schedule.start_date:
            errors.append("Start date is required")
        elif schedule.start_date < (data.transaction_date or date.today()):
            errors.append("Installment start date cannot be before transaction date")

        if (
            schedule.number_of_payments
            and schedule.payment_amount is not None
            and data.amount is not None
        ):
            total = schedule.number_of_payments * Decimal(schedule.payment_amount)
            if abs(total - Decimal(data.amount)) > AMOUNT_TOLERANCE:
                errors.append(
                    f"Total installment amount ({_money(total)}) must match "
                    f"revenue amount ({_money(data.amount)})"
                )
        return errors

    def validate_external_reference(self, data: RevenueCreate) -> list[str]:
        ref_type = data.external_ref_type
        if not ref_type:
            return []
        errors = []
        if ref_type not in VALID_EXTERNAL_REF_TYPES:
            errors.append("Invalid external reference type")
        if ref_type in REF_ID_REQUIRED_TYPES and not data.external_ref_id:
            errors.append(f"External reference ID is required for {ref_type}")
        return errors

    def validate_revenue_data(
        self, data: RevenueCreate, exclude_id: int | None = None
    ) -> ValidationResult:
        errors = self.validate_required_fields(data)
        if data.source_id:
            errors += self.validate_source(data.source_id)
        if data.payment_method_id:
            errors += self.validate_payment_method(data.payment_method_id)
        if data.bus_trip_cache_id:
            errors += self.validate_bus_trip_revenue(data.bus_trip_cache_id, data.amount)
        if data.loan_payment_id:
            errors += self.validate_loan_payment(data.loan_payment_id, exclude_id)
        errors += self.validate_accounts_receivable(data)
        errors += self.validate_installment_schedule(data)
        errors += self.validate_external_reference(data)
        return ValidationResult(errors=errors)
