"""
Revenue records, their payments and outstanding
balances.

A receivable starts with its whole amount outstanding; cash revenue
starts at zero. The outstanding balance is only ever recomputed from
the payment rows, never adjusted by hand.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ftms.exceptions import (
    ValidationFailedError,
    NotFoundError,
    StateConflictError,
    DuplicateError,
)
from ftms.logging_config import get_logger
from ftms.models.bus_trip_cache import BusTripCache
from ftms.models.enums import ARStatus
from ftms.models.reference import GlobalPaymentMethod
from ftms.models.revenue import (
    RevenueRecord,
    RevenuePayment,
    RevenueInstallmentSchedule,
)
from ftms.schemas.revenue import RevenueCreate, PaymentIn
from ftms.services.audit import record_audit
from ftms.services.reference_data import ReferenceDataService
from ftms.services.revenue_validation import RevenueValidator, validate_ar_and_dates

logger = get_logger(__name__)

REVENUE_MODULE = "revenue"


def assign_revenue_code(revenue: RevenueRecord) -> None:
    """Set REV-000042 style code once the row has an id."""
    revenue.revenue_code = f"REV-{revenue.id:06d}"


class RevenueService:

    def __init__(self, db: Session):
        self.db = db
        self.validator = RevenueValidator(db)
        self.reference = ReferenceDataService(db)

    def create_revenue(self, data: RevenueCreate) -> RevenueRecord:
        """
        Validate and store a revenue record.

        Every validation problem is reported together in one
        ValidationFailedError; nothing is written in that case.
        """
        collection_date = data.transaction_date or date.today()

        result = self.validator.validate_revenue_data(data)
        result.extend(validate_ar_and_dates(
            data.is_accounts_receivable, collection_date, data.ar_due_date
        ))
        if not result.valid:
            raise ValidationFailedError(result.errors)

        total = Decimal(data.amount)
        revenue = RevenueRecord(
            description=data.description.strip(),
            category_id=data.category_id,
            source_id=data.source_id,
            payment_method_id=data.payment_method_id,
            payment_status_id=self.reference.find_payment_status_id("Pending", REVENUE_MODULE),
            total_amount=total,
            collection_date=collection_date,
            is_receivable=data.is_accounts_receivable,
            outstanding_balance=total if data.is_accounts_receivable else Decimal("0"),
            loan_payment_id=data.loan_payment_id,
            external_ref_type=data.external_ref_type,
            external_ref_id=data.external_ref_id,
            remarks=data.remarks,
            created_by=data.created_by,
        )
        if data.is_accounts_receivable:
            revenue.due_date = data.ar_due_date
            revenue.ar_status = ARStatus(data.ar_status)
            revenue.ar_paid_date = data.ar_paid_date

        trip = None
        if data.bus_trip_cache_id:
            trip = self.db.get(BusTripCache, data.bus_trip_cache_id)
            revenue.bus_trip_cache_id = trip.id
            revenue.bus_trip_id = trip.bus_trip_id
            revenue.assignment_id = trip.assignment_id

        if data.is_installment and data.installment_schedule is not None:
            schedule = data.installment_schedule
            revenue.installment_schedule = RevenueInstallmentSchedule(
                number_of_payments=schedule.number_of_payments,
                payment_amount=schedule.payment_amount,
                frequency=schedule.frequency,
                start_date=schedule.start_date,
            )

        try:
            with self.db.begin_nested():
                self.db.add(revenue)
                self.db.flush()
        except IntegrityError as e:
            raise DuplicateError("Revenue already recorded for this bus trip") from e

        assign_revenue_code(revenue)
        if trip is not None:
            trip.is_revenue_recorded = True
        self.db.flush()

        record_audit(
            self.db, "CREATE", "RevenueRecord", revenue.revenue_code, data.created_by,
            f"Created revenue {revenue.revenue_code} amount {total}",
        )
        logger.info(
            "revenue created",
            extra={
                "revenue_code": revenue.revenue_code,
                "amount": total,
                "receivable": revenue.is_receivable,
            },
        )
        return revenue

    def _paid_total(self, revenue_id: int) -> Decimal:
        total = self.db.execute(
            select(func.coalesce(func.sum(RevenuePayment.amount), 0))
            .where(RevenuePayment.revenue_id == revenue_id)
        ).scalar()
        return Decimal(str(total))

    def recompute_outstanding(self, revenue_id: int) -> Decimal:
        """outstanding = max(0, total - sum of payments)."""
        revenue = self.get_revenue(revenue_id)
        outstanding = Decimal(revenue.total_amount) - self._paid_total(revenue.id)
        revenue.outstanding_balance = max(Decimal("0"), outstanding)
        self.db.flush()
        return revenue.outstanding_balance

    def record_payments(
        self,
        revenue_id: int,
        payments: list[PaymentIn],
        performed_by: str,
        allow_overpayment: bool = False,
    ) -> RevenueRecord:
        """
        Record one or more payments against a receivable.

        Payments that would take the paid total above the revenue total
        are refused unless allow_overpayment is set.
        """
        revenue = self.get_revenue(revenue_id)
        if not revenue.is_receivable:
            raise StateConflictError(
                f"Revenue {revenue.revenue_code} is not an accounts receivable"
            )

        errors = []
        for i, payment in enumerate(payments, start=1):
            if payment.amount <= 0:
                errors.append(f"Payment {i}: amount must be greater than 0")
            if payment.payment_method_id is not None:
                method = self.db.get(GlobalPaymentMethod, payment.payment_method_id)
                if not method or method.is_deleted:
                    errors.append(f"Payment {i}: payment method not found")
        incoming = sum((p.amount for p in payments), Decimal("0"))
        already_paid = self._paid_total(revenue.id)
        remaining = Decimal(revenue.total_amount) - already_paid
        if not allow_overpayment and incoming > remaining:
            errors.append(
                f"Payments total {incoming} exceeds remaining balance {max(remaining, Decimal('0'))}"
            )
        if errors:
            raise ValidationFailedError(errors)

        last_paid = None
        for payment in payments:
            paid_date = payment.paid_date or date.today()
            revenue.payments.append(RevenuePayment(
                amount=payment.amount,
                payment_method_id=payment.payment_method_id,
                paid_date=paid_date,
                reference_number=payment.reference_number,
                remarks=payment.remarks,
            ))
            last_paid = max(last_paid, paid_date) if last_paid else paid_date
        self.db.flush()

        outstanding = self.recompute_outstanding(revenue.id)
        if outstanding == 0:
            revenue.ar_status = ARStatus.PAID
            revenue.ar_paid_date = last_paid
        else:
            revenue.ar_status = ARStatus.PARTIAL
        self.db.flush()

        record_audit(
            self.db, "PAYMENT", "RevenueRecord", revenue.revenue_code, performed_by,
            f"Recorded {len(payments)} payment(s) totalling {incoming}. "
            f"Outstanding: {outstanding}",
        )
        return revenue

    def get_revenue(self, revenue_id: int) -> RevenueRecord:
        revenue = self.db.get(RevenueRecord, revenue_id)
        if not revenue or revenue.is_deleted:
            raise NotFoundError(f"Revenue {revenue_id} not found")
        return revenue

    def list_revenues(
        self,
        category_id: int | None = None,
        is_receivable: bool | None = None,
        bus_trip_id: str | None = None,
    ) -> list[RevenueRecord]:
        query = (
            select(RevenueRecord)
            .where(RevenueRecord.is_deleted.is_(False))
            .order_by(RevenueRecord.collection_date.desc(), RevenueRecord.id.desc())
        )
        if category_id is not None:
            query = query.where(RevenueRecord.category_id == category_id)
        if is_receivable is not None:
            query = query.where(RevenueRecord.is_receivable.is_(is_receivable))
        if bus_trip_id is not None:
            query = query.where(RevenueRecord.bus_trip_id == bus_trip_id)
        return list(self.db.execute(query).scalars().all())
