"""
Expenses, with their reimbursement fan-out and
accounts-payable row.

The expense, its reimbursements and payable, the linked trip's
expense flag and the audit rows are flushed in one session; the
caller commits or rolls back all of them together.
"""

from decimal import Decimal

from sqlalchemy import select, or_
from sqlalchemy.orm import Session

from ftms.exceptions import ValidationFailedError, NotFoundError, IntegrationError
from ftms.integrations.hr import Employee, EmployeeDirectory
from ftms.logging_config import get_logger
from ftms.models.bus_trip_cache import BusTripCache
from ftms.models.enums import ReimbursementStatus, PayableStatus
from ftms.models.expense import ExpenseRecord, Reimbursement, AccountsPayable
from ftms.models.reference import GlobalCategory, GlobalPaymentMethod
from ftms.schemas.expense import ExpenseCreate
from ftms.services.audit import record_audit
from ftms.services.bus_trip_service import BusTripService
from ftms.services.reference_data import ReferenceDataService

logger = get_logger(__name__)


class ExpenseService:

    def __init__(self, db: Session, employee_directory: EmployeeDirectory | None = None):
        self.db = db
        self.employee_directory = employee_directory
        self.reference = ReferenceDataService(db)

    def _resolve_category(self, request: ExpenseCreate, errors: list[str]) -> int | None:
        if request.category_id is not None:
            category = self.db.get(GlobalCategory, request.category_id)
            if not category or category.is_deleted:
                errors.append(f"Category {request.category_id} not found")
                return None
            return category.id
        category_id = self.reference.find_category_id(request.category)
        if category_id is None:
            errors.append(f"Category not found: {request.category}")
        return category_id

    def _resolve_payment_method(self, request: ExpenseCreate, errors: list[str]) -> int | None:
        if request.payment_method_id is not None:
            method = self.db.get(GlobalPaymentMethod, request.payment_method_id)
            if not method or method.is_deleted:
                errors.append(f"Payment method {request.payment_method_id} not found")
                return None
            return method.id
        method_id = self.reference.find_payment_method_id(request.payment_method)
        if method_id is None:
            errors.append(f"Payment method not found: {request.payment_method}")
        return method_id

    def _trip_crew(self, request: ExpenseCreate) -> dict[str, Employee]:
        """Driver and conductor of the linked cached trip, keyed by employee id."""
        if not request.bus_trip_id and not request.assignment_id:
            return {}
        conditions = []
        if request.bus_trip_id:
            conditions.append(BusTripCache.bus_trip_id == request.bus_trip_id)
        if request.assignment_id:
            conditions.append(BusTripCache.assignment_id == request.assignment_id)
        trips = self.db.execute(
            select(BusTripCache).where(or_(*conditions))
        ).scalars().all()

        crew = {}
        for trip in trips:
            if trip.driver_id:
                crew[trip.driver_id] = Employee(
                    trip.driver_id, trip.driver_name or trip.driver_id, "Driver", None
                )
            if trip.conductor_id:
                crew[trip.conductor_id] = Employee(
                    trip.conductor_id, trip.conductor_name or trip.conductor_id, "Conductor", None
                )
        return crew

    def _linked_trip(self, request: ExpenseCreate) -> BusTripCache | None:
        if not request.bus_trip_id and not request.assignment_id:
            return None
        query = select(BusTripCache).where(BusTripCache.is_deleted.is_(False))
        if request.bus_trip_id:
            query = query.where(BusTripCache.bus_trip_id == request.bus_trip_id)
        if request.assignment_id:
            query = query.where(BusTripCache.assignment_id == request.assignment_id)
        return self.db.execute(
            query.order_by(BusTripCache.id).limit(1)
        ).scalar_one_or_none()

    def _employee_lookup(self, request: ExpenseCreate) -> dict[str, Employee]:
        """
        HR directory entries, with the trip crew filling the gaps.

        An unreachable HR API is not fatal here: the cached crew is
        enough for trip-linked expenses.
        """
        employees = self._trip_crew(request)
        if self.employee_directory is not None:
            try:
                for employee in self.employee_directory.fetch_employees():
                    employees[employee.employee_id] = employee
            except IntegrationError as e:
                logger.warning(
                    "HR directory unavailable, using cached trip crew",
                    extra={"error": str(e)},
                )
        return employees

    def create_expense(self, request: ExpenseCreate) -> ExpenseRecord:
        errors = []
        category_id = self._resolve_category(request, errors)
        payment_method_id = self._resolve_payment_method(request, errors)

        total = Decimal(request.total_amount)
        if request.reimbursements:
            claimed = sum((r.amount for r in request.reimbursements), Decimal("0"))
            if claimed != total:
                errors.append(
                    f"Reimbursement amounts ({claimed}) must equal the expense total ({total})"
                )
            seen = set()
            for r in request.reimbursements:
                if r.employee_id in seen:
                    errors.append(f"Duplicate reimbursement for employee {r.employee_id}")
                seen.add(r.employee_id)
        if request.payable is not None and request.payable.amount > total:
            errors.append("Payable amount cannot exceed the expense total")

        employees = {}
        if request.reimbursements and not errors:
            employees = self._employee_lookup(request)
            for r in request.reimbursements:
                if r.employee_id not in employees:
                    errors.append(f"Employee {r.employee_id} not found")

        if errors:
            raise ValidationFailedError(errors)

        expense = ExpenseRecord(
            category_id=category_id,
            payment_method_id=payment_method_id,
            assignment_id=request.assignment_id,
            bus_trip_id=request.bus_trip_id,
            total_amount=total,
            expense_date=request.expense_date,
            description=request.description,
            created_by=request.created_by,
        )
        for r in request.reimbursements:
            employee = employees[r.employee_id]
            expense.reimbursements.append(Reimbursement(
                employee_id=employee.employee_id,
                employee_name=employee.name,
                job_title=employee.job_title,
                amount=r.amount,
                status=ReimbursementStatus.PENDING,
                created_by=request.created_by,
            ))
        if request.payable is not None:
            expense.payable = AccountsPayable(
                vendor_name=request.payable.vendor_name,
                amount=request.payable.amount,
                balance=request.payable.amount,
                due_date=request.payable.due_date,
                status=PayableStatus.PENDING,
            )

        self.db.add(expense)
        self.db.flush()
        expense.expense_code = f"EXP-{expense.id:06d}"
        self.db.flush()

        trip = self._linked_trip(request)
        if trip is not None:
            BusTripService(self.db).mark_expense_recorded(trip.id, request.created_by)

        record_audit(
            self.db, "CREATE", "ExpenseRecord", expense.expense_code, request.created_by,
            f"Created expense {expense.expense_code} amount {total} "
            f"with {len(request.reimbursements)} reimbursement(s)",
        )
        logger.info(
            "expense created",
            extra={
                "expense_code": expense.expense_code,
                "amount": total,
                "reimbursements": len(request.reimbursements),
                "payable": request.payable is not None,
            },
        )
        return expense

    def get_expense(self, expense_id: int) -> ExpenseRecord:
        expense = self.db.get(ExpenseRecord, expense_id)
        if not expense or expense.is_deleted:
            raise NotFoundError(f"Expense {expense_id} not found")
        return expense

    def list_expenses(self, category_id: int | None = None) -> list[ExpenseRecord]:
        query = (
            select(ExpenseRecord)
            .where(ExpenseRecord.is_deleted.is_(False))
            .order_by(ExpenseRecord.expense_date.desc(), ExpenseRecord.id.desc())
        )
        if category_id is not None:
            query = query.where(ExpenseRecord.category_id == category_id)
        return list(self.db.execute(query).scalars().all())
