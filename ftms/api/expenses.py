"""
Expense and reimbursement API endpoints.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ftms.api.dependencies import get_employee_directory
from ftms.api.errors import http_error
from ftms.integrations.hr import EmployeeDirectory
from ftms.models.base import get_db
from ftms.models.enums import ReimbursementStatus
from ftms.services.expense_service import ExpenseService
from ftms.services.reimbursement_service import ReimbursementService
from ftms.schemas.expense import (
    ExpenseCreate,
    ExpenseResponse,
    ReimbursementResponse,
    ReimbursementActionRequest,
)

router = APIRouter(tags=["Expenses"])


@router.post("/expenses", response_model=ExpenseResponse, status_code=201)
def create_expense(
    request: ExpenseCreate,
    db: Session = Depends(get_db),
    directory: EmployeeDirectory = Depends(get_employee_directory),
):
    """
    Create an expense with its reimbursements and payable.

    All rows are committed together or not at all.
    """
    service = ExpenseService(db, employee_directory=directory)
    try:
        expense = service.create_expense(request)
        db.commit()
        return expense
    except ValueError as e:
        db.rollback()
        raise http_error(e)


@router.get("/expenses", response_model=list[ExpenseResponse])
def list_expenses(
    category_id: int | None = None,
    db: Session = Depends(get_db),
):
    service = ExpenseService(db)
    return service.list_expenses(category_id=category_id)


@router.get("/expenses/{expense_id}", response_model=ExpenseResponse)
def get_expense(
    expense_id: int,
    db: Session = Depends(get_db),
):
    service = ExpenseService(db)
    try:
        return service.get_expense(expense_id)
    except ValueError as e:
        raise http_error(e)


@router.get("/reimbursements", response_model=list[ReimbursementResponse])
def list_reimbursements(
    status: ReimbursementStatus | None = None,
    db: Session = Depends(get_db),
):
    service = ReimbursementService(db)
    return service.list_reimbursements(status=status)


@router.patch("/reimbursements", response_model=ReimbursementResponse)
def apply_reimbursement_action(
    request: ReimbursementActionRequest,
    db: Session = Depends(get_db),
):
    """
    Approve, reject, pay or cancel a reimbursement.

    An action that is not allowed from the current status returns 400.
    """
    service = ReimbursementService(db)
    try:
        reimbursement = service.apply_action(
            request.reimbursement_id,
            request.action,
            request.performed_by,
            payment_method=request.payment_method,
            payment_reference=request.payment_reference,
            rejection_reason=request.rejection_reason,
            remarks=request.remarks,
        )
        db.commit()
        return reimbursement
    except ValueError as e:
        db.rollback()
        raise http_error(e)
