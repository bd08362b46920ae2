"""
Employee lookup endpoint, backed by the HR API.
"""

from dataclasses import asdict

from fastapi import APIRouter, Depends, Response

from ftms.api.dependencies import get_employee_directory
from ftms.exceptions import IntegrationError
from ftms.integrations.hr import EmployeeDirectory
from ftms.logging_config import get_logger
from ftms.schemas.expense import EmployeeResponse

router = APIRouter(tags=["Employees"])
logger = get_logger(__name__)


@router.get("/employees", response_model=list[EmployeeResponse])
def list_employees(
    response: Response,
    directory: EmployeeDirectory = Depends(get_employee_directory),
):
    """
    List employees from the HR system.

    If HR is unreachable the list is empty and the X-API-Status and
    X-API-Error headers say why, so the UI can keep working.
    """
    try:
        employees = directory.fetch_employees()
    except IntegrationError as e:
        logger.warning("HR employee list unavailable", extra={"error": str(e)})
        response.headers["X-API-Status"] = "error-fallback"
        response.headers["X-API-Error"] = str(e)
        return []
    return [asdict(employee) for employee in employees]
