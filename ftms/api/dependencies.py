"""
FastAPI dependencies for outbound integrations.

Tests replace these through app.dependency_overrides.
"""

from ftms.integrations.hr import EmployeeDirectory
from ftms.integrations.operations import OperationsClient


def get_employee_directory() -> EmployeeDirectory:
    return EmployeeDirectory()


def get_operations_client() -> OperationsClient:
    return OperationsClient()
