"""
HR system client.

Employees are read live from the HR API; nothing is stored locally.
Network failures are retried with a linear backoff (0.5 s, 1 s, ...);
an HTTP error status is not retried.
"""

import time
from dataclasses import dataclass
from typing import Callable

import httpx

from ftms.config import get_settings
from ftms.exceptions import IntegrationError
from ftms.logging_config import get_logger

logger = get_logger(__name__)

BACKOFF_SECONDS = 0.5


@dataclass(frozen=True)
class Employee:
    employee_id: str
    name: str
    job_title: str | None
    department: str | None
    phone: str | None = None

    @classmethod
    def from_hr(cls, raw: dict) -> "Employee":
        """Build from an HR payload (employeeNumber, firstName, ...)."""
        parts = [raw.get("firstName"), raw.get("middleName"), raw.get("lastName")]
        name = " ".join(p.strip() for p in parts if p and p.strip())
        return cls(
            employee_id=str(raw["employeeNumber"]),
            name=name,
            job_title=raw.get("position"),
            department=raw.get("department"),
            phone=raw.get("phone"),
        )


class EmployeeDirectory:

    def __init__(
        self,
        url: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        settings = get_settings()
        self.url = url if url is not None else settings.HR_API_EMPLOYEES_URL
        self.timeout = timeout if timeout is not None else settings.HR_API_TIMEOUT_SECONDS
        self.max_retries = max(1, max_retries if max_retries is not None else settings.HR_API_MAX_RETRIES)
        self.transport = transport
        self.sleep = sleep

    def _get(self, client: httpx.Client) -> httpx.Response:
        last_error: Exception | None = None
        for attempt in range(1, self.max_retries + 1):
            try:
                return client.get(self.url, headers={"Accept": "application/json"})
            except httpx.RequestError as e:
                last_error = e
                logger.warning(
                    "HR API request failed",
                    extra={"attempt": attempt, "max_retries": self.max_retries, "error": str(e)},
                )
                if attempt < self.max_retries:
                    self.sleep(BACKOFF_SECONDS * attempt)
        raise IntegrationError(f"Failed to fetch employees from HR API: {last_error}")

    def fetch_employees(self) -> list[Employee]:
        if not self.url:
            raise IntegrationError("HR_API_EMPLOYEES_URL is not configured")

        with httpx.Client(transport=self.transport, timeout=self.timeout) as client:
            response = self._get(client)

        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise IntegrationError(
                f"HR API request failed: {e.response.status_code} {e.response.reason_phrase}"
            ) from e

        try:
            payload = response.json()
        except ValueError as e:
            raise IntegrationError("HR API returned invalid JSON") from e
        if not isinstance(payload, list):
            raise IntegrationError("HR API returned an unexpected payload")
        try:
            return [Employee.from_hr(item) for item in payload]
        except (KeyError, TypeError, AttributeError) as e:
            raise IntegrationError(f"HR API returned a malformed employee: {e}") from e

    def find(self, employee_id: str) -> Employee | None:
        for employee in self.fetch_employees():
            if employee.employee_id == employee_id:
                return employee
        return None
