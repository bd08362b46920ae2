"""Business logic services."""

from ftms.services.chart_of_accounts import ChartOfAccountService
from ftms.services.journal_service import JournalService
from ftms.services.reference_data import ReferenceDataService
from ftms.services.revenue_validation import RevenueValidator
from ftms.services.revenue_service import RevenueService
from ftms.services.bus_trip_service import BusTripService
from ftms.services.expense_service import ExpenseService
from ftms.services.reimbursement_service import ReimbursementService

__all__ = [
    "ChartOfAccountService",
    "JournalService",
    "ReferenceDataService",
    "RevenueValidator",
    "RevenueService",
    "BusTripService",
    "ExpenseService",
    "ReimbursementService",
]
