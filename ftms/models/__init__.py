"""
Database models package.

All models must be imported here so that Alembic can discover
them through Base.metadata when generating migrations.
"""

from ftms.models.base import Base
from ftms.models.enums import (
    AccountType,
    NormalBalance,
    JournalEntryType,
    JournalEntryStatus,
    ARStatus,
    ReimbursementStatus,
    ReimbursementAction,
    PayableStatus,
    AssignmentType,
    ExternalRefType,
)
from ftms.models.audit_log import AuditLog
from ftms.models.chart_of_account import ChartOfAccount
from ftms.models.journal_entry import JournalEntry, JournalEntryLine
from ftms.models.reference import (
    GlobalCategory,
    GlobalPaymentMethod,
    GlobalPaymentStatus,
    RevenueSource,
)
from ftms.models.bus_trip_cache import BusTripCache
from ftms.models.revenue import (
    RevenueRecord,
    RevenuePayment,
    RevenueInstallmentSchedule,
    LoanPayment,
)
from ftms.models.expense import ExpenseRecord, Reimbursement, AccountsPayable

__all__ = [
    "Base",
    "AccountType",
    "NormalBalance",
    "JournalEntryType",
    "JournalEntryStatus",
    "ARStatus",
    "ReimbursementStatus",
    "ReimbursementAction",
    "PayableStatus",
    "AssignmentType",
    "ExternalRefType",
    "AuditLog",
    "ChartOfAccount",
    "JournalEntry",
    "JournalEntryLine",
    "GlobalCategory",
    "GlobalPaymentMethod",
    "GlobalPaymentStatus",
    "RevenueSource",
    "BusTripCache",
    "RevenueRecord",
    "RevenuePayment",
    "RevenueInstallmentSchedule",
    "LoanPayment",
    "ExpenseRecord",
    "Reimbursement",
    "AccountsPayable",
]
