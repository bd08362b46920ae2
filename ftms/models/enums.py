"""
Shared enumerations for database models.

Using Python enums mapped to database enums ensures that
only valid values can be stored.
"""

import enum


class AccountType(str, enum.Enum):
    """The five fundamental accounting categories."""
    ASSET = "ASSET"
    LIABILITY = "LIABILITY"
    EQUITY = "EQUITY"
    REVENUE = "REVENUE"
    EXPENSE = "EXPENSE"


class NormalBalance(str, enum.Enum):
    """Side on which an account's balance increases."""
    DEBIT = "DEBIT"
    CREDIT = "CREDIT"


class JournalEntryType(str, enum.Enum):
    MANUAL = "MANUAL"
    AUTO_REVENUE = "AUTO_REVENUE"
    AUTO_EXPENSE = "AUTO_EXPENSE"
    AUTO_REIMBURSEMENT = "AUTO_REIMBURSEMENT"
    AUTO_REVERSAL = "AUTO_REVERSAL"


class JournalEntryStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    POSTED = "POSTED"
    REVERSED = "REVERSED"


class ARStatus(str, enum.Enum):
    """Collection status of an accounts-receivable revenue."""
    PENDING = "PENDING"
    PARTIAL = "PARTIAL"
    PAID = "PAID"


class RemittanceStatus(str, enum.Enum):
    """Whether a trip's collections covered what the crew owed."""
    PAID = "PAID"
    PARTIALLY_PAID = "PARTIALLY_PAID"


class ReimbursementStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    PAID = "PAID"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


class ReimbursementAction(str, enum.Enum):
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    PAY = "PAY"
    CANCEL = "CANCEL"


class PayableStatus(str, enum.Enum):
    PENDING = "PENDING"
    PARTIALLY_PAID = "PARTIALLY_PAID"
    PAID = "PAID"


class AssignmentType(str, enum.Enum):
    """How a bus trip's crew and the company share the fare revenue."""
    BOUNDARY = "Boundary"
    PERCENTAGE = "Percentage"
    BUS_RENTAL = "Bus Rental"


class ExternalRefType(str, enum.Enum):
    RENTAL = "RENTAL"
    DISPOSAL = "DISPOSAL"
    FORFEITED_DEPOSIT = "FORFEITED_DEPOSIT"
    LOAN_REPAYMENT = "LOAN_REPAYMENT"
    RENTER_DAMAGE = "RENTER_DAMAGE"
    BUS_TRIP = "BUS_TRIP"
