"""
Chart of accounts: validation rules and the account service.

The validators are pure functions over plain values and in-memory
account lists so that forms can be checked without a database. The
service applies them against the database and records every change in
the audit log.

Hierarchy rules:
    - a child has the same account_type as its parent
    - only root accounts can be parents (no grandchildren)
    - system accounts can be neither edited nor archived
    - an account with children cannot be archived, even archived ones
"""

import re
from datetime import datetime
from typing import Iterable

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from ftms.exceptions import (
    ValidationFailedError,
    NotFoundError,
    StateConflictError,
    DuplicateError,
)
from ftms.logging_config import get_logger
from ftms.models.chart_of_account import ChartOfAccount
from ftms.models.enums import AccountType, NormalBalance
from ftms.models.journal_entry import JournalEntryLine
from ftms.schemas.chart_of_account import (
    ChartOfAccountCreate,
    ChartOfAccountUpdate,
)
from ftms.services.audit import record_audit
from ftms.services.validation import ValidationResult

logger = get_logger(__name__)

ACCOUNT_CODE_PATTERN = re.compile(r"[0-9]{4}")
VALID_ACCOUNT_TYPES = {t.value for t in AccountType}

# Assets and expenses grow on the debit side, everything else on the credit side.
NORMAL_BALANCE_BY_TYPE: dict[AccountType, NormalBalance] = {
    AccountType.ASSET: NormalBalance.DEBIT,
    AccountType.EXPENSE: NormalBalance.DEBIT,
    AccountType.LIABILITY: NormalBalance.CREDIT,
    AccountType.EQUITY: NormalBalance.CREDIT,
    AccountType.REVENUE: NormalBalance.CREDIT,
}

TRANSACTIONS_WARNING = (
    "This account has linked transactions. "
    "Archiving will hide it but preserve transaction history."
)


def validate_account_code(code: str | None) -> ValidationResult:
    result = ValidationResult()
    if not code or not code.strip():
        result.errors.append("Account code is required")
    elif not ACCOUNT_CODE_PATTERN.fullmatch(code):
        result.errors.append("Account code must be exactly 4 digits")
    return result


def validate_account_name(name: str | None) -> ValidationResult:
    result = ValidationResult()
    stripped = (name or "").strip()
    if not stripped:
        result.errors.append("Account name is required")
    elif len(stripped) < 3:
        result.errors.append("Account name must be at least 3 characters")
    elif len(stripped) > 100:
        result.errors.append("Account name must not exceed 100 characters")
    return result


def validate_account_type(value) -> ValidationResult:
    result = ValidationResult()
    if not value:
        result.errors.append("Account type is required")
    elif not isinstance(value, AccountType) and value not in VALID_ACCOUNT_TYPES:
        result.errors.append("Invalid account type")
    return result


def get_normal_balance(account_type: AccountType | str) -> NormalBalance:
    """Normal balance for an account type. Defined for every AccountType."""
    return NORMAL_BALANCE_BY_TYPE[AccountType(account_type)]


def validate_parent_child_relationship(
    parent_id: int | None,
    child_type: AccountType | str,
    accounts: Iterable,
) -> ValidationResult:
    """
    Check that parent_id may be the parent of an account of child_type.

    Returns the first failing rule only; a root account (no parent) is
    always valid.
    """
    result = ValidationResult()
    if parent_id is None:
        return result

    parent = next((a for a in accounts if a.id == parent_id), None)
    if parent is None:
        result.errors.append("Selected parent account does not exist")
    elif not parent.is_active:
        result.errors.append("Cannot assign to an archived parent account")
    elif AccountType(parent.account_type) != AccountType(child_type):
        result.errors.append(
            f"Parent account must be of type {AccountType(child_type).value}"
        )
    elif parent.parent_account_id is not None:
        result.errors.append(
            "Cannot nest more than 2 levels deep (grandchildren not allowed)"
        )
    return result


def validate_account_archival(
    has_transactions: bool,
    child_count: int,
    is_system_account: bool,
) -> ValidationResult:
    """
    Blocking errors for system accounts and accounts with children.

    Linked transactions only produce a warning: the account is hidden
    but its history is kept.
    """
    result = ValidationResult()
    if is_system_account:
        result.errors.append("System accounts cannot be archived")
    if child_count > 0:
        result.errors.append(
            "Cannot archive account with child accounts. "
            "Archive or reassign child accounts first."
        )
    if has_transactions:
        result.warnings.append(TRANSACTIONS_WARNING)
    return result


def validate_account_edit(is_system_account: bool, is_active: bool = True) -> ValidationResult:
    result = ValidationResult()
    if is_system_account:
        result.errors.append("System accounts cannot be modified")
    elif not is_active:
        result.errors.append("Archived accounts cannot be modified")
    return result


def get_available_parent_accounts(
    accounts: Iterable,
    account_type: AccountType | str,
    exclude_id: int | None = None,
) -> list:
    """Active root accounts of the same type, excluding the account itself."""
    account_type = AccountType(account_type)
    return [
        a for a in accounts
        if AccountType(a.account_type) == account_type
        and a.parent_account_id is None
        and a.id != exclude_id
        and a.is_active
    ]


def get_child_count(parent_id: int, accounts: Iterable) -> int:
    return sum(1 for a in accounts if a.parent_account_id == parent_id)


def can_have_children(account) -> bool:
    return account.parent_account_id is None


def format_account_display(account) -> str:
    indent = "└─ " if account.parent_account_id is not None else ""
    return f"{indent}{account.account_code} - {account.account_name}"


class ChartOfAccountService:

    def __init__(self, db: Session):
        self.db = db

    def is_code_available(self, code: str, exclude_id: int | None = None) -> bool:
        query = select(ChartOfAccount.id).where(ChartOfAccount.account_code == code)
        if exclude_id is not None:
            query = query.where(ChartOfAccount.id != exclude_id)
        return self.db.execute(query).first() is None

    def create_account(self, request: ChartOfAccountCreate) -> ChartOfAccount:
        """
        Create an account.

        All form problems are collected into one ValidationFailedError.
        A code that is already taken raises DuplicateError.
        """
        code = request.account_code.strip()
        result = validate_account_code(code)
        result.extend(validate_account_name(request.account_name))
        type_result = validate_account_type(request.account_type)
        result.extend(type_result)

        if type_result.valid and request.parent_account_id is not None:
            parent = self.db.get(ChartOfAccount, request.parent_account_id)
            result.extend(validate_parent_child_relationship(
                request.parent_account_id,
                request.account_type,
                [parent] if parent else [],
            ))

        if not result.valid:
            raise ValidationFailedError(result.errors)

        if not self.is_code_available(code):
            raise DuplicateError(f"Account code {code} already exists")

        account_type = AccountType(request.account_type)
        account = ChartOfAccount(
            account_code=code,
            account_name=request.account_name.strip(),
            account_type=account_type,
            normal_balance=get_normal_balance(account_type),
            parent_account_id=request.parent_account_id,
            description=request.description,
            notes=request.notes,
            is_system_account=request.is_system_account,
            created_by=request.created_by,
        )
        self.db.add(account)
        self.db.flush()

        record_audit(
            self.db, "CREATE", "ChartOfAccount", account.id,
            request.created_by or "system",
            f"Created account {account.account_code} - {account.account_name}",
        )
        logger.info(
            "account created",
            extra={"account_id": account.id, "account_code": account.account_code},
        )
        return account

    def update_account(
        self, account_id: int, request: ChartOfAccountUpdate
    ) -> ChartOfAccount:
        """Update name, description or notes. Code and type never change."""
        account = self.get_account(account_id)

        edit = validate_account_edit(account.is_system_account, account.is_active)
        if not edit.valid:
            raise StateConflictError(edit.errors[0])

        if request.account_name is not None:
            name_result = validate_account_name(request.account_name)
            if not name_result.valid:
                raise ValidationFailedError(name_result.errors)
            account.account_name = request.account_name.strip()
        if request.description is not None:
            account.description = request.description
        if request.notes is not None:
            account.notes = request.notes

        self.db.flush()
        record_audit(
            self.db, "UPDATE", "ChartOfAccount", account.id,
            request.updated_by or "system",
            f"Updated account {account.account_code}",
        )
        return account

    def _has_transactions(self, account_id: int) -> bool:
        return self.db.execute(
            select(JournalEntryLine.id)
            .where(JournalEntryLine.account_id == account_id)
            .limit(1)
        ).first() is not None

    def _child_count(self, account_id: int) -> int:
        """Every child, archived ones included."""
        return self.db.execute(
            select(func.count(ChartOfAccount.id)).where(
                ChartOfAccount.parent_account_id == account_id
            )
        ).scalar()

    def archive_account(
        self, account_id: int, performed_by: str
    ) -> tuple[ChartOfAccount, list[str]]:
        """
        Archive (soft-delete) an account.

        Returns the account and any non-blocking warnings.
        """
        account = self.get_account(account_id)
        if not account.is_active:
            raise StateConflictError(f"Account {account.account_code} is already archived")

        result = validate_account_archival(
            has_transactions=self._has_transactions(account.id),
            child_count=self._child_count(account.id),
            is_system_account=account.is_system_account,
        )
        if not result.valid:
            raise StateConflictError("; ".join(result.errors))

        account.is_active = False
        account.archived_by = performed_by
        account.archived_at = datetime.utcnow()
        self.db.flush()

        record_audit(
            self.db, "ARCHIVE", "ChartOfAccount", account.id, performed_by,
            f"Archived account {account.account_code}",
        )
        logger.info(
            "account archived",
            extra={"account_id": account.id, "warnings": len(result.warnings)},
        )
        return account, result.warnings

    def restore_account(self, account_id: int, performed_by: str) -> ChartOfAccount:
        account = self.get_account(account_id)
        if account.is_active:
            raise StateConflictError(f"Account {account.account_code} is not archived")
        if account.parent is not None and not account.parent.is_active:
            raise StateConflictError(
                "Cannot restore account while its parent account is archived"
            )

        account.is_active = True
        account.archived_by = None
        account.archived_at = None
        self.db.flush()

        record_audit(
            self.db, "RESTORE", "ChartOfAccount", account.id, performed_by,
            f"Restored account {account.account_code}",
        )
        return account

    def get_account(self, account_id: int) -> ChartOfAccount:
        account = self.db.get(ChartOfAccount, account_id)
        if not account:
            raise NotFoundError(f"Account {account_id} not found")
        return account

    def get_account_by_code(self, code: str) -> ChartOfAccount:
        account = self.db.execute(
            select(ChartOfAccount).where(ChartOfAccount.account_code == code)
        ).scalar_one_or_none()
        if not account:
            raise NotFoundError(f"Account {code} not found")
        return account

    def list_accounts(
        self,
        include_archived: bool = False,
        account_type: AccountType | None = None,
    ) -> list[ChartOfAccount]:
        query = select(ChartOfAccount).order_by(ChartOfAccount.account_code)
        if not include_archived:
            query = query.where(ChartOfAccount.is_active.is_(True))
        if account_type is not None:
            query = query.where(ChartOfAccount.account_type == account_type)
        return list(self.db.execute(query).scalars().all())
