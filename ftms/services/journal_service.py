"""
Journal service — double-entry journal entries.

Lifecycle: DRAFT -> POSTED -> REVERSED.

An entry may be saved unbalanced as a DRAFT so a clerk can finish it
later, but it can only be posted once debits equal credits. Posted
entries are never edited; they are undone by a reversal entry that
swaps every line's debit and credit side.

Account balances are derived from posted (and reversed) lines, never
stored.
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from ftms.exceptions import (
    ValidationFailedError,
    UnbalancedEntryError,
    NotFoundError,
    StateConflictError,
    DuplicateError,
)
from ftms.logging_config import get_logger
from ftms.models.chart_of_account import ChartOfAccount
from ftms.models.enums import (
    JournalEntryType,
    JournalEntryStatus,
    NormalBalance,
)
from ftms.models.journal_entry import JournalEntry, JournalEntryLine
from ftms.models.revenue import RevenueRecord
from ftms.schemas.journal import JournalEntryCreate, JournalLineCreate
from ftms.services.audit import record_audit

logger = get_logger(__name__)

CASH_ACCOUNT_CODE = "1010"
BANK_ACCOUNT_CODE = "1020"
DEFAULT_REVENUE_ACCOUNT_CODE = "4000"

# Payment methods that land in the bank account rather than cash on hand
BANK_PAYMENT_METHODS = {"bank transfer", "check"}

# Lines of entries in these states count toward account balances.
# A reversed entry and its reversal cancel each other out.
BALANCE_STATUSES = (JournalEntryStatus.POSTED, JournalEntryStatus.REVERSED)


class JournalService:

    def __init__(self, db: Session):
        self.db = db

    def _validate_lines(self, lines: list[JournalLineCreate]) -> list[str]:
        errors = []
        if len(lines) < 2:
            errors.append("A journal entry needs at least 2 lines")
        for i, line in enumerate(lines, start=1):
            has_debit = line.debit_amount > 0
            has_credit = line.credit_amount > 0
            if has_debit == has_credit:
                errors.append(
                    f"Line {i}: exactly one of debit_amount or credit_amount must be positive"
                )
            account = self.db.get(ChartOfAccount, line.account_id)
            if not account:
                errors.append(f"Line {i}: account {line.account_id} not found")
            elif not account.is_active:
                errors.append(f"Line {i}: account {account.account_code} is archived")
        return errors

    def create_entry(
        self,
        request: JournalEntryCreate,
        status: JournalEntryStatus = JournalEntryStatus.DRAFT,
    ) -> JournalEntry:
        """
        Create a journal entry with its lines.

        Totals are stored on the entry; is_balanced reports whether
        they match. Only reversals are created directly as POSTED.
        """
        errors = self._validate_lines(request.lines)
        if errors:
            raise ValidationFailedError(errors)

        total_debit = sum((l.debit_amount for l in request.lines), Decimal("0"))
        total_credit = sum((l.credit_amount for l in request.lines), Decimal("0"))

        entry = JournalEntry(
            entry_date=request.entry_date,
            description=request.description,
            entry_type=request.entry_type,
            status=status,
            total_debit=total_debit,
            total_credit=total_credit,
            source_module=request.source_module,
            source_ref=request.source_ref,
            created_by=request.created_by,
        )
        for i, line in enumerate(request.lines, start=1):
            entry.lines.append(JournalEntryLine(
                account_id=line.account_id,
                line_number=i,
                description=line.description,
                debit_amount=line.debit_amount,
                credit_amount=line.credit_amount,
            ))
        self.db.add(entry)
        self.db.flush()

        entry.code = f"JE-{entry.id:06d}"
        self.db.flush()

        logger.info(
            "journal entry created",
            extra={
                "entry_id": entry.id,
                "entry_type": entry.entry_type.value,
                "balanced": entry.is_balanced,
            },
        )
        return entry

    def post_entry(self, entry_id: int, performed_by: str) -> JournalEntry:
        entry = self.get_entry(entry_id)
        if entry.status != JournalEntryStatus.DRAFT:
            raise StateConflictError(
                f"Can only post from DRAFT status. Current status: {entry.status.value}"
            )
        if not entry.is_balanced:
            raise UnbalancedEntryError(
                f"Entry is unbalanced: debits {entry.total_debit} "
                f"!= credits {entry.total_credit}"
            )

        entry.status = JournalEntryStatus.POSTED
        entry.posted_by = performed_by
        entry.posted_at = datetime.utcnow()
        self.db.flush()

        record_audit(
            self.db, "POST", "JournalEntry", entry.code, performed_by,
            f"Posted journal entry {entry.code}",
        )
        return entry

    def reverse_entry(
        self, entry_id: int, performed_by: str, reason: str | None = None
    ) -> JournalEntry:
        """
        Reverse a posted entry.

        Returns the new reversal entry. The original is marked REVERSED.
        """
        original = self.get_entry(entry_id)
        if original.status != JournalEntryStatus.POSTED:
            raise StateConflictError(
                f"Can only reverse from POSTED status. Current status: {original.status.value}"
            )

        reversal = self.create_entry(
            JournalEntryCreate(
                entry_date=date.today(),
                description=f"Reversal of {original.code}",
                entry_type=JournalEntryType.AUTO_REVERSAL,
                created_by=performed_by,
                source_module="journal",
                source_ref=original.code,
                lines=[
                    JournalLineCreate(
                        account_id=line.account_id,
                        debit_amount=line.credit_amount,
                        credit_amount=line.debit_amount,
                        description=line.description,
                    )
                    for line in original.lines
                ],
            ),
            status=JournalEntryStatus.POSTED,
        )
        reversal.reversal_of_id = original.id
        reversal.posted_by = performed_by
        reversal.posted_at = datetime.utcnow()

        original.status = JournalEntryStatus.REVERSED
        original.reversal_reason = reason
        self.db.flush()

        details = f"Reversed journal entry {original.code} with {reversal.code}"
        if reason:
            details += f". Reason: {reason}"
        record_audit(self.db, "REVERSE", "JournalEntry", original.code, performed_by, details)
        return reversal

    def get_entry(self, entry_id: int) -> JournalEntry:
        entry = self.db.get(JournalEntry, entry_id)
        if not entry:
            raise NotFoundError(f"Journal entry {entry_id} not found")
        return entry

    def list_entries(
        self,
        status: JournalEntryStatus | None = None,
        entry_type: JournalEntryType | None = None,
    ) -> list[JournalEntry]:
        query = select(JournalEntry).order_by(JournalEntry.entry_date, JournalEntry.id)
        if status is not None:
            query = query.where(JournalEntry.status == status)
        if entry_type is not None:
            query = query.where(JournalEntry.entry_type == entry_type)
        return list(self.db.execute(query).scalars().all())

    def get_account_balance(self, account_id: int) -> Decimal:
        """
        Balance of an account from its posted lines.

        For DEBIT-normal accounts: debits - credits
        For CREDIT-normal accounts: credits - debits
        """
        account = self.db.get(ChartOfAccount, account_id)
        if not account:
            raise NotFoundError(f"Account {account_id} not found")

        total_debits, total_credits = self.db.execute(
            select(
                func.coalesce(func.sum(JournalEntryLine.debit_amount), 0),
                func.coalesce(func.sum(JournalEntryLine.credit_amount), 0),
            )
            .join(JournalEntry, JournalEntryLine.journal_entry_id == JournalEntry.id)
            .where(
                JournalEntryLine.account_id == account_id,
                JournalEntry.status.in_(BALANCE_STATUSES),
            )
        ).one()

        debits = Decimal(str(total_debits))
        credits = Decimal(str(total_credits))
        if account.normal_balance == NormalBalance.DEBIT:
            return debits - credits
        return credits - debits

    def _account_by_code(self, code: str) -> ChartOfAccount:
        account = self.db.execute(
            select(ChartOfAccount).where(ChartOfAccount.account_code == code)
        ).scalar_one_or_none()
        if not account or not account.is_active:
            raise ValidationFailedError(f"Account {code} not found in chart of accounts")
        return account

    def create_revenue_journal_entry(
        self, revenue_id: int, performed_by: str
    ) -> JournalEntry:
        """
        Draft the journal entry for a revenue record.

        Accounting:
            DEBIT  Cash 1010 (Bank 1020 for bank transfers and checks)
            CREDIT the revenue source's account (default 4000)
        """
        revenue = self.db.get(RevenueRecord, revenue_id)
        if not revenue or revenue.is_deleted:
            raise NotFoundError(f"Revenue {revenue_id} not found")
        if revenue.journal_entry_id is not None:
            raise DuplicateError(
                f"Revenue {revenue.revenue_code} already has a journal entry"
            )

        method_name = (revenue.payment_method.name if revenue.payment_method else "")
        debit_code = (
            BANK_ACCOUNT_CODE
            if method_name.strip().lower() in BANK_PAYMENT_METHODS
            else CASH_ACCOUNT_CODE
        )
        credit_code = (
            revenue.source.account_code
            if revenue.source and revenue.source.account_code
            else DEFAULT_REVENUE_ACCOUNT_CODE
        )
        debit_account = self._account_by_code(debit_code)
        credit_account = self._account_by_code(credit_code)

        amount = Decimal(revenue.total_amount)
        entry = self.create_entry(JournalEntryCreate(
            entry_date=revenue.collection_date,
            description=f"Revenue {revenue.revenue_code}: {revenue.description}"[:255],
            entry_type=JournalEntryType.AUTO_REVENUE,
            created_by=performed_by,
            source_module="revenue",
            source_ref=revenue.revenue_code,
            lines=[
                JournalLineCreate(account_id=debit_account.id, debit_amount=amount),
                JournalLineCreate(account_id=credit_account.id, credit_amount=amount),
            ],
        ))
        revenue.journal_entry_id = entry.id
        self.db.flush()

        record_audit(
            self.db, "CREATE", "JournalEntry", entry.code, performed_by,
            f"Drafted journal entry {entry.code} for revenue {revenue.revenue_code}",
        )
        return entry
