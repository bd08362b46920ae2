"""
Reimbursement service — the approval workflow.

    PENDING -> APPROVED -> PAID
    PENDING -> REJECTED
    PENDING -> CANCELLED

Transitions come from VALID_TRANSITIONS in models/expense.py. Each
update is conditional on the status that was read, so a concurrent
change between read and write fails with StateConflictError instead
of being overwritten.
"""

from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ftms.exceptions import (
    ValidationFailedError,
    NotFoundError,
    StateConflictError,
)
from ftms.logging_config import get_logger
from ftms.models.enums import ReimbursementStatus, ReimbursementAction
from ftms.models.expense import Reimbursement, VALID_TRANSITIONS
from ftms.services.audit import record_audit
from ftms.services.reference_data import ReferenceDataService

logger = get_logger(__name__)


def _required_status(target: ReimbursementStatus) -> ReimbursementStatus:
    return next(s for s, targets in VALID_TRANSITIONS.items() if target in targets)


class ReimbursementService:

    def __init__(self, db: Session):
        self.db = db
        self.reference = ReferenceDataService(db)

    def get_reimbursement(self, reimbursement_id: int) -> Reimbursement:
        reimbursement = self.db.get(Reimbursement, reimbursement_id)
        if not reimbursement or reimbursement.is_deleted:
            raise NotFoundError(f"Reimbursement {reimbursement_id} not found")
        return reimbursement

    def _check_transition(
        self, reimbursement: Reimbursement, target: ReimbursementStatus, verb: str
    ) -> None:
        if not reimbursement.can_transition_to(target):
            raise StateConflictError(
                f"Can only {verb} from {_required_status(target).value} status. "
                f"Current status: {reimbursement.status.value}"
            )

    def _apply(
        self,
        reimbursement: Reimbursement,
        target: ReimbursementStatus,
        performed_by: str,
        values: dict,
        audit_action: str,
        details: str,
    ) -> Reimbursement:
        current = reimbursement.status
        result = self.db.execute(
            update(Reimbursement)
            .where(
                Reimbursement.id == reimbursement.id,
                Reimbursement.status == current,
            )
            .values(
                status=target,
                updated_by=performed_by,
                updated_at=datetime.utcnow(),
                **values,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise StateConflictError(
                f"Reimbursement {reimbursement.id} is no longer {current.value}; "
                "reload and try again"
            )
        self.db.refresh(reimbursement)

        record_audit(
            self.db, audit_action, "Reimbursement", reimbursement.id, performed_by, details
        )
        logger.info(
            "reimbursement transition",
            extra={
                "reimbursement_id": reimbursement.id,
                "from_status": current.value,
                "to_status": target.value,
                "performed_by": performed_by,
            },
        )
        return reimbursement

    def approve(self, reimbursement_id: int, performed_by: str) -> Reimbursement:
        reimbursement = self.get_reimbursement(reimbursement_id)
        self._check_transition(reimbursement, ReimbursementStatus.APPROVED, "approve")
        return self._apply(
            reimbursement, ReimbursementStatus.APPROVED, performed_by,
            {"approved_by": performed_by, "approved_date": datetime.utcnow()},
            "APPROVE", "Reimbursement approved.",
        )

    def reject(
        self, reimbursement_id: int, performed_by: str, rejection_reason: str | None
    ) -> Reimbursement:
        reimbursement = self.get_reimbursement(reimbursement_id)
        self._check_transition(reimbursement, ReimbursementStatus.REJECTED, "reject")
        if not rejection_reason or not rejection_reason.strip():
            raise ValidationFailedError("Rejection reason required")
        return self._apply(
            reimbursement, ReimbursementStatus.REJECTED, performed_by,
            {
                "rejection_reason": rejection_reason,
                "approved_by": performed_by,
                "approved_date": datetime.utcnow(),
            },
            "REJECT", f"Reimbursement rejected. Reason: {rejection_reason}",
        )

    def pay(
        self,
        reimbursement_id: int,
        performed_by: str,
        payment_method: str | None = None,
        payment_reference: str | None = None,
        remarks: str | None = None,
    ) -> Reimbursement:
        """
        Mark an approved reimbursement as paid.

        payment_method is a method name, matched case-insensitively
        against non-deleted payment methods.
        """
        reimbursement = self.get_reimbursement(reimbursement_id)
        self._check_transition(reimbursement, ReimbursementStatus.PAID, "pay")

        values = {
            "paid_by": performed_by,
            "paid_date": datetime.utcnow(),
            "payment_reference": payment_reference,
        }
        if payment_method:
            method_id = self.reference.find_payment_method_id(payment_method)
            if method_id is None:
                raise ValidationFailedError(f"Payment method not found: {payment_method}")
            values["payment_method_id"] = method_id
        if remarks:
            values["remarks"] = remarks

        details = f"Reimbursement paid. Reference: {payment_reference or 'N/A'}"
        if remarks:
            details += f". Remarks: {remarks}"
        return self._apply(
            reimbursement, ReimbursementStatus.PAID, performed_by, values, "PAY", details
        )

    def cancel(self, reimbursement_id: int, performed_by: str) -> Reimbursement:
        reimbursement = self.get_reimbursement(reimbursement_id)
        self._check_transition(reimbursement, ReimbursementStatus.CANCELLED, "cancel")
        return self._apply(
            reimbursement, ReimbursementStatus.CANCELLED, performed_by,
            {"cancelled_by": performed_by, "cancelled_date": datetime.utcnow()},
            "CANCEL", "Reimbursement cancelled.",
        )

    def apply_action(
        self,
        reimbursement_id: int,
        action: ReimbursementAction,
        performed_by: str,
        payment_method: str | None = None,
        payment_reference: str | None = None,
        rejection_reason: str | None = None,
        remarks: str | None = None,
    ) -> Reimbursement:
        if action == ReimbursementAction.APPROVE:
            return self.approve(reimbursement_id, performed_by)
        if action == ReimbursementAction.REJECT:
            return self.reject(reimbursement_id, performed_by, rejection_reason)
        if action == ReimbursementAction.PAY:
            return self.pay(
                reimbursement_id, performed_by,
                payment_method=payment_method,
                payment_reference=payment_reference,
                remarks=remarks,
            )
        if action == ReimbursementAction.CANCEL:
            return self.cancel(reimbursement_id, performed_by)
        raise ValidationFailedError(f"Invalid action: {action}")

    def list_reimbursements(
        self, status: ReimbursementStatus | None = None
    ) -> list[Reimbursement]:
        query = (
            select(Reimbursement)
            .where(Reimbursement.is_deleted.is_(False))
            .order_by(Reimbursement.requested_date, Reimbursement.id)
        )
        if status is not None:
            query = query.where(Reimbursement.status == status)
        return list(self.db.execute(query).scalars().all())
