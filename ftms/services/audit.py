"""Audit trail helper used by every state-changing service call."""

from sqlalchemy.orm import Session

from ftms.logging_config import get_logger
from ftms.models.audit_log import AuditLog

logger = get_logger(__name__)


def record_audit(
    db: Session,
    action: str,
    table_affected: str,
    record_id,
    performed_by: str,
    details: str,
) -> AuditLog:
    """Append an audit row. Flushed together with the caller's changes."""
    entry = AuditLog(
        action=action,
        table_affected=table_affected,
        record_id=str(record_id),
        performed_by=performed_by,
        details=details,
    )
    db.add(entry)
    logger.info(
        "audit",
        extra={
            "action": action,
            "table_affected": table_affected,
            "record_id": str(record_id),
            "performed_by": performed_by,
        },
    )
    return entry
