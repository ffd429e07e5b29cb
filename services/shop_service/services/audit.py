"""Audit trail helper for admin operations."""

import uuid
from typing import Optional, Union

from services.shop_service.models import AuditEntityType, StoreAuditLog
from sqlalchemy.ext.asyncio import AsyncSession


def log_audit(
    db: AsyncSession,
    entity_type: AuditEntityType,
    entity_id: Union[uuid.UUID, str],
    action: str,
    performed_by: str,
    old_value: Optional[dict] = None,
    new_value: Optional[dict] = None,
    notes: Optional[str] = None,
) -> StoreAuditLog:
    """Add an audit event to the current transaction."""
    audit_log = StoreAuditLog(
        entity_type=entity_type,
        entity_id=str(entity_id),
        action=action,
        old_value=old_value,
        new_value=new_value,
        performed_by=performed_by,
        notes=notes,
    )
    db.add(audit_log)
    return audit_log
