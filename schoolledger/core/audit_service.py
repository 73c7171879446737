"""
Audit logging for student, fee record and promotion state changes. Call on every state change.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from schoolledger.core.models import AuditLog


async def log_audit(
    db: AsyncSession,
    tenant_id: UUID,
    entity_type: str,
    entity_id,
    action: str,
    *,
    description: Optional[str] = None,
    before_value: Optional[str] = None,
    after_value: Optional[str] = None,
    performed_by: Optional[str] = None,
) -> None:
    """Append one audit log entry. Caller must commit."""
    entry = AuditLog(
        tenant_id=tenant_id,
        entity_type=entity_type,
        entity_id=str(entity_id),
        action=action,
        description=description,
        before_value=before_value,
        after_value=after_value,
        performed_by=performed_by or "SYSTEM",
        timestamp=datetime.utcnow(),
    )
    db.add(entry)


async def list_audit_entries(
    db: AsyncSession,
    tenant_id: UUID,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    action: Optional[str] = None,
    limit: int = 100,
) -> List[AuditLog]:
    """Newest first, tenant-scoped."""
    stmt = select(AuditLog).where(AuditLog.tenant_id == tenant_id)
    if entity_type:
        stmt = stmt.where(AuditLog.entity_type == entity_type)
    if entity_id:
        stmt = stmt.where(AuditLog.entity_id == entity_id)
    if action:
        stmt = stmt.where(AuditLog.action == action)
    stmt = stmt.order_by(AuditLog.timestamp.desc()).limit(limit)
    result = await db.execute(stmt)
    return list(result.scalars().all())
