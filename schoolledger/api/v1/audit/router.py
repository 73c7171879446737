"""Audit trail: promotions, completions, demotions and promotion fee records, newest first."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from schoolledger.auth.rbac import require_roles
from schoolledger.auth.schemas import CurrentUser
from schoolledger.core.audit_service import list_audit_entries
from schoolledger.db.session import get_db

from .schemas import AuditLogResponse

router = APIRouter(prefix="/api/v1/audit-logs", tags=["audit"])


@router.get("", response_model=List[AuditLogResponse])
async def list_audit_logs(
    entity_type: Optional[str] = Query(None, description="Student, StudentFeeRecord, PromotionRunConfig"),
    entity_id: Optional[str] = Query(None),
    action: Optional[str] = Query(None, description="e.g. YEAR_END_PROMOTION, COMPLETE_EDUCATION"),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles("BURSAR")),
) -> List[AuditLogResponse]:
    return await list_audit_entries(db, current_user.tenant_id, entity_type, entity_id, action, limit)
