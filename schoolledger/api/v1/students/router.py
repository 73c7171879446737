from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from schoolledger.auth.dependencies import get_current_user
from schoolledger.auth.rbac import require_roles
from schoolledger.auth.schemas import CurrentUser
from schoolledger.core.exceptions import ServiceError
from schoolledger.db.session import get_db

from .schemas import StudentDemote, StudentPromote, StudentPromoteResult, StudentResponse
from . import service

router = APIRouter(prefix="/api/v1/students", tags=["students"])


@router.get("", response_model=List[StudentResponse])
async def list_students(
    grade: Optional[str] = Query(None, description='Filter by grade, e.g. "Grade 3"'),
    active_only: bool = Query(True),
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[StudentResponse]:
    return await service.list_students(db, current_user.tenant_id, grade=grade, active_only=active_only)


@router.post("/{student_id}/promote", response_model=StudentPromoteResult)
async def promote_student(
    student_id: UUID,
    payload: StudentPromote,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles("BURSAR")),
) -> StudentPromoteResult:
    """Promote one student to the given grade, optionally opening a fee record for the new cycle."""
    try:
        return await service.promote_student(db, current_user.tenant_id, student_id, payload, current_user.actor_tag)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/{student_id}/demote", response_model=StudentResponse)
async def demote_student(
    student_id: UUID,
    payload: StudentDemote,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_roles()),
) -> StudentResponse:
    """Send a student back a grade (repeat). Clears completion status. Admin only."""
    try:
        return await service.demote_student(db, current_user.tenant_id, student_id, payload, current_user.actor_tag)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
