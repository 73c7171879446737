"""Fee records router: a student's fee history (newest first) and latest record."""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from schoolledger.auth.dependencies import get_current_user
from schoolledger.auth.schemas import CurrentUser
from schoolledger.core.exceptions import ServiceError
from schoolledger.db.session import get_db

from .schemas import StudentFeeRecordResponse
from . import service

router = APIRouter(prefix="/api/v1/fee-records", tags=["fee-records"])


@router.get("/students/{student_id}", response_model=List[StudentFeeRecordResponse])
async def list_student_fee_records(
    student_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> List[StudentFeeRecordResponse]:
    try:
        return await service.list_student_fee_records(db, current_user.tenant_id, student_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/students/{student_id}/latest", response_model=Optional[StudentFeeRecordResponse])
async def get_latest_student_fee_record(
    student_id: UUID,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> Optional[StudentFeeRecordResponse]:
    """Most recent fee record of the student; carries the balance the next promotion would bring forward."""
    try:
        return await service.get_latest_student_fee_record(db, current_user.tenant_id, student_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
