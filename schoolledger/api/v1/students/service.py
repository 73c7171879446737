"""
Student service: listing and manual grade changes outside the year-end run.

Manual promotion and demotion take the target grade from the caller; the grade must be one the
school type uses. Every change is audited.
"""

import logging
from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from schoolledger.api.v1.fee_records.schemas import StudentFeeRecordResponse
from schoolledger.api.v1.fee_records.service import create_promotion_fee_record, resolve_previous_balance
from schoolledger.api.v1.promotions.progression import is_valid_grade_for_school_type, normalize_grade_name
from schoolledger.core.audit_service import log_audit
from schoolledger.core.exceptions import NotFoundError, ServiceError
from schoolledger.core.models import Student
from schoolledger.core.tenant_service import get_tenant_or_404, school_type_of

from .schemas import StudentDemote, StudentPromote, StudentPromoteResult, StudentResponse

logger = logging.getLogger(__name__)


async def list_students(
    db: AsyncSession,
    tenant_id: UUID,
    grade: Optional[str] = None,
    active_only: bool = True,
) -> List[StudentResponse]:
    stmt = select(Student).where(Student.tenant_id == tenant_id)
    if grade:
        stmt = stmt.where(Student.grade == normalize_grade_name(grade.strip()))
    if active_only:
        stmt = stmt.where(Student.is_active.is_(True))
    stmt = stmt.order_by(Student.grade, Student.last_name, Student.first_name)
    result = await db.execute(stmt)
    return [StudentResponse.model_validate(s) for s in result.scalars().all()]


async def get_student(db: AsyncSession, tenant_id: UUID, student_id: UUID) -> Student:
    result = await db.execute(select(Student).where(Student.id == student_id, Student.tenant_id == tenant_id))
    student = result.scalar_one_or_none()
    if student is None:
        raise NotFoundError("Student not found")
    return student


async def _validated_grade(db: AsyncSession, tenant_id: UUID, grade: str) -> str:
    school_type = school_type_of(await get_tenant_or_404(db, tenant_id))
    normalized = normalize_grade_name(grade.strip())
    if not is_valid_grade_for_school_type(normalized, school_type):
        raise ServiceError(
            f"Invalid grade {grade!r} for {school_type.value} school",
            status.HTTP_400_BAD_REQUEST,
        )
    return normalized


def _append_note(existing: Optional[str], note: str) -> str:
    return f"{existing}\n{note}" if existing and existing.strip() else note


async def promote_student(
    db: AsyncSession,
    tenant_id: UUID,
    student_id: UUID,
    payload: StudentPromote,
    performed_by: Optional[str] = None,
) -> StudentPromoteResult:
    """Set the student's grade; with fee_structure + new_year + new_term also open the new cycle's fee record."""
    new_grade = await _validated_grade(db, tenant_id, payload.new_grade)
    student = await get_student(db, tenant_id, student_id)
    if not student.is_active:
        raise ServiceError("Cannot promote an inactive student", status.HTTP_400_BAD_REQUEST)

    old_grade = student.grade
    student.grade = new_grade
    if payload.new_class_name is not None:
        student.class_name = payload.new_class_name
    if payload.notes and payload.notes.strip():
        student.notes = _append_note(student.notes, f"[{date.today().isoformat()}] {payload.notes.strip()}")
    await log_audit(
        db,
        tenant_id,
        "Student",
        student.id,
        "PROMOTE_STUDENT",
        description=f"Promoted {student.full_name} from {old_grade} to {new_grade}",
        before_value=f"Grade: {old_grade}",
        after_value=f"Grade: {new_grade}",
        performed_by=performed_by,
    )

    fee_record = None
    if payload.fee_structure is not None and payload.new_year and payload.new_term:
        previous_balance = await resolve_previous_balance(db, student.id, payload.carry_forward_balance)
        fee_record = await create_promotion_fee_record(
            db,
            student,
            payload.new_year,
            payload.new_term,
            previous_balance,
            payload.fee_structure.to_components(),
            payload.fee_structure.to_discounts(),
            payload.fee_structure.fee_category,
        )
    await db.commit()
    await db.refresh(student)
    logger.info("Student %s promoted from %s to %s", student.student_reference, old_grade, new_grade)

    return StudentPromoteResult(
        student=StudentResponse.model_validate(student),
        fee_record=StudentFeeRecordResponse.model_validate(fee_record) if fee_record is not None else None,
    )


async def demote_student(
    db: AsyncSession,
    tenant_id: UUID,
    student_id: UUID,
    payload: StudentDemote,
    performed_by: Optional[str] = None,
) -> StudentResponse:
    """Move the student back to new_grade, clear any completion status and reactivate them."""
    new_grade = await _validated_grade(db, tenant_id, payload.new_grade)
    student = await get_student(db, tenant_id, student_id)

    old_grade = student.grade
    old_status = student.completion_status or "ACTIVE"
    student.grade = new_grade
    if payload.new_class_name is not None:
        student.class_name = payload.new_class_name
    student.completion_status = None
    student.is_active = True
    student.notes = _append_note(
        student.notes,
        f"[{date.today().isoformat()}] DEMOTION: {old_grade} -> {new_grade}. Reason: {payload.reason.strip()}",
    )
    await log_audit(
        db,
        tenant_id,
        "Student",
        student.id,
        "DEMOTE_STUDENT",
        description=f"Demoted {student.full_name} from {old_grade} to {new_grade}: {payload.reason.strip()}",
        before_value=f"Grade: {old_grade}, Status: {old_status}",
        after_value=f"Grade: {new_grade}, Status: ACTIVE",
        performed_by=performed_by,
    )
    await db.commit()
    await db.refresh(student)
    logger.info("Student %s demoted from %s to %s", student.student_reference, old_grade, new_grade)
    return StudentResponse.model_validate(student)
