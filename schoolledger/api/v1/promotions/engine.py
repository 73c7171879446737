"""
Year-end promotion engine: snapshot, per-student apply, run orchestration.

All grades move in one pass. The snapshot (students grouped by their grade at the
start of the run) is fully built before the first student is touched, and only
snapshot entries are ever applied, so a Form 1 student promoted into Form 2 is
never picked up again as a Form 2 student in the same run.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from schoolledger.api.v1.fee_records.service import create_promotion_fee_record, resolve_previous_balance
from schoolledger.core.audit_service import log_audit
from schoolledger.core.enums import SchoolType
from schoolledger.core.exceptions import NotFoundError, StateConflictError, UnknownGradeError
from schoolledger.core.models import Student
from schoolledger.core.tenant_service import get_tenant_or_404, school_type_of

from .progression import next_level
from .schemas import (
    CompletedStudent,
    GradePromotionStats,
    PromotionError,
    PromotionSummary,
    YearEndPromotionRequest,
)

logger = logging.getLogger(__name__)

COMPLETED = "COMPLETED"


@dataclass(frozen=True)
class StudentSnapshot:
    """Immutable view of a student at snapshot time."""

    id: UUID
    student_reference: str
    full_name: str
    grade: str


@dataclass(frozen=True)
class PromotionOutcome:
    student_id: UUID
    student_reference: str
    full_name: str
    from_grade: str
    to_grade: Optional[str] = None
    completion_status: Optional[str] = None

    @property
    def completed(self) -> bool:
        return self.completion_status is not None


def _append_dated_note(existing: Optional[str], note: str) -> str:
    entry = f"[{date.today().isoformat()}] {note.strip()}"
    return f"{existing}\n{entry}" if existing and existing.strip() else entry


async def build_snapshot(
    db: AsyncSession,
    tenant_id: UUID,
    excluded_ids: Optional[Iterable[UUID]] = None,
) -> Dict[str, List[StudentSnapshot]]:
    """
    Active, not-completed, not-excluded students of the tenant grouped by current grade label.
    Students without a grade are skipped (logged, not counted as errors).
    """
    excluded = set(excluded_ids or ())
    result = await db.execute(
        select(Student)
        .where(Student.tenant_id == tenant_id, Student.is_active.is_(True))
        .order_by(Student.grade, Student.last_name, Student.first_name)
    )

    students_by_grade: Dict[str, List[StudentSnapshot]] = {}
    for student in result.scalars().all():
        if student.id in excluded:
            logger.debug("Skipping excluded student: %s", student.student_reference)
            continue
        if student.completion_status and student.completion_status.strip():
            logger.debug("Skipping completed student: %s (%s)", student.student_reference, student.completion_status)
            continue
        if not student.grade or not student.grade.strip():
            logger.warning("Student %s (%s) has no grade assigned", student.full_name, student.student_reference)
            continue
        students_by_grade.setdefault(student.grade, []).append(
            StudentSnapshot(
                id=student.id,
                student_reference=student.student_reference,
                full_name=student.full_name,
                grade=student.grade,
            )
        )

    logger.info(
        "Promotion snapshot ready: %s grades with total %s students",
        len(students_by_grade),
        sum(len(group) for group in students_by_grade.values()),
    )
    return students_by_grade


async def apply_promotion(
    db: AsyncSession,
    snapshot: StudentSnapshot,
    school_type: SchoolType,
    notes: Optional[str] = None,
) -> PromotionOutcome:
    """
    Promote or complete one student. The destination comes from the snapshot grade, never from
    the stored row. Refuses students that changed since the snapshot. Caller must commit.
    """
    progression = next_level(snapshot.grade, school_type)

    student = await db.get(Student, snapshot.id, populate_existing=True)
    if student is None:
        raise NotFoundError(f"Student not found with ID: {snapshot.id}")
    if not student.is_active or student.completion_status or student.grade != snapshot.grade:
        raise StateConflictError("Student was modified after the promotion snapshot was taken")

    before_value = f"Grade: {snapshot.grade}, Status: ACTIVE"
    if progression.completed:
        student.completion_status = progression.completion_status.value
        student.is_active = False
        await db.flush()
        await log_audit(
            db,
            student.tenant_id,
            "Student",
            student.id,
            "COMPLETE_EDUCATION",
            description=f"Student {student.full_name} completed: {student.completion_status}",
            before_value=before_value,
            after_value=f"Grade: {snapshot.grade}, Status: {student.completion_status}",
        )
        logger.info("Student %s completed: %s", student.student_reference, student.completion_status)
        return PromotionOutcome(
            student_id=student.id,
            student_reference=student.student_reference,
            full_name=student.full_name,
            from_grade=snapshot.grade,
            completion_status=student.completion_status,
        )

    student.grade = progression.next_grade
    if notes and notes.strip():
        student.notes = _append_dated_note(student.notes, notes)
    await db.flush()
    await log_audit(
        db,
        student.tenant_id,
        "Student",
        student.id,
        "YEAR_END_PROMOTION",
        description=f"Year-end promotion: {student.full_name} ({snapshot.grade} -> {progression.next_grade})",
        before_value=before_value,
        after_value=f"Grade: {progression.next_grade}, Status: ACTIVE",
    )
    logger.info("Student %s promoted: %s -> %s", student.student_reference, snapshot.grade, progression.next_grade)
    return PromotionOutcome(
        student_id=student.id,
        student_reference=student.student_reference,
        full_name=student.full_name,
        from_grade=snapshot.grade,
        to_grade=progression.next_grade,
    )


async def _create_fee_record_for_promoted_student(
    db: AsyncSession,
    outcome: PromotionOutcome,
    request: YearEndPromotionRequest,
) -> None:
    """Open the next cycle's fee record. Failures are logged and never undo the promotion."""
    fee_structure = request.fee_structures.get(outcome.to_grade) or request.default_fee_structure
    if fee_structure is None:
        logger.warning("No fee structure defined for grade %s, skipping fee record creation", outcome.to_grade)
        return
    try:
        student = await db.get(Student, outcome.student_id)
        previous_balance = await resolve_previous_balance(db, student.id, request.carry_forward_balances)
        await create_promotion_fee_record(
            db,
            student,
            request.new_year,
            request.new_term,
            previous_balance,
            fee_structure.to_components(),
            fee_structure.to_discounts(),
            fee_structure.fee_category,
        )
        await db.commit()
    except Exception as exc:
        await db.rollback()
        logger.error("Failed to create fee record for %s: %s", outcome.student_reference, exc)


def _destination_label(grade: str, school_type: SchoolType) -> Optional[str]:
    try:
        progression = next_level(grade, school_type)
    except UnknownGradeError:
        return None
    return COMPLETED if progression.completed else progression.next_grade


async def run_year_end_promotion(
    db: AsyncSession,
    tenant_id: UUID,
    request: YearEndPromotionRequest,
) -> PromotionSummary:
    """
    Promote every eligible student of the tenant.

    Only tenant resolution and the snapshot are fatal. Every per-student failure is rolled back,
    recorded in summary.errors and the run moves on to the next student.
    """
    tenant = await get_tenant_or_404(db, tenant_id)
    school_type = school_type_of(tenant)
    cycle_label = f"{request.new_year} Term {request.new_term}"
    logger.info("Starting year-end promotion for tenant %s into %s", tenant_id, cycle_label)

    excluded = list(dict.fromkeys(request.excluded_student_ids))
    summary = PromotionSummary(
        new_academic_year=cycle_label,
        excluded_count=len(excluded),
        excluded_student_ids=[str(i) for i in excluded],
    )

    students_by_grade = await build_snapshot(db, tenant_id, excluded)
    summary.total_students_processed = sum(len(group) for group in students_by_grade.values())

    for current_grade, students in students_by_grade.items():
        logger.info("Processing grade: %s (%s students)", current_grade, len(students))
        stats = GradePromotionStats(
            from_grade=current_grade,
            to_grade=_destination_label(current_grade, school_type),
            student_count=len(students),
        )

        for snapshot in students:
            try:
                outcome = await apply_promotion(db, snapshot, school_type, request.promotion_notes)
                await db.commit()
            except Exception as exc:
                await db.rollback()
                stats.error_count += 1
                summary.error_count += 1
                message = getattr(exc, "message", None) or str(exc) or exc.__class__.__name__
                summary.errors.append(
                    PromotionError(
                        student_id=snapshot.id,
                        student_name=snapshot.full_name,
                        current_grade=current_grade,
                        error=message,
                    )
                )
                logger.error("Error promoting student %s (%s): %s", snapshot.full_name, snapshot.student_reference, message)
                continue

            stats.success_count += 1
            if outcome.completed:
                summary.completed_count += 1
                summary.completed_students.append(
                    CompletedStudent(
                        student_id=outcome.student_id,
                        student_reference=outcome.student_reference,
                        full_name=outcome.full_name,
                        completion_status=outcome.completion_status,
                    )
                )
            else:
                summary.promoted_count += 1
                summary.promoted_student_ids.append(str(outcome.student_id))
                await _create_fee_record_for_promoted_student(db, outcome, request)

        summary.grade_breakdown[current_grade] = stats
        logger.info(
            "Grade %s complete: %s successful, %s errors",
            current_grade, stats.success_count, stats.error_count,
        )

    summary.message = (
        f"Year-end promotion complete for {cycle_label}: {summary.promoted_count} students promoted, "
        f"{summary.completed_count} completed, {summary.error_count} errors"
    )
    logger.info(summary.message)
    return summary
