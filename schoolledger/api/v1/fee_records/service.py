"""Fee record service: totals, balance carry-forward and promotion fee records."""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from schoolledger.core.audit_service import log_audit
from schoolledger.core.enums import FeePaymentStatus
from schoolledger.core.exceptions import NotFoundError
from schoolledger.core.models import Student, StudentFeeRecord

from .schemas import FeeComponents, FeeDiscounts, StudentFeeRecordResponse

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def _to_decimal(val) -> Decimal:
    if val is None:
        return ZERO
    return val if isinstance(val, Decimal) else Decimal(str(val))


@dataclass(frozen=True)
class FeeTotals:
    gross_amount: Decimal
    net_amount: Decimal
    outstanding_balance: Decimal
    payment_status: FeePaymentStatus


def calculate_fee_totals(
    components: FeeComponents,
    discounts: FeeDiscounts,
    previous_balance: Decimal = ZERO,
    amount_paid: Decimal = ZERO,
) -> FeeTotals:
    """
    gross = sum(components); net = gross - sum(discounts);
    outstanding = net + previous_balance - amount_paid.
    """
    gross = components.total()
    net = gross - discounts.total()
    outstanding = net + _to_decimal(previous_balance) - _to_decimal(amount_paid)
    if outstanding <= ZERO:
        payment_status = FeePaymentStatus.PAID
    elif _to_decimal(amount_paid) > ZERO:
        payment_status = FeePaymentStatus.PARTIALLY_PAID
    else:
        payment_status = FeePaymentStatus.ARREARS
    return FeeTotals(gross, net, outstanding, payment_status)


async def get_latest_fee_record(db: AsyncSession, student_id: UUID) -> Optional[StudentFeeRecord]:
    result = await db.execute(
        select(StudentFeeRecord)
        .where(StudentFeeRecord.student_id == student_id)
        .order_by(StudentFeeRecord.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def resolve_previous_balance(db: AsyncSession, student_id: UUID, carry_forward: bool) -> Decimal:
    """Outstanding balance of the student's latest record when carry-forward is on. Credits are not carried."""
    if not carry_forward:
        return ZERO
    latest = await get_latest_fee_record(db, student_id)
    if latest is None:
        return ZERO
    balance = _to_decimal(latest.outstanding_balance)
    return balance if balance > ZERO else ZERO


async def create_promotion_fee_record(
    db: AsyncSession,
    student: Student,
    year: int,
    term: int,
    previous_balance: Decimal,
    components: FeeComponents,
    discounts: FeeDiscounts,
    fee_category: Optional[str] = None,
) -> StudentFeeRecord:
    """New fee record for the student's next cycle. amount_paid starts at zero. Caller must commit."""
    previous_balance = _to_decimal(previous_balance)
    if previous_balance < ZERO:
        previous_balance = ZERO
    totals = calculate_fee_totals(components, discounts, previous_balance)
    record = StudentFeeRecord(
        tenant_id=student.tenant_id,
        student_id=student.id,
        year=year,
        term=term,
        fee_category=(fee_category or "STANDARD").strip().upper(),
        tuition_fee=components.tuition_fee,
        boarding_fee=components.boarding_fee,
        development_levy=components.development_levy,
        exam_fee=components.exam_fee,
        other_fees=components.other_fees,
        scholarship_amount=discounts.scholarship_amount,
        sibling_discount=discounts.sibling_discount,
        early_payment_discount=discounts.early_payment_discount,
        has_scholarship=discounts.scholarship_amount > ZERO,
        gross_amount=totals.gross_amount,
        net_amount=totals.net_amount,
        previous_balance=previous_balance,
        amount_paid=ZERO,
        outstanding_balance=totals.outstanding_balance,
        payment_status=totals.payment_status.value,
        is_active=True,
    )
    db.add(record)
    await db.flush()
    if previous_balance > ZERO:
        logger.info("Carrying forward previous balance %s for student %s", previous_balance, student.student_reference)
    await log_audit(
        db,
        student.tenant_id,
        "StudentFeeRecord",
        record.id,
        "CREATE_PROMOTION_FEE_RECORD",
        description=(
            f"Created promotion fee record for student {student.full_name} ({student.student_reference}), "
            f"Year: {year}, Term: {term}, Amount: {totals.net_amount}, Previous Balance: {previous_balance}"
        ),
    )
    logger.info(
        "Created promotion fee record - Student: %s, Year: %s, Term: %s, Net: %s, Outstanding: %s",
        student.student_reference, year, term, totals.net_amount, totals.outstanding_balance,
    )
    return record


async def list_student_fee_records(
    db: AsyncSession,
    tenant_id: UUID,
    student_id: UUID,
) -> List[StudentFeeRecordResponse]:
    student = (
        await db.execute(select(Student).where(Student.id == student_id, Student.tenant_id == tenant_id))
    ).scalar_one_or_none()
    if not student:
        raise NotFoundError("Student not found")
    result = await db.execute(
        select(StudentFeeRecord)
        .where(StudentFeeRecord.student_id == student_id, StudentFeeRecord.tenant_id == tenant_id)
        .order_by(StudentFeeRecord.created_at.desc())
    )
    return [StudentFeeRecordResponse.model_validate(r) for r in result.scalars().all()]


async def get_latest_student_fee_record(
    db: AsyncSession,
    tenant_id: UUID,
    student_id: UUID,
) -> Optional[StudentFeeRecordResponse]:
    student = (
        await db.execute(select(Student).where(Student.id == student_id, Student.tenant_id == tenant_id))
    ).scalar_one_or_none()
    if not student:
        raise NotFoundError("Student not found")
    record = await get_latest_fee_record(db, student_id)
    return StudentFeeRecordResponse.model_validate(record) if record is not None else None
