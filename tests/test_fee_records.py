from decimal import Decimal

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from factories import make_fee_record, make_student, make_tenant
from schoolledger.api.v1.fee_records.schemas import FeeComponents, FeeDiscounts
from schoolledger.api.v1.fee_records.service import (
    calculate_fee_totals,
    create_promotion_fee_record,
    resolve_previous_balance,
)
from schoolledger.core.enums import FeePaymentStatus
from schoolledger.core.models import AuditLog


def test_totals_carry_previous_balance() -> None:
    components = FeeComponents(tuition_fee=Decimal("400"), exam_fee=Decimal("50"), other_fees=Decimal("50"))
    discounts = FeeDiscounts(scholarship_amount=Decimal("100"))

    totals = calculate_fee_totals(components, discounts, previous_balance=Decimal("120"))

    assert totals.gross_amount == Decimal("500")
    assert totals.net_amount == Decimal("400")
    assert totals.outstanding_balance == Decimal("520")
    assert totals.payment_status == FeePaymentStatus.ARREARS


def test_payment_status_follows_outstanding() -> None:
    components = FeeComponents(tuition_fee=Decimal("300"))
    discounts = FeeDiscounts()

    assert calculate_fee_totals(components, discounts, amount_paid=Decimal("300")).payment_status == FeePaymentStatus.PAID
    assert (
        calculate_fee_totals(components, discounts, amount_paid=Decimal("100")).payment_status
        == FeePaymentStatus.PARTIALLY_PAID
    )
    fully_discounted = calculate_fee_totals(components, FeeDiscounts(scholarship_amount=Decimal("300")))
    assert fully_discounted.payment_status == FeePaymentStatus.PAID


@pytest.mark.asyncio
async def test_resolve_previous_balance(db_session: AsyncSession) -> None:
    tenant = await make_tenant(db_session)
    owing = await make_student(db_session, tenant, "Grade 3")
    in_credit = await make_student(db_session, tenant, "Grade 3")
    fresh = await make_student(db_session, tenant, "Grade 3")
    await make_fee_record(db_session, owing, "75.50")
    await make_fee_record(db_session, in_credit, "-20.00")

    assert await resolve_previous_balance(db_session, owing.id, True) == Decimal("75.50")
    assert await resolve_previous_balance(db_session, owing.id, False) == Decimal("0")
    assert await resolve_previous_balance(db_session, in_credit.id, True) == Decimal("0")
    assert await resolve_previous_balance(db_session, fresh.id, True) == Decimal("0")


@pytest.mark.asyncio
async def test_create_promotion_fee_record(db_session: AsyncSession) -> None:
    tenant = await make_tenant(db_session)
    student = await make_student(db_session, tenant, "Grade 4")

    record = await create_promotion_fee_record(
        db_session,
        student,
        2026,
        1,
        Decimal("80"),
        FeeComponents(tuition_fee=Decimal("400"), development_levy=Decimal("25")),
        FeeDiscounts(sibling_discount=Decimal("25")),
        "day_scholar",
    )
    await db_session.commit()

    assert record.year == 2026 and record.term == 1
    assert record.fee_category == "DAY_SCHOLAR"
    assert record.gross_amount == Decimal("425")
    assert record.net_amount == Decimal("400")
    assert record.previous_balance == Decimal("80")
    assert record.amount_paid == Decimal("0")
    assert record.outstanding_balance == Decimal("480")
    assert record.payment_status == "ARREARS"
    assert record.has_scholarship is False

    audit = (
        await db_session.execute(select(AuditLog).where(AuditLog.action == "CREATE_PROMOTION_FEE_RECORD"))
    ).scalar_one()
    assert audit.entity_id == str(record.id)
