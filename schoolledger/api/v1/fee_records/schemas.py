"""Fee record schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class FeeComponents(BaseModel):
    """Chargeable components of one fee record. Missing components are zero."""

    tuition_fee: Decimal = Field(Decimal("0"), ge=0)
    boarding_fee: Decimal = Field(Decimal("0"), ge=0)
    development_levy: Decimal = Field(Decimal("0"), ge=0)
    exam_fee: Decimal = Field(Decimal("0"), ge=0)
    other_fees: Decimal = Field(Decimal("0"), ge=0)

    def total(self) -> Decimal:
        return self.tuition_fee + self.boarding_fee + self.development_levy + self.exam_fee + self.other_fees


class FeeDiscounts(BaseModel):
    scholarship_amount: Decimal = Field(Decimal("0"), ge=0)
    sibling_discount: Decimal = Field(Decimal("0"), ge=0)
    early_payment_discount: Decimal = Field(Decimal("0"), ge=0)

    def total(self) -> Decimal:
        return self.scholarship_amount + self.sibling_discount + self.early_payment_discount


class FeeStructure(BaseModel):
    """
    Fee amounts for one grade/form, used to open the next cycle's fee record.
    Stored as JSON on the promotion config (keyed by grade label) and sent on ad-hoc runs.
    """

    tuition_fee: Optional[Decimal] = Field(None, ge=0)
    boarding_fee: Optional[Decimal] = Field(None, ge=0)
    development_levy: Optional[Decimal] = Field(None, ge=0)
    exam_fee: Optional[Decimal] = Field(None, ge=0)
    other_fees: Optional[Decimal] = Field(None, ge=0)
    default_scholarship: Optional[Decimal] = Field(None, ge=0)
    default_sibling_discount: Optional[Decimal] = Field(None, ge=0)
    fee_category: Optional[str] = Field(None, max_length=30, description="BOARDING, DAY_SCHOLAR, STANDARD")

    def to_components(self) -> FeeComponents:
        return FeeComponents(
            tuition_fee=self.tuition_fee or Decimal("0"),
            boarding_fee=self.boarding_fee or Decimal("0"),
            development_levy=self.development_levy or Decimal("0"),
            exam_fee=self.exam_fee or Decimal("0"),
            other_fees=self.other_fees or Decimal("0"),
        )

    def to_discounts(self) -> FeeDiscounts:
        return FeeDiscounts(
            scholarship_amount=self.default_scholarship or Decimal("0"),
            sibling_discount=self.default_sibling_discount or Decimal("0"),
        )


class StudentFeeRecordResponse(BaseModel):
    id: UUID
    tenant_id: UUID
    student_id: UUID
    year: int
    term: int
    fee_category: str
    tuition_fee: Decimal
    boarding_fee: Decimal
    development_levy: Decimal
    exam_fee: Decimal
    other_fees: Decimal
    scholarship_amount: Decimal
    sibling_discount: Decimal
    early_payment_discount: Decimal
    gross_amount: Decimal
    net_amount: Decimal
    previous_balance: Decimal
    amount_paid: Decimal
    outstanding_balance: Decimal
    payment_status: str
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True
