"""Student fee record: one per student per (year, term). Totals are computed when the record is built."""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import relationship

from schoolledger.core.enums import FeePaymentStatus
from schoolledger.db.session import Base


class StudentFeeRecord(Base):
    """Fee components, discounts and running balance for one student in one cycle."""

    __tablename__ = "student_fee_records"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid(as_uuid=True), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(Uuid(as_uuid=True), ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    year = Column(Integer, nullable=False)
    term = Column(Integer, nullable=False)
    fee_category = Column(String(30), nullable=False, default="STANDARD")  # STANDARD, BOARDING, DAY_SCHOLAR

    tuition_fee = Column(Numeric(12, 2), nullable=False, default=0)
    boarding_fee = Column(Numeric(12, 2), nullable=False, default=0)
    development_levy = Column(Numeric(12, 2), nullable=False, default=0)
    exam_fee = Column(Numeric(12, 2), nullable=False, default=0)
    other_fees = Column(Numeric(12, 2), nullable=False, default=0)

    scholarship_amount = Column(Numeric(12, 2), nullable=False, default=0)
    sibling_discount = Column(Numeric(12, 2), nullable=False, default=0)
    early_payment_discount = Column(Numeric(12, 2), nullable=False, default=0)
    has_scholarship = Column(Boolean, nullable=False, default=False)

    gross_amount = Column(Numeric(12, 2), nullable=False, default=0)
    net_amount = Column(Numeric(12, 2), nullable=False, default=0)
    # Carried over from the previous record when carry-forward is enabled
    previous_balance = Column(Numeric(12, 2), nullable=False, default=0)
    amount_paid = Column(Numeric(12, 2), nullable=False, default=0)
    outstanding_balance = Column(Numeric(12, 2), nullable=False, default=0)
    payment_status = Column(String(20), nullable=False, default=FeePaymentStatus.ARREARS.value)

    bursar_notes = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    tenant = relationship("Tenant")
    student = relationship("Student", backref="fee_records")
