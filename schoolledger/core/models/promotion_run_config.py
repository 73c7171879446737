import uuid
from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, Date, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from schoolledger.core.enums import PromotionStatus
from schoolledger.db.session import Base


class PromotionRunConfig(Base):
    """
    Year-end promotion configuration per tenant per cycle (year, term).
    status: SCHEDULED -> IN_PROGRESS -> COMPLETED | FAILED, or SCHEDULED -> CANCELLED.
    COMPLETED, FAILED and CANCELLED are terminal; the next cycle gets a new row.
    """

    __tablename__ = "promotion_run_configs"
    __table_args__ = (
        UniqueConstraint("tenant_id", "academic_year", "term", name="uq_promotion_config_tenant_cycle"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid(as_uuid=True), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    academic_year = Column(Integer, nullable=False)
    term = Column(Integer, nullable=False)
    end_of_year_date = Column(Date, nullable=False)
    next_academic_year = Column(Integer, nullable=False)
    next_term = Column(Integer, nullable=False)
    carry_forward_balances = Column(Boolean, nullable=False, default=True)

    status = Column(String(20), nullable=False, default=PromotionStatus.SCHEDULED.value)
    executed_at = Column(DateTime(timezone=True), nullable=True)
    students_promoted = Column(Integer, nullable=False, default=0)
    students_completed = Column(Integer, nullable=False, default=0)
    promotion_errors = Column(Integer, nullable=False, default=0)
    notes = Column(Text, nullable=True)

    # {"Grade 2": {"tuition_fee": "400.00", ...}, ...}
    fee_structures = Column(JSON, nullable=True)
    default_fee_structure = Column(JSON, nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)
    created_by = Column(String(100), nullable=True)  # user id or "system-rollover"
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    tenant = relationship("Tenant", backref="promotion_run_configs")

    def append_note(self, note: str) -> None:
        self.notes = f"{self.notes}\n{note}" if self.notes else note
