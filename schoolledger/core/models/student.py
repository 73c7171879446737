import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from schoolledger.db.session import Base


class Student(Base):
    """
    Enrolled student. grade holds the free-text level label ("Grade 3", "Form 1").
    completion_status is set (and is_active cleared) when the student finishes their phase.
    """

    __tablename__ = "students"
    __table_args__ = (
        # Student reference is unique per tenant
        UniqueConstraint("tenant_id", "student_reference", name="uq_student_tenant_reference"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid(as_uuid=True), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    student_reference = Column(String(50), nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    grade = Column(String(50), nullable=True)
    class_name = Column(String(50), nullable=True)  # e.g. "5A", "4B"
    is_active = Column(Boolean, nullable=False, default=True)
    # COMPLETED_PRIMARY | COMPLETED_O_LEVEL | COMPLETED_A_LEVEL | null
    completion_status = Column(String(30), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    tenant = relationship("Tenant", backref="students")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
