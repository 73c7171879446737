"""
Audit log for student and promotion state changes. Every promotion, completion,
demotion and promotion fee record is logged with before/after values.
"""

import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, String, Text, Uuid

from schoolledger.db.session import Base


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid(as_uuid=True), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    entity_type = Column(String(50), nullable=False)
    entity_id = Column(String(64), nullable=False)
    action = Column(String(100), nullable=False)
    before_value = Column(Text, nullable=True)
    after_value = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    performed_by = Column(String(100), nullable=False, default="SYSTEM")
    timestamp = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
