import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, String, Uuid

from schoolledger.core.enums import SchoolType
from schoolledger.db.session import Base


class Tenant(Base):
    """
    Tenant (school) in the multi-tenant ledger.

    - id: Internal primary key (UUID). Used for all FKs and internal logic.
    - school_type: PRIMARY | SECONDARY | COMBINED. Drives grade progression at year end.
    """

    __tablename__ = "tenants"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    organization_code = Column(String(20), unique=True, nullable=False, index=True)
    organization_name = Column(String(255), nullable=False)
    school_type = Column(String(20), nullable=False, default=SchoolType.PRIMARY.value)
    status = Column(String(20), nullable=False, default="ACTIVE")
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
