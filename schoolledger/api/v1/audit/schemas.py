from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel


class AuditLogResponse(BaseModel):
    id: UUID
    entity_type: str
    entity_id: str
    action: str
    before_value: Optional[str] = None
    after_value: Optional[str] = None
    description: Optional[str] = None
    performed_by: str
    timestamp: datetime

    class Config:
        from_attributes = True
