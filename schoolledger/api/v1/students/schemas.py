from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from schoolledger.api.v1.fee_records.schemas import FeeStructure, StudentFeeRecordResponse


class StudentResponse(BaseModel):
    id: UUID
    tenant_id: UUID
    student_reference: str
    first_name: str
    last_name: str
    grade: Optional[str] = None
    class_name: Optional[str] = None
    is_active: bool
    completion_status: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class StudentPromote(BaseModel):
    """Move one student to a chosen grade outside the year-end run. Optionally opens a fee record for the new cycle."""

    new_grade: str = Field(..., min_length=1, max_length=50, description='e.g. "Grade 4", "Form 2"')
    new_class_name: Optional[str] = Field(None, max_length=50)
    new_year: Optional[int] = Field(None, ge=2000, le=2100)
    new_term: Optional[int] = Field(None, ge=1)
    carry_forward_balance: bool = True
    fee_structure: Optional[FeeStructure] = Field(
        None, description="When set together with new_year and new_term, a fee record is created"
    )
    notes: Optional[str] = Field(None, max_length=500)


class StudentDemote(BaseModel):
    """Put a student back into a lower grade (repeat a year). Reactivates completed students."""

    new_grade: str = Field(..., min_length=1, max_length=50)
    new_class_name: Optional[str] = Field(None, max_length=50)
    reason: str = Field(..., min_length=1, max_length=500)


class StudentPromoteResult(BaseModel):
    student: StudentResponse
    fee_record: Optional[StudentFeeRecordResponse] = None
