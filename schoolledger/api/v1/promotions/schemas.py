"""Year-end promotion schemas: run configuration, ad-hoc request and run summary."""

from datetime import date, datetime
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from schoolledger.api.v1.fee_records.schemas import FeeStructure

MIN_ACADEMIC_YEAR = 2000
MAX_ACADEMIC_YEAR = 2100


class PromotionRunConfigCreate(BaseModel):
    """Create or update the promotion config for one cycle. (academic_year, term) is unique per school."""

    academic_year: int = Field(..., ge=MIN_ACADEMIC_YEAR, le=MAX_ACADEMIC_YEAR, description="Cycle being closed, e.g. 2025")
    term: int = Field(..., ge=1, description="Term of the cycle being closed")
    end_of_year_date: date = Field(..., description="Date the promotion runs automatically")
    next_academic_year: int = Field(..., ge=MIN_ACADEMIC_YEAR, le=MAX_ACADEMIC_YEAR)
    next_term: int = Field(..., ge=1)
    carry_forward_balances: bool = Field(True, description="Add outstanding balances to the new fee records")
    fee_structures: Optional[Dict[str, FeeStructure]] = Field(
        None, description='Fee structure per destination grade, e.g. {"Grade 2": {...}, "Form 3": {...}}'
    )
    default_fee_structure: Optional[FeeStructure] = Field(
        None, description="Used when the destination grade has no entry in fee_structures"
    )
    notes: Optional[str] = Field(None, max_length=1000)

    @model_validator(mode="after")
    def validate_next_cycle(self) -> "PromotionRunConfigCreate":
        if (self.next_academic_year, self.next_term) <= (self.academic_year, self.term):
            raise ValueError("next cycle must come after the current cycle")
        return self


class PromotionRunConfigResponse(BaseModel):
    id: UUID
    tenant_id: UUID
    academic_year: int
    term: int
    end_of_year_date: date
    next_academic_year: int
    next_term: int
    carry_forward_balances: bool
    status: str
    executed_at: Optional[datetime] = None
    students_promoted: int
    students_completed: int
    promotion_errors: int
    notes: Optional[str] = None
    fee_structures: Optional[Dict[str, FeeStructure]] = None
    default_fee_structure: Optional[FeeStructure] = None
    is_active: bool
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class CancelPromotionRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=500)


class YearEndPromotionRequest(BaseModel):
    """
    Promote every active student of the school in one pass.
    Excluded students (repeating, transferring) keep their current grade.
    """

    new_year: int = Field(..., ge=MIN_ACADEMIC_YEAR, le=MAX_ACADEMIC_YEAR)
    new_term: int = Field(..., ge=1)
    carry_forward_balances: bool = True
    excluded_student_ids: List[UUID] = Field(default_factory=list)
    promotion_notes: Optional[str] = Field(None, max_length=500)
    fee_structures: Dict[str, FeeStructure] = Field(default_factory=dict)
    default_fee_structure: Optional[FeeStructure] = None


class GradePromotionStats(BaseModel):
    from_grade: str
    to_grade: Optional[str] = None  # next grade, or "COMPLETED"
    student_count: int = 0
    success_count: int = 0
    error_count: int = 0


class CompletedStudent(BaseModel):
    student_id: UUID
    student_reference: str
    full_name: str
    completion_status: str  # COMPLETED_PRIMARY, COMPLETED_O_LEVEL, COMPLETED_A_LEVEL


class PromotionError(BaseModel):
    student_id: UUID
    student_name: str
    current_grade: str
    error: str


class PromotionSummary(BaseModel):
    """Result of one run. Inspect error_count/errors; a run with errors still completes."""

    total_students_processed: int = 0
    promoted_count: int = 0
    completed_count: int = 0
    excluded_count: int = 0
    error_count: int = 0
    new_academic_year: Optional[str] = None
    grade_breakdown: Dict[str, GradePromotionStats] = Field(default_factory=dict)
    promoted_student_ids: List[str] = Field(default_factory=list)
    completed_students: List[CompletedStudent] = Field(default_factory=list)
    excluded_student_ids: List[str] = Field(default_factory=list)
    errors: List[PromotionError] = Field(default_factory=list)
    message: str = ""
