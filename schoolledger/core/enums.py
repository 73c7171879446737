from enum import Enum


class SchoolType(str, Enum):
    PRIMARY = "PRIMARY"
    SECONDARY = "SECONDARY"
    COMBINED = "COMBINED"


class CompletionStatus(str, Enum):
    COMPLETED_PRIMARY = "COMPLETED_PRIMARY"
    COMPLETED_O_LEVEL = "COMPLETED_O_LEVEL"
    COMPLETED_A_LEVEL = "COMPLETED_A_LEVEL"


class PromotionStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


class FeePaymentStatus(str, Enum):
    PAID = "PAID"
    PARTIALLY_PAID = "PARTIALLY_PAID"
    ARREARS = "ARREARS"
