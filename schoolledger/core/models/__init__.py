from schoolledger.core.models.tenant import Tenant
from schoolledger.core.models.student import Student
from schoolledger.core.models.student_fee_record import StudentFeeRecord
from schoolledger.core.models.promotion_run_config import PromotionRunConfig
from schoolledger.core.models.audit_log import AuditLog

__all__ = [
    "Tenant",
    "Student",
    "StudentFeeRecord",
    "PromotionRunConfig",
    "AuditLog",
]
