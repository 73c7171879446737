from fastapi import status


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class NotFoundError(ServiceError):
    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_404_NOT_FOUND)


class StateConflictError(ServiceError):
    """Operation not allowed in the entity's current status (e.g. triggering a COMPLETED run)."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_409_CONFLICT)


class UnknownGradeError(ServiceError):
    """Grade/form label has no progression rule for the school type."""

    def __init__(self, grade: str, school_type: str) -> None:
        super().__init__(
            f"Unknown grade/form progression: {grade!r} for {school_type} school",
            status.HTTP_422_UNPROCESSABLE_ENTITY,
        )
        self.grade = grade
        self.school_type = school_type


class PromotionRunError(ServiceError):
    """A promotion run aborted; the config has been marked FAILED."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_500_INTERNAL_SERVER_ERROR)
