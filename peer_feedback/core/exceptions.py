from typing import Any, Dict, Optional


class AppException(Exception):
    def __init__(
        self,
        message: str,
        status_code: int = 400,
        error_code: str = "BUSINESS_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details
        super().__init__(self.message)


class FeedbackValidationError(AppException):
    """Base for every client-caused rejection of a feedback submission."""
    error_code = "VALIDATION_FAILED"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            status_code=400,
            error_code=self.error_code,
            details=details
        )


class MissingFieldsError(FeedbackValidationError):
    error_code = "MISSING_FIELDS"

    def __init__(self, missing=None):
        super().__init__(
            "Missing required fields: evaluator, ratings, timestamp",
            details={"missing": list(missing or [])}
        )


class IdentityError(FeedbackValidationError):
    """Evaluator number/name do not identify a roster employee."""
    error_code = "IDENTITY_INVALID"
    reason = "IDENTITY_INVALID"

    def __init__(self, message: str):
        super().__init__(message, details={"reason": self.reason})


class UnknownEmployeeError(IdentityError):
    reason = "UNKNOWN_EMPLOYEE"

    def __init__(self):
        super().__init__("Employee number not found")


class NameMismatchError(IdentityError):
    reason = "NAME_MISMATCH"

    def __init__(self):
        super().__init__("Name does not match employee number")


class RatingCountMismatchError(FeedbackValidationError):
    error_code = "RATING_COUNT_MISMATCH"


class SelfRatingError(FeedbackValidationError):
    error_code = "SELF_RATING"

    def __init__(self):
        super().__init__("Cannot rate yourself")


class InvalidRatingValueError(FeedbackValidationError):
    error_code = "INVALID_RATING_VALUE"

    def __init__(self, employee_id: str, value: Any):
        super().__init__(
            f"Invalid rating value: {value} for employee {employee_id}",
            details={"employeeId": employee_id}
        )


class MissingReasonError(FeedbackValidationError):
    error_code = "MISSING_REASON"

    def __init__(self, employee_id: str, employee_label: str, rating: int):
        super().__init__(
            f"Reason required for {employee_label} (rating: {rating})",
            details={"employeeId": employee_id, "rating": rating}
        )


class DuplicateSubmissionError(AppException):
    def __init__(self, submitted_at: Optional[str]):
        super().__init__(
            message="Feedback already submitted by this employee",
            status_code=409,
            error_code="DUPLICATE_SUBMISSION",
            details={"submittedAt": submitted_at}
        )


class StorageError(AppException):
    def __init__(self, message: str = "Failed to save feedback"):
        super().__init__(
            message=message,
            status_code=500,
            error_code="STORAGE_FAILURE"
        )


class AuthenticationError(AppException):
    def __init__(self, message: str = "Unauthorized"):
        super().__init__(
            message=message,
            status_code=401,
            error_code="UNAUTHORIZED"
        )


class NotFoundError(AppException):
    def __init__(self, message: str = "Resource not found"):
        super().__init__(
            message=message,
            status_code=404,
            error_code="NOT_FOUND"
        )
