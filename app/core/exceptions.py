"""Typed coursework failures.

Services raise these; the API layer renders them with the shared
ErrorResponse envelope and the status code each kind carries.
"""

from typing import Any, Optional

from fastapi import status


class CourseworkError(Exception):
    """Base failure: a machine-readable code plus the offending field/value."""

    code: str = "COURSEWORK_ERROR"
    status_code: int = status.HTTP_400_BAD_REQUEST
    default_message: str = "Coursework operation failed"

    def __init__(
        self,
        message: Optional[str] = None,
        field: Optional[str] = None,
        value: Any = None,
    ):
        self.message = message or self.default_message
        self.field = field
        self.value = value
        super().__init__(self.message)

    def to_dict(self) -> dict:
        detail = {"code": self.code, "message": self.message}
        if self.field is not None:
            detail["field"] = self.field
        if self.value is not None:
            detail["value"] = self.value if isinstance(self.value, (int, float, bool)) else str(self.value)
        return detail

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.field}={self.value!r}: {self.message}>"


class InvalidConfiguration(CourseworkError):
    code = "INVALID_CONFIGURATION"
    default_message = "Distribution type and group formation mode are inconsistent"


class WrongWorkType(CourseworkError):
    code = "WRONG_WORK_TYPE"
    default_message = "Operation not allowed for this distribution type"


class Forbidden(CourseworkError):
    code = "FORBIDDEN"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Not enough permissions"


class NotStarted(CourseworkError):
    code = "NOT_STARTED"
    default_message = "The work has not started yet"


class AlreadyEvaluated(CourseworkError):
    code = "ALREADY_EVALUATED"
    default_message = "Submission has already been evaluated"


class AlreadyGraded(CourseworkError):
    code = "ALREADY_GRADED"
    default_message = "Submission already graded; use an override instead"


class OutOfRange(CourseworkError):
    code = "OUT_OF_RANGE"
    default_message = "Score must be between 0 and 20"


class MissingContent(CourseworkError):
    code = "MISSING_CONTENT"
    default_message = "A submission needs content or an artifact_url"


class MissingReason(CourseworkError):
    code = "MISSING_REASON"
    default_message = "An override reason is required"


class NotFound(CourseworkError):
    code = "RESOURCE_NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"
