"""Domain errors raised by the service layer.

Each error is an HTTPException so FastAPI renders it directly; services raise
them the same way they would raise a plain HTTPException.
"""

from fastapi import HTTPException


class DomainError(HTTPException):
    status_code = 500
    default_detail = "Internal server error"

    def __init__(self, detail: str | None = None):
        super().__init__(status_code=self.status_code, detail=detail or self.default_detail)


class NotFoundError(DomainError):
    status_code = 404
    default_detail = "Not found"


class ForbiddenError(DomainError):
    status_code = 403
    default_detail = "You do not have access to this resource"


class InvalidInputError(DomainError):
    status_code = 400
    default_detail = "Invalid input"


class ConflictError(DomainError):
    status_code = 409
    default_detail = "The doctor already has an appointment at this time"


class InvalidStateError(DomainError):
    status_code = 400
    default_detail = "Invalid appointment status for this operation"


class IntegrityGuardError(DomainError):
    """Dependent rows block a deletion"""

    status_code = 409
    default_detail = "Resource still has dependent records"


class InternalError(DomainError):
    status_code = 500
    default_detail = "Internal server error"


class AvailabilityUnknownError(DomainError):
    """The conflict lookup failed, so the slot can be neither confirmed nor refused as taken"""

    status_code = 503
    default_detail = "Could not verify the doctor's availability. Please try again."
