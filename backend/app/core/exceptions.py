from __future__ import annotations

from typing import TYPE_CHECKING

from app.schemas.errors import ConflictErrorResponse, ConflictOut, ErrorResponse

if TYPE_CHECKING:
    from app.services.conflict_detector import Conflict


class AppError(Exception):
    """Base class for all application exceptions."""

    error = "Error"
    response_model: type[ErrorResponse] = ErrorResponse

    def __init__(self, message: str, status_code: int = 500, details: dict | None = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    def payload(self) -> dict:
        """Extra top-level fields merged into the error response body."""
        return {"details": self.details} if self.details else {}


class ValidationError(AppError):
    """Raised when a request is well-formed JSON but describes an invalid slot."""

    error = "Bad Request"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, status_code=400, details=details)


class NotFoundError(AppError):
    """Raised when a slot or a referenced class, subject, teacher or room does not exist."""

    error = "Not Found"

    def __init__(self, resource_type: str, resource_id: str):
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(
            f"{resource_type} with id {resource_id} not found",
            status_code=404,
            details={"resource": resource_type, "id": resource_id},
        )


class ConflictError(AppError):
    """Raised when a proposed slot double-books a teacher, room or class.

    Carries every detected conflict so the caller can fix all of them in one go.
    """

    error = "Conflict"
    response_model = ConflictErrorResponse

    def __init__(self, conflicts: list[Conflict], message: str = "Timetable conflicts detected"):
        self.conflicts = list(conflicts)
        super().__init__(message, status_code=409)

    def payload(self) -> dict:
        return {"conflicts": [ConflictOut.from_conflict(conflict) for conflict in self.conflicts]}


class ConcurrencyError(AppError):
    """Raised when a competing writer committed to the same day partition first."""

    error = "Conflict"

    def __init__(self, message: str = "The timetable was modified concurrently, please retry"):
        super().__init__(message, status_code=409, details={"retryable": True})


class StorageError(AppError):
    """Raised when the database is unreachable or fails in an unexpected way."""

    error = "Service Unavailable"

    def __init__(self, message: str = "Timetable storage is temporarily unavailable"):
        super().__init__(message, status_code=503)
