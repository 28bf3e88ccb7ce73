"""
Application exceptions.

Services raise these; the handlers registered in ``roombook.main`` turn them
into JSON responses with a stable status code.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    VALIDATION_ERROR = "VALIDATION_ERROR"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    DUPLICATE_ENTRY = "DUPLICATE_ENTRY"
    INSUFFICIENT_CAPACITY = "INSUFFICIENT_CAPACITY"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class BookingAppError(Exception):
    """Base class for every error the booking core reports to its callers."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
        status_code: int = 500,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": False,
            "message": self.message,
            "error": {
                "code": self.error_code.value,
                "details": self.details,
                "type": self.__class__.__name__,
            },
        }

    def __str__(self) -> str:
        return f"{self.error_code.value}: {self.message}"


class ValidationError(BookingAppError):
    """Missing or invalid input."""

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCode.VALIDATION_ERROR, details, 400)


class NotFoundError(BookingAppError):
    def __init__(
        self,
        resource_type: str = "Resource",
        resource_id: Optional[Any] = None,
        message: Optional[str] = None,
    ):
        if not message:
            message = f"{resource_type} not found"
        details = {
            "resource_type": resource_type,
            "resource_id": str(resource_id) if resource_id is not None else None,
        }
        super().__init__(message, ErrorCode.RESOURCE_NOT_FOUND, details, 404)


class ConflictError(BookingAppError):
    def __init__(self, message: str = "Resource already exists", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCode.DUPLICATE_ENTRY, details, 409)


class InsufficientCapacityError(BookingAppError):
    """Raised when a booking asks for more seats than remain. ``available`` is the actual remaining count."""

    def __init__(self, requested: int, available: int, message: Optional[str] = None):
        self.requested = requested
        self.available = available
        if not message:
            message = f"Not enough seats available. Only {available} seats left."
        details = {"requested": requested, "available": available}
        super().__init__(message, ErrorCode.INSUFFICIENT_CAPACITY, details, 400)


class InternalError(BookingAppError):
    def __init__(self, message: str = "Internal server error", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, ErrorCode.INTERNAL_ERROR, details, 500)
