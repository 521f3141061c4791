"""
Custom Exceptions for MentorMatch
=================================

Every business-rule failure raised by the services is one of these. Each
error carries a ``kind`` (validation, not_found, forbidden, conflict,
internal) that the API layer maps to an HTTP status, plus a stable ``code``
for clients.

Usage:
    from mentormatch.core.exceptions import CapacityExceededError

    if supervisor["current_capacity"] >= supervisor["max_capacity"]:
        raise CapacityExceededError(current, maximum)
"""

from enum import Enum
from typing import Optional, Any, Dict


class ErrorKind(str, Enum):
    validation = "validation"
    not_found = "not_found"
    forbidden = "forbidden"
    conflict = "conflict"
    internal = "internal"


HTTP_STATUS_BY_KIND = {
    ErrorKind.validation: 400,
    ErrorKind.forbidden: 403,
    ErrorKind.not_found: 404,
    ErrorKind.conflict: 409,
    ErrorKind.internal: 500,
}


class MentorMatchError(Exception):
    """Base exception for all MentorMatch errors"""

    kind: ErrorKind = ErrorKind.internal

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return HTTP_STATUS_BY_KIND[self.kind]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


# ============================================
# Validation Errors (400-type)
# ============================================

class ValidationError(MentorMatchError):
    """Input validation failed"""

    kind = ErrorKind.validation

    def __init__(self, message: str, field: Optional[str] = None, code: str = "VALIDATION_ERROR"):
        details = {"field": field} if field else {}
        super().__init__(message, code=code, details=details)


class SelfPartnershipForbiddenError(ValidationError):
    """A party tried to send a partnership request to itself"""

    def __init__(self, message: str = "You cannot send a partnership request to yourself"):
        super().__init__(message, code="SELF_PARTNERSHIP_FORBIDDEN")


# ============================================
# Resource Errors (404-type)
# ============================================

class NotFoundError(MentorMatchError):
    """Entity not found (or not visible to the caller)"""

    kind = ErrorKind.not_found

    def __init__(self, resource_type: str, resource_id: str, message: Optional[str] = None):
        super().__init__(
            message or f"{resource_type} with ID '{resource_id}' not found",
            code=f"{resource_type.upper().replace(' ', '_')}_NOT_FOUND",
            details={"resource_type": resource_type, "resource_id": resource_id}
        )


# ============================================
# Authorization Errors (403-type)
# ============================================

class ForbiddenError(MentorMatchError):
    """Caller is not allowed to perform this action"""

    kind = ErrorKind.forbidden

    def __init__(self, message: str = "Not authorized", code: str = "FORBIDDEN"):
        super().__init__(message, code=code)


# ============================================
# Conflict Errors (409-type)
# ============================================

class ConflictError(MentorMatchError):
    """Request conflicts with the current state of the data"""

    kind = ErrorKind.conflict

    def __init__(self, message: str, code: str = "CONFLICT", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code=code, details=details)


class CapacityExceededError(ConflictError):
    """Supervisor has no free supervision slot"""

    def __init__(self, current: int, maximum: int, message: Optional[str] = None):
        super().__init__(
            message or (
                f"Cannot approve: Maximum capacity reached ({current}/{maximum} projects). "
                "Please increase your capacity or reject other applications."
            ),
            code="CAPACITY_EXCEEDED",
            details={"current_capacity": current, "max_capacity": maximum}
        )


class AlreadyPairedError(ConflictError):
    def __init__(self, message: str = "You are already paired with another student"):
        super().__init__(message, code="ALREADY_PAIRED")


class DuplicatePendingRequestError(ConflictError):
    def __init__(self, message: str = "You already have a pending request to this partner"):
        super().__init__(message, code="DUPLICATE_PENDING_REQUEST")


class ReciprocalRequestExistsError(ConflictError):
    def __init__(self, message: str = "This partner has already sent you a request. Please respond to it instead"):
        super().__init__(message, code="RECIPROCAL_REQUEST_EXISTS")


class AlreadyProcessedError(ConflictError):
    """Request is no longer pending"""

    def __init__(self, status: str):
        super().__init__(
            f"This request has already been {status}",
            code="ALREADY_PROCESSED",
            details={"status": status}
        )


class InvalidStateForEditError(ConflictError):
    """Application is not open for editing"""

    def __init__(self, status: str):
        super().__init__(
            "Applications can only be edited when revisions are requested",
            code="INVALID_STATE_FOR_EDIT",
            details={"status": status}
        )


class InvalidTransitionError(ConflictError):
    """Status change not allowed by the application workflow"""

    def __init__(self, from_status: str, to_status: str, message: Optional[str] = None):
        super().__init__(
            message or f"Cannot change application status from '{from_status}' to '{to_status}'",
            code="INVALID_TRANSITION",
            details={"from_status": from_status, "to_status": to_status}
        )


class DuplicateApplicationError(ConflictError):
    def __init__(self, supervisor_id: str):
        super().__init__(
            "You already have an active application with this supervisor",
            code="DUPLICATE_APPLICATION",
            details={"supervisor_id": supervisor_id}
        )


# ============================================
# Internal Errors (500-type)
# ============================================

class InternalError(MentorMatchError):
    """Store failure or unexpected error"""

    kind = ErrorKind.internal

    def __init__(self, message: str = "An unexpected error occurred"):
        super().__init__(message, code="INTERNAL_ERROR")
