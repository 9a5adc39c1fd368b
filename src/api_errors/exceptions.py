"""Custom Exception Hierarchy.

Defines typed exceptions that map to specific HTTP status codes
and error codes for consistent API error responses.
"""

from typing import Any, Dict, List, Optional

from src.api_errors.config import ErrorCode, ERROR_STATUS_MAP


class WorkroomError(Exception):
    """Base exception for all Workroom domain and API errors.

    All custom exceptions inherit from this, allowing a single
    exception handler to catch the entire hierarchy.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[List[Dict[str, Any]]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.status_code = ERROR_STATUS_MAP.get(error_code, 500)
        self.details = details or []
        self.headers = headers or {}


class ValidationError(WorkroomError):
    """Raised when input fails validation. Checked before any storage access."""

    def __init__(
        self,
        message: str = "Validation failed",
        details: Optional[List[Dict[str, Any]]] = None,
        field: Optional[str] = None,
    ):
        if field and not details:
            details = [{"field": field, "issue": message}]
        super().__init__(message, ErrorCode.VALIDATION_ERROR, details)


class AuthenticationError(WorkroomError):
    """Raised when the caller identity is missing."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, ErrorCode.AUTHENTICATION_REQUIRED)


class ForbiddenError(WorkroomError):
    """Raised when the actor is not allowed to perform the action."""

    def __init__(self, message: str = "Not authorized to perform this action"):
        super().__init__(message, ErrorCode.FORBIDDEN)


class WorkspacesDisabledError(WorkroomError):
    """Raised when self-service workspace creation is switched off."""

    def __init__(self, message: str = "Workspaces feature is disabled"):
        super().__init__(message, ErrorCode.WORKSPACES_DISABLED)


class CannotDeleteDefaultError(WorkroomError):
    """Raised when deleting a default workspace."""

    def __init__(self, message: str = "Cannot delete the default workspace"):
        super().__init__(message, ErrorCode.CANNOT_DELETE_DEFAULT)


class NotFoundError(WorkroomError):
    """Raised when a requested resource does not exist."""

    def __init__(
        self,
        message: str = "Resource not found",
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
    ):
        details = []
        if resource_type or resource_id:
            details = [{"resource_type": resource_type, "resource_id": resource_id}]
        super().__init__(message, ErrorCode.NOT_FOUND, details)
        self.resource_type = resource_type
        self.resource_id = resource_id


class AlreadyMemberError(WorkroomError):
    """Raised when a (workspace, user) membership already exists."""

    def __init__(self, message: str = "User is already a member of this workspace"):
        super().__init__(message, ErrorCode.ALREADY_MEMBER)


class InvitationExpiredError(WorkroomError):
    """Raised when an invitation is expired or already used."""

    def __init__(self, message: str = "Invitation has expired or already been used"):
        super().__init__(message, ErrorCode.EXPIRED)


class InternalError(WorkroomError):
    """Raised for unexpected storage failures. Never carries internal detail."""

    def __init__(self, message: str = "An internal error occurred"):
        super().__init__(message, ErrorCode.INTERNAL_ERROR)
