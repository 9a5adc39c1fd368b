"""API Error Configuration.

Defines error codes, severity levels, and configuration for
structured error handling across the Workroom API.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict


class ErrorCode(Enum):
    """Standardized error codes for API responses."""

    # Validation errors (400)
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Authentication errors (401)
    AUTHENTICATION_REQUIRED = "AUTHENTICATION_REQUIRED"

    # Authorization errors (403)
    FORBIDDEN = "FORBIDDEN"
    WORKSPACES_DISABLED = "WORKSPACES_DISABLED"
    CANNOT_DELETE_DEFAULT = "CANNOT_DELETE_DEFAULT"

    # Not found errors (404)
    NOT_FOUND = "NOT_FOUND"

    # Conflict errors (409)
    ALREADY_MEMBER = "ALREADY_MEMBER"

    # Gone (410)
    EXPIRED = "EXPIRED"

    # Server errors (500)
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ErrorSeverity(Enum):
    """Severity levels for error logging."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


# Map error codes to HTTP status codes
ERROR_STATUS_MAP: Dict[ErrorCode, int] = {
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.AUTHENTICATION_REQUIRED: 401,
    ErrorCode.FORBIDDEN: 403,
    ErrorCode.WORKSPACES_DISABLED: 403,
    ErrorCode.CANNOT_DELETE_DEFAULT: 403,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.ALREADY_MEMBER: 409,
    ErrorCode.EXPIRED: 410,
    ErrorCode.INTERNAL_ERROR: 500,
}

# Map error codes to severity
ERROR_SEVERITY_MAP: Dict[ErrorCode, ErrorSeverity] = {
    ErrorCode.VALIDATION_ERROR: ErrorSeverity.LOW,
    ErrorCode.AUTHENTICATION_REQUIRED: ErrorSeverity.MEDIUM,
    ErrorCode.FORBIDDEN: ErrorSeverity.MEDIUM,
    ErrorCode.WORKSPACES_DISABLED: ErrorSeverity.LOW,
    ErrorCode.CANNOT_DELETE_DEFAULT: ErrorSeverity.LOW,
    ErrorCode.NOT_FOUND: ErrorSeverity.LOW,
    ErrorCode.ALREADY_MEMBER: ErrorSeverity.LOW,
    ErrorCode.EXPIRED: ErrorSeverity.LOW,
    ErrorCode.INTERNAL_ERROR: ErrorSeverity.CRITICAL,
}


@dataclass
class ErrorConfig:
    """Configuration for API error handling."""

    include_request_id: bool = True
    log_all_errors: bool = True
    suppress_internal_details: bool = True
    custom_error_messages: Dict[str, str] = field(default_factory=dict)


DEFAULT_ERROR_CONFIG = ErrorConfig()
