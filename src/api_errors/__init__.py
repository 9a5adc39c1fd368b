"""API Error Handling & Validation.

Provides the error taxonomy, structured error responses, the ASGI
error-handling middleware, and input validation utilities shared by
the workspace core and the FastAPI layer.
"""

from src.api_errors.config import (
    ErrorCode,
    ErrorConfig,
    ErrorSeverity,
)
from src.api_errors.exceptions import (
    AlreadyMemberError,
    AuthenticationError,
    CannotDeleteDefaultError,
    ForbiddenError,
    InternalError,
    InvitationExpiredError,
    NotFoundError,
    ValidationError,
    WorkroomError,
    WorkspacesDisabledError,
)
from src.api_errors.handlers import (
    ErrorResponse,
    create_error_response,
    register_exception_handlers,
)
from src.api_errors.middleware import ErrorHandlingMiddleware
from src.api_errors.validators import (
    validate_email,
    validate_identifier,
    validate_pagination,
    validate_workspace_name,
)

__all__ = [
    # Config
    "ErrorCode",
    "ErrorConfig",
    "ErrorSeverity",
    # Exceptions
    "AlreadyMemberError",
    "AuthenticationError",
    "CannotDeleteDefaultError",
    "ForbiddenError",
    "InternalError",
    "InvitationExpiredError",
    "NotFoundError",
    "ValidationError",
    "WorkroomError",
    "WorkspacesDisabledError",
    # Handlers
    "ErrorResponse",
    "create_error_response",
    "register_exception_handlers",
    # Middleware
    "ErrorHandlingMiddleware",
    # Validators
    "validate_email",
    "validate_identifier",
    "validate_pagination",
    "validate_workspace_name",
]
