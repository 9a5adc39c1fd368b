"""Error envelope and exception handlers.

Every failed request answers with

    {"error": {"code", "message", "timestamp", "details"?, "request_id"?}}

whether it failed in the workspace core (a WorkroomError), in FastAPI's
request parsing, or somewhere unexpected.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from src.api_errors.config import (
    DEFAULT_ERROR_CONFIG,
    ERROR_SEVERITY_MAP,
    ERROR_STATUS_MAP,
    ErrorCode,
    ErrorConfig,
    ErrorSeverity,
)
from src.api_errors.exceptions import WorkroomError
from src.logging_config.context import get_request_id

logger = logging.getLogger(__name__)

GENERIC_INTERNAL_MESSAGE = "An internal error occurred"

_SEVERITY_LOG_LEVELS = {
    ErrorSeverity.LOW: logging.INFO,
    ErrorSeverity.MEDIUM: logging.WARNING,
    ErrorSeverity.HIGH: logging.ERROR,
    ErrorSeverity.CRITICAL: logging.CRITICAL,
}


@dataclass
class ErrorResponse:
    """One error envelope, ready to serialize."""

    code: str
    message: str
    status_code: int = 500
    details: List[Dict[str, Any]] = field(default_factory=list)
    request_id: Optional[str] = None
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> Dict[str, Any]:
        error: Dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "timestamp": self.timestamp,
        }
        if self.details:
            error["details"] = self.details
        if self.request_id:
            error["request_id"] = self.request_id
        return {"error": error}

    def body(self) -> bytes:
        return json.dumps(self.to_dict()).encode("utf-8")


def create_error_response(
    error_code: ErrorCode,
    message: str,
    details: Optional[List[Dict[str, Any]]] = None,
    request_id: Optional[str] = None,
    status_code: Optional[int] = None,
) -> ErrorResponse:
    return ErrorResponse(
        code=error_code.value,
        message=message,
        status_code=status_code or ERROR_STATUS_MAP.get(error_code, 500),
        details=details or [],
        request_id=request_id,
    )


def _request_id(config: ErrorConfig) -> Optional[str]:
    return (get_request_id() or None) if config.include_request_id else None


def _log_error(error_code: ErrorCode, message: str, status_code: int, config: ErrorConfig) -> None:
    if not config.log_all_errors:
        return
    severity = ERROR_SEVERITY_MAP.get(error_code, ErrorSeverity.MEDIUM)
    logger.log(
        _SEVERITY_LOG_LEVELS[severity],
        f"{error_code.value} ({status_code}): {message}",
        extra={"status_code": status_code},
    )


def handle_workroom_error(exc: WorkroomError, config: Optional[ErrorConfig] = None) -> ErrorResponse:
    """Envelope for a domain error; the message is safe to show the caller."""
    config = config or DEFAULT_ERROR_CONFIG
    _log_error(exc.error_code, exc.message, exc.status_code, config)
    return create_error_response(
        error_code=exc.error_code,
        message=config.custom_error_messages.get(exc.error_code.value, exc.message),
        details=exc.details,
        request_id=_request_id(config),
        status_code=exc.status_code,
    )


def handle_unhandled_error(exc: Exception, config: Optional[ErrorConfig] = None) -> ErrorResponse:
    """Generic 500 envelope; the traceback goes to the log only."""
    config = config or DEFAULT_ERROR_CONFIG
    logger.exception(f"Unhandled {type(exc).__name__} while serving request")

    message = GENERIC_INTERNAL_MESSAGE
    if not config.suppress_internal_details:
        message = f"{type(exc).__name__}: {exc}"
    return create_error_response(ErrorCode.INTERNAL_ERROR, message, request_id=_request_id(config))


def register_exception_handlers(app: Any, config: Optional[ErrorConfig] = None) -> None:
    """Route FastAPI request-validation failures into the error envelope.

    Domain errors never reach FastAPI's handlers; ErrorHandlingMiddleware
    converts them on the way out.
    """
    from fastapi.exceptions import RequestValidationError
    from fastapi.responses import JSONResponse

    config = config or DEFAULT_ERROR_CONFIG
    app.state.error_config = config

    async def request_validation_failed(request: Any, exc: RequestValidationError) -> JSONResponse:
        details = [
            {
                "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
                "issue": err.get("msg", ""),
            }
            for err in exc.errors()
        ]
        response = create_error_response(
            ErrorCode.VALIDATION_ERROR,
            "Invalid request",
            details=details,
            request_id=_request_id(config),
        )
        _log_error(ErrorCode.VALIDATION_ERROR, response.message, response.status_code, config)
        return JSONResponse(status_code=response.status_code, content=response.to_dict())

    app.add_exception_handler(RequestValidationError, request_validation_failed)
