"""Request tracing middleware.

Every HTTP request runs inside a RequestContext keyed by its
``X-Request-ID`` (propagated from the client or freshly generated) and
the caller's ``X-User-Id``. The ID is echoed on the response and one
summary line is logged when the response has been sent.
"""

import logging
import time
from typing import Optional

from src.logging_config.config import DEFAULT_LOGGING_CONFIG, LoggingConfig
from src.logging_config.context import RequestContext

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
ACTOR_ID_HEADER = "X-User-Id"


def scope_header(scope: dict, name: str) -> Optional[str]:
    """First value of header ``name`` in an ASGI scope, or None."""
    wanted = name.lower().encode("latin-1")
    for key, value in scope.get("headers", []):
        if key.lower() == wanted:
            return value.decode("latin-1").strip() or None
    return None


class RequestTracingMiddleware:
    """Pure ASGI middleware; add with ``app.add_middleware(RequestTracingMiddleware)``."""

    def __init__(self, app, config: Optional[LoggingConfig] = None):
        self.app = app
        self.config = config or DEFAULT_LOGGING_CONFIG

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        context = RequestContext(
            request_id=scope_header(scope, REQUEST_ID_HEADER),
            actor_id=scope_header(scope, ACTOR_ID_HEADER) or "",
        )
        echo = (REQUEST_ID_HEADER.lower().encode("latin-1"), context.request_id.encode("latin-1"))
        status = {"code": 500}

        async def send_with_request_id(message):
            if message["type"] == "http.response.start":
                status["code"] = message["status"]
                message = {**message, "headers": [*message.get("headers", []), echo]}
            await send(message)

        started = time.perf_counter()
        with context:
            try:
                await self.app(scope, receive, send_with_request_id)
            finally:
                self._log_request(scope, status["code"], (time.perf_counter() - started) * 1000)

    def _log_request(self, scope: dict, status_code: int, duration_ms: float) -> None:
        path = scope.get("path", "")
        if path in self.config.exclude_paths:
            return
        method = scope.get("method", "")
        logger.log(
            logging.WARNING if status_code >= 400 else logging.INFO,
            f"{method} {path} -> {status_code}",
            extra={
                "method": method,
                "path": path,
                "status_code": status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )
