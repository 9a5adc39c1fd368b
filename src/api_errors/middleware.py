"""Error handling middleware.

Pure ASGI middleware that turns exceptions escaping the application
into the JSON error envelope. WorkroomError keeps its code and status;
anything else becomes a generic 500.
"""

from typing import Any, Dict, Optional

from src.api_errors.config import DEFAULT_ERROR_CONFIG, ErrorConfig
from src.api_errors.exceptions import WorkroomError
from src.api_errors.handlers import ErrorResponse, handle_unhandled_error, handle_workroom_error


class ErrorHandlingMiddleware:
    """Converts exceptions from the wrapped app into error responses.

    If the app had already started its response the exception is
    re-raised, since a second ``http.response.start`` is not allowed.
    """

    def __init__(self, app: Any, config: Optional[ErrorConfig] = None):
        self.app = app
        self.config = config or DEFAULT_ERROR_CONFIG

    async def __call__(self, scope: Dict[str, Any], receive: Any, send: Any) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        started = False

        async def tracking_send(message: Dict[str, Any]) -> None:
            nonlocal started
            if message["type"] == "http.response.start":
                started = True
            await send(message)

        try:
            await self.app(scope, receive, tracking_send)
        except WorkroomError as exc:
            if started:
                raise
            await self._respond(send, handle_workroom_error(exc, self.config), exc.headers)
        except Exception as exc:
            if started:
                raise
            await self._respond(send, handle_unhandled_error(exc, self.config))

    @staticmethod
    async def _respond(
        send: Any,
        error: ErrorResponse,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        body = error.body()
        raw_headers = [
            (b"content-type", b"application/json"),
            (b"content-length", str(len(body)).encode("latin-1")),
        ]
        raw_headers.extend((k.lower().encode("latin-1"), v.encode("latin-1")) for k, v in (headers or {}).items())

        await send({"type": "http.response.start", "status": error.status_code, "headers": raw_headers})
        await send({"type": "http.response.body", "body": body})
