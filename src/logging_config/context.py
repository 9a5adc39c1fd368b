"""Request-scoped log context.

A single context variable carries the fields every log line of a
request should have: the request ID, the calling user and whatever
workspace or invitation the request is about.
"""

import uuid
from contextvars import ContextVar, Token
from types import MappingProxyType
from typing import Any, Mapping, Optional

_EMPTY: Mapping[str, Any] = MappingProxyType({})

_log_context: ContextVar[Mapping[str, Any]] = ContextVar("workroom_log_context", default=_EMPTY)


def generate_request_id() -> str:
    return str(uuid.uuid4())


def get_context_dict() -> dict[str, Any]:
    """Bound fields with empty values dropped."""
    return {k: v for k, v in _log_context.get().items() if v not in (None, "")}


def get_request_id() -> str:
    return _log_context.get().get("request_id", "")


def get_actor_id() -> str:
    return _log_context.get().get("actor_id", "")


class RequestContext:
    """Binds a request ID and actor to every log record inside the block.

    Contexts nest; leaving one restores the outer fields.

    Example:
        with RequestContext(request_id="abc-123", actor_id="u1", workspace_id="ws-9"):
            logger.info("Member added")
    """

    def __init__(self, request_id: Optional[str] = None, actor_id: str = "", **fields: Any):
        self.request_id = request_id or generate_request_id()
        self.actor_id = actor_id
        self.fields = fields
        self._token: Optional[Token] = None

    def __enter__(self) -> "RequestContext":
        values = {"request_id": self.request_id, "actor_id": self.actor_id, **self.fields}
        self._token = _log_context.set(MappingProxyType(values))
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        _log_context.reset(self._token)
        self._token = None
