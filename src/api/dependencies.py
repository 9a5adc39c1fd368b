"""FastAPI Dependencies for caller identity and services.

The caller is identified by headers set by the authentication layer.
When ``require_auth_headers`` is off (local development) a missing
``X-User-Id`` falls back to a dev admin actor.
"""

import logging
from typing import Optional

from fastapi import Depends, Header, Request

from src.api.config import USER_ADMIN_HEADER, USER_EMAIL_HEADER, USER_ID_HEADER
from src.api_errors.exceptions import AuthenticationError, ForbiddenError
from src.workspaces.coordinator import LifecycleCoordinator
from src.workspaces.models import Actor

logger = logging.getLogger(__name__)

_TRUE_VALUES = ("true", "1", "yes")

_DEV_ACTOR = Actor(id="dev", is_admin=True, email="dev@workroom.local")


def get_coordinator(request: Request) -> LifecycleCoordinator:
    """The coordinator created by the app factory."""
    return request.app.state.coordinator


def get_actor(
    request: Request,
    x_user_id: Optional[str] = Header(default=None, alias=USER_ID_HEADER),
    x_user_admin: Optional[str] = Header(default=None, alias=USER_ADMIN_HEADER),
    x_user_email: Optional[str] = Header(default=None, alias=USER_EMAIL_HEADER),
) -> Actor:
    """Require a caller identity on protected endpoints.

    Usage::

        @router.patch("/workspaces/{workspace_id}")
        def rename(workspace_id: str, actor: Actor = Depends(get_actor)):
            ...
    """
    if not x_user_id or not x_user_id.strip():
        if not request.app.state.settings.require_auth_headers:
            return _DEV_ACTOR
        raise AuthenticationError("Missing X-User-Id header")

    return Actor(
        id=x_user_id.strip(),
        is_admin=(x_user_admin or "").strip().lower() in _TRUE_VALUES,
        email=x_user_email.strip() if x_user_email and x_user_email.strip() else None,
    )


def require_admin(actor: Actor = Depends(get_actor)) -> Actor:
    if not actor.is_admin:
        raise ForbiddenError("Admin access required")
    return actor
