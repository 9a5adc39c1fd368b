"""API Request/Response Models.

Pydantic schemas for the workspace and invitation endpoints. Domain
validation (trimming, length limits, email format) happens in the
core; these schemas only describe shape.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field


# ─── Common ──────────────────────────────────────────────────────────────


class PaginatedResponse(BaseModel):
    """Offset-paginated response wrapper."""

    data: list[Any]
    total: int = 0
    page: int = 1
    page_size: int = 20
    has_more: bool = False


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str = "1.0.0"
    components: dict[str, str] = Field(default_factory=dict)


# ─── Workspaces ──────────────────────────────────────────────────────────


class WorkspaceCreateRequest(BaseModel):
    """Create a workspace; the owner defaults to the caller."""

    name: str
    owner_id: Optional[str] = None
    is_default: bool = False


class WorkspaceUpdateRequest(BaseModel):
    name: str


class MemberAddRequest(BaseModel):
    user_id: str


# ─── Invitations ─────────────────────────────────────────────────────────


class InvitationCreateRequest(BaseModel):
    email: str


class AcceptInvitationResponse(BaseModel):
    workspace_id: str


class SuccessResponse(BaseModel):
    success: bool = True
