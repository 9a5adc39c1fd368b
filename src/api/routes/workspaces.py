"""Workspace endpoints: workspaces, members and workspace-scoped invitations.

Create, list, rename and delete workspaces; list and remove members;
issue, list and cancel invitations. Domain errors raised by the
coordinator are converted to the JSON error envelope by the error
middleware.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from src.api.dependencies import get_actor, get_coordinator, require_admin
from src.api.models import (
    InvitationCreateRequest,
    MemberAddRequest,
    PaginatedResponse,
    SuccessResponse,
    WorkspaceCreateRequest,
    WorkspaceUpdateRequest,
)
from src.api_errors.exceptions import ForbiddenError
from src.workspaces.coordinator import LifecycleCoordinator
from src.workspaces.models import Actor

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/workspaces", tags=["Workspaces"])


# ── Workspaces ───────────────────────────────────────────────────────


@router.post("", status_code=201)
def create_workspace(
    body: WorkspaceCreateRequest,
    actor: Actor = Depends(get_actor),
    coordinator: LifecycleCoordinator = Depends(get_coordinator),
):
    """Create a workspace owned by the caller.

    Admins may name another owner and may create default workspaces;
    everyone else gets the default workspace provisioned at sign-up.
    """
    owner_id = body.owner_id or actor.id
    if owner_id != actor.id and not actor.is_admin:
        raise ForbiddenError("Only admins can create workspaces for other users")
    if body.is_default and not actor.is_admin:
        raise ForbiddenError("Only admins can create default workspaces")

    workspace = coordinator.create_workspace_with_owner(
        body.name, owner_id, is_default=body.is_default
    )
    return workspace.to_dict()


@router.get("", response_model=PaginatedResponse)
def list_workspaces(
    page: int = Query(default=1),
    page_size: Optional[int] = Query(default=None),
    user_id: Optional[str] = Query(default=None),
    actor: Actor = Depends(get_actor),
    coordinator: LifecycleCoordinator = Depends(get_coordinator),
):
    """Workspaces the caller belongs to, oldest first."""
    target = user_id or actor.id
    if target != actor.id and not actor.is_admin:
        raise ForbiddenError("Only admins can list another user's workspaces")

    result = coordinator.list_workspaces(target, page, page_size)
    return PaginatedResponse(
        data=[w.to_dict() for w in result.items],
        total=result.total,
        page=result.page,
        page_size=result.page_size,
        has_more=result.has_more,
    )


@router.get("/{workspace_id}")
def get_workspace(
    workspace_id: str,
    actor: Actor = Depends(get_actor),
    coordinator: LifecycleCoordinator = Depends(get_coordinator),
):
    """Workspace with its members and pending invitations."""
    return coordinator.get_workspace(workspace_id, actor).to_dict()


@router.patch("/{workspace_id}")
def rename_workspace(
    workspace_id: str,
    body: WorkspaceUpdateRequest,
    actor: Actor = Depends(get_actor),
    coordinator: LifecycleCoordinator = Depends(get_coordinator),
):
    return coordinator.rename_workspace(workspace_id, body.name, actor).to_dict()


@router.delete("/{workspace_id}", response_model=SuccessResponse)
def delete_workspace(
    workspace_id: str,
    actor: Actor = Depends(get_actor),
    coordinator: LifecycleCoordinator = Depends(get_coordinator),
):
    coordinator.delete_workspace(workspace_id, actor)
    return SuccessResponse()


# ── Members ──────────────────────────────────────────────────────────


@router.get("/{workspace_id}/members")
def list_members(
    workspace_id: str,
    actor: Actor = Depends(get_actor),
    coordinator: LifecycleCoordinator = Depends(get_coordinator),
):
    return [m.to_dict() for m in coordinator.list_members(workspace_id, actor)]


@router.post("/{workspace_id}/members", status_code=201)
def add_member(
    workspace_id: str,
    body: MemberAddRequest,
    actor: Actor = Depends(require_admin),
    coordinator: LifecycleCoordinator = Depends(get_coordinator),
):
    """Add a user directly, without an invitation. Admin only."""
    return coordinator.add_member(workspace_id, body.user_id).to_dict()


@router.delete("/{workspace_id}/members/{member_id}", response_model=SuccessResponse)
def remove_member(
    workspace_id: str,
    member_id: str,
    actor: Actor = Depends(get_actor),
    coordinator: LifecycleCoordinator = Depends(get_coordinator),
):
    """Remove a member. The owner may remove anyone; members may leave."""
    coordinator.remove_member(workspace_id, member_id, actor.id)
    return SuccessResponse()


# ── Invitations ──────────────────────────────────────────────────────


@router.post("/{workspace_id}/invitations", status_code=201)
def create_invitation(
    workspace_id: str,
    body: InvitationCreateRequest,
    actor: Actor = Depends(get_actor),
    coordinator: LifecycleCoordinator = Depends(get_coordinator),
):
    """Invite an email address, or refresh its existing invitation.

    The response carries the token so the inviter can share the link
    directly.
    """
    return coordinator.invite(workspace_id, body.email, actor).to_dict()


@router.get("/{workspace_id}/invitations")
def list_invitations(
    workspace_id: str,
    actor: Actor = Depends(get_actor),
    coordinator: LifecycleCoordinator = Depends(get_coordinator),
):
    return [
        i.to_dict(include_token=False)
        for i in coordinator.list_invitations(workspace_id, actor)
    ]


@router.delete("/{workspace_id}/invitations/{invitation_id}", response_model=SuccessResponse)
def cancel_invitation(
    workspace_id: str,
    invitation_id: str,
    actor: Actor = Depends(get_actor),
    coordinator: LifecycleCoordinator = Depends(get_coordinator),
):
    coordinator.cancel_invitation(workspace_id, invitation_id, actor)
    return SuccessResponse()
