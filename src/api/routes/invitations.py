"""Invitation endpoints for the invitee: resolve, accept and list.

Resolve a token for the accept page (public), accept it as the caller,
and list the caller's pending invitations.
"""

import logging

from fastapi import APIRouter, Depends

from src.api.dependencies import get_actor, get_coordinator
from src.api.models import AcceptInvitationResponse
from src.workspaces.coordinator import LifecycleCoordinator
from src.workspaces.models import Actor

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/invitations", tags=["Invitations"])


@router.get("")
def list_my_invitations(
    actor: Actor = Depends(get_actor),
    coordinator: LifecycleCoordinator = Depends(get_coordinator),
):
    """Pending, unexpired invitations addressed to the caller's email."""
    return [
        resolved.to_dict()
        for resolved in coordinator.list_invitations_for_actor(actor)
    ]


@router.get("/{token}")
def resolve_invitation(
    token: str,
    coordinator: LifecycleCoordinator = Depends(get_coordinator),
):
    """Invitation details with workspace and inviter names. No auth required."""
    return coordinator.resolve_invitation(token).to_dict()


@router.post("/{token}/accept", response_model=AcceptInvitationResponse)
def accept_invitation(
    token: str,
    actor: Actor = Depends(get_actor),
    coordinator: LifecycleCoordinator = Depends(get_coordinator),
):
    membership = coordinator.accept_invitation(token, actor.id)
    return AcceptInvitationResponse(workspace_id=membership.workspace_id)
