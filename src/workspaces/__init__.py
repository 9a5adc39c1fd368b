"""Workspace Membership & Invitation Lifecycle.

Groups users into workspaces, grants membership, invites people by
email and admits them through time-boxed tokens.

Example:
    from src.workspaces import LifecycleCoordinator, SettingsTableFlags

    coordinator = LifecycleCoordinator(session_factory, SettingsTableFlags(session_factory))
    workspace = coordinator.create_workspace_with_owner("Research", owner_id=user.id)
    invitation = coordinator.invite(workspace.id, "ana@example.com", Actor(id=user.id))
    membership = coordinator.accept_invitation(invitation.token, other_user.id)
"""

from src.workspaces.collaborators import (
    FeatureFlagSource,
    SettingsTableFlags,
    SqlUserDirectory,
    UserDirectory,
)
from src.workspaces.config import (
    DEFAULT_WORKSPACES_CONFIG,
    INVITATION_TTL,
    InvitationStatus,
    WorkspacesConfig,
)
from src.workspaces.coordinator import LifecycleCoordinator
from src.workspaces.guard import AccessGuard
from src.workspaces.invitations import InvitationLedger, generate_token, is_expired
from src.workspaces.mailer import (
    InvitationMailer,
    LoggingInvitationMailer,
    SmtpInvitationMailer,
    build_mailer,
)
from src.workspaces.memberships import MembershipRegistry
from src.workspaces.models import (
    Actor,
    Invitation,
    InviterSummary,
    Membership,
    ResolvedInvitation,
    UserProfile,
    Workspace,
    WorkspaceDetail,
    WorkspacePage,
    WorkspaceSummary,
)
from src.workspaces.store import WorkspaceStore

__all__ = [
    # Config
    "DEFAULT_WORKSPACES_CONFIG",
    "INVITATION_TTL",
    "InvitationStatus",
    "WorkspacesConfig",
    # Models
    "Actor",
    "Invitation",
    "InviterSummary",
    "Membership",
    "ResolvedInvitation",
    "UserProfile",
    "Workspace",
    "WorkspaceDetail",
    "WorkspacePage",
    "WorkspaceSummary",
    # Components
    "AccessGuard",
    "InvitationLedger",
    "LifecycleCoordinator",
    "MembershipRegistry",
    "WorkspaceStore",
    "generate_token",
    "is_expired",
    # Collaborators
    "FeatureFlagSource",
    "InvitationMailer",
    "LoggingInvitationMailer",
    "SettingsTableFlags",
    "SmtpInvitationMailer",
    "SqlUserDirectory",
    "UserDirectory",
    "build_mailer",
]
