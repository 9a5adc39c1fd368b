"""Workspace lifecycle coordinator.

Owns the transaction boundary. Every public operation opens exactly one
session and one transaction; composite mutations (workspace + owner
membership, invitation acceptance + membership) commit or roll back as
a unit. Storage failures surface as InternalError with a generic
message and are logged with their traceback.
"""

import logging
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime
from typing import Callable, Iterator, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from src.api_errors.exceptions import (
    ForbiddenError,
    InternalError,
    ValidationError,
    WorkroomError,
    WorkspacesDisabledError,
)
from src.api_errors.validators import validate_email, validate_identifier, validate_workspace_name
from src.logging_config.performance import log_performance
from src.workspaces.collaborators import FeatureFlagSource, SqlUserDirectory, UserDirectory
from src.workspaces.config import DEFAULT_WORKSPACES_CONFIG, WorkspacesConfig
from src.workspaces.guard import AccessGuard
from src.workspaces.invitations import InvitationLedger
from src.workspaces.mailer import InvitationMailer, LoggingInvitationMailer
from src.workspaces.memberships import MembershipRegistry
from src.workspaces.models import (
    Actor,
    Invitation,
    Membership,
    ResolvedInvitation,
    Workspace,
    WorkspaceDetail,
    WorkspacePage,
    utcnow,
)
from src.workspaces.store import WorkspaceStore

logger = logging.getLogger(__name__)


class _UnitOfWork:
    """Components bound to one session."""

    def __init__(self, session: Session, coordinator: "LifecycleCoordinator"):
        self.session = session
        self.directory = coordinator.directory
        if isinstance(self.directory, SqlUserDirectory):
            self.directory = self.directory.bind(session)
        self.workspaces = WorkspaceStore(session, coordinator.config)
        self.members = MembershipRegistry(session, coordinator.guard, self.directory)
        self.invitations = InvitationLedger(
            session, coordinator.config, coordinator.clock, self.directory
        )

    def with_owners(self, workspaces: list[Workspace]) -> list[Workspace]:
        """Attach the owner projection to each workspace."""
        if self.directory is None:
            return workspaces
        owners = self.directory.get_profiles(w.owner_id for w in workspaces)
        return [replace(w, owner=owners.get(w.owner_id)) for w in workspaces]


class LifecycleCoordinator:
    """Entry point for every workspace, membership and invitation operation."""

    def __init__(
        self,
        session_factory: sessionmaker,
        flags: FeatureFlagSource,
        directory: Optional[UserDirectory] = None,
        mailer: Optional[InvitationMailer] = None,
        config: Optional[WorkspacesConfig] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._session_factory = session_factory
        self.guard = AccessGuard(flags)
        self.directory = directory
        self.mailer = mailer or LoggingInvitationMailer()
        self.config = config or DEFAULT_WORKSPACES_CONFIG
        self.clock = clock

    @contextmanager
    def _transaction(self) -> Iterator[_UnitOfWork]:
        session = self._session_factory()
        try:
            with session.begin():
                yield _UnitOfWork(session, self)
        except WorkroomError:
            raise
        except SQLAlchemyError:
            logger.exception("Storage failure, transaction rolled back")
            raise InternalError() from None
        finally:
            session.close()

    # =========================================================================
    # Workspaces
    # =========================================================================

    @log_performance(expected=(WorkroomError,))
    def create_workspace_with_owner(
        self, name: str, owner_id: str, is_default: bool = False
    ) -> Workspace:
        """Create a workspace and its owner's membership atomically.

        A user has at most one default workspace: asking for another
        returns the existing one unchanged.

        Raises:
            ValidationError: Bad name or missing owner.
            WorkspacesDisabledError: Non-default creation while the flag is off.
        """
        name = validate_workspace_name(name, self.config.name_max_length)
        owner_id = validate_identifier(owner_id, "owner_id")
        if not is_default and not self.guard.can_create_non_default_workspace():
            raise WorkspacesDisabledError()

        with self._transaction() as uow:
            if is_default:
                existing = uow.workspaces.find_default_for_owner(owner_id)
                if existing is not None:
                    logger.info(
                        "Default workspace already exists",
                        extra={"workspace_id": existing.id, "user_id": owner_id},
                    )
                    return existing
            workspace = uow.workspaces.create(name, owner_id, is_default=is_default)
            uow.members.add(workspace.id, owner_id)
        return workspace

    @log_performance(expected=(WorkroomError,))
    def provision_default_workspace(self, user_id: str, user_name: Optional[str] = None) -> Workspace:
        """Give a newly registered user their default workspace.

        Idempotent: an existing default workspace is returned as-is.
        """
        user_id = validate_identifier(user_id, "user_id")
        with self._transaction() as uow:
            existing = uow.workspaces.find_default_for_owner(user_id)
            if existing is not None:
                return existing
            workspace = uow.workspaces.create(
                self.config.default_workspace_name(user_name), user_id, is_default=True
            )
            uow.members.add(workspace.id, user_id)
        return workspace

    def get_workspace(self, workspace_id: str, actor: Actor) -> WorkspaceDetail:
        """Workspace with members and pending invitations.

        Raises:
            NotFoundError: Unknown workspace.
            ForbiddenError: Actor is neither a member nor an admin.
        """
        with self._transaction() as uow:
            workspace = uow.workspaces.require(workspace_id)
            is_member = uow.members.is_member(workspace.id, actor.id)
            if not self.guard.can_view_workspace(workspace, actor, is_member):
                raise ForbiddenError("Not a member of this workspace")
            return WorkspaceDetail(
                workspace=uow.with_owners([workspace])[0],
                members=uow.members.list_for_workspace(workspace.id),
                invitations=uow.invitations.list_pending(workspace.id),
            )

    def list_workspaces(
        self, user_id: str, page: int = 1, page_size: Optional[int] = None
    ) -> WorkspacePage:
        """The user's workspaces, oldest first, each with its owner projection."""
        with self._transaction() as uow:
            result = uow.workspaces.list_for_user(user_id, page, page_size)
            return replace(result, items=uow.with_owners(result.items))

    @log_performance(expected=(WorkroomError,))
    def rename_workspace(self, workspace_id: str, name: str, actor: Actor) -> Workspace:
        name = validate_workspace_name(name, self.config.name_max_length)
        with self._transaction() as uow:
            workspace = uow.workspaces.require(workspace_id)
            if not self.guard.can_manage_workspace(workspace, actor):
                raise ForbiddenError("Only the owner or an admin can rename this workspace")
            return uow.workspaces.rename(workspace_id, name)

    @log_performance(expected=(WorkroomError,))
    def delete_workspace(self, workspace_id: str, actor: Actor) -> None:
        """Delete a non-default workspace with its memberships and invitations.

        A default workspace is refused for every actor, admins included.

        Raises:
            NotFoundError
            CannotDeleteDefaultError
            ForbiddenError
        """
        with self._transaction() as uow:
            workspace = uow.workspaces.require(workspace_id)
            if not workspace.is_default and not self.guard.can_manage_workspace(workspace, actor):
                raise ForbiddenError("Only the owner or an admin can delete this workspace")
            uow.workspaces.delete(workspace_id)

    # =========================================================================
    # Members
    # =========================================================================

    def list_members(self, workspace_id: str, actor: Actor) -> list[Membership]:
        with self._transaction() as uow:
            workspace = uow.workspaces.require(workspace_id)
            is_member = uow.members.is_member(workspace.id, actor.id)
            if not self.guard.can_view_workspace(workspace, actor, is_member):
                raise ForbiddenError("Not a member of this workspace")
            return uow.members.list_for_workspace(workspace.id)

    @log_performance(expected=(WorkroomError,))
    def add_member(self, workspace_id: str, user_id: str) -> Membership:
        with self._transaction() as uow:
            return uow.members.add(workspace_id, user_id)

    @log_performance(expected=(WorkroomError,))
    def remove_member(self, workspace_id: str, member_id: str, actor_id: str) -> None:
        with self._transaction() as uow:
            uow.members.remove(workspace_id, member_id, actor_id)

    # =========================================================================
    # Invitations
    # =========================================================================

    @log_performance(expected=(WorkroomError,))
    def invite(self, workspace_id: str, email: str, actor: Actor) -> Invitation:
        """Issue or refresh an invitation, then email it.

        The invitation is committed before the mailer runs; a delivery
        failure is logged and the invitation stands.

        Raises:
            ValidationError: Malformed email.
            NotFoundError: Unknown workspace.
            ForbiddenError: Actor may not invite to this workspace.
        """
        email = validate_email(email)
        with self._transaction() as uow:
            workspace = uow.workspaces.require(workspace_id)
            is_member = uow.members.is_member(workspace.id, actor.id)
            if not self.guard.can_invite(workspace, actor, is_member):
                raise ForbiddenError("Only workspace members can invite")
            invitation = uow.invitations.upsert(workspace.id, email, actor.id)

        self._send_invitation_email(invitation, workspace)
        return invitation

    def list_invitations(self, workspace_id: str, actor: Actor) -> list[Invitation]:
        with self._transaction() as uow:
            workspace = uow.workspaces.require(workspace_id)
            is_member = uow.members.is_member(workspace.id, actor.id)
            if not self.guard.can_invite(workspace, actor, is_member):
                raise ForbiddenError("Not a member of this workspace")
            return uow.invitations.list_pending(workspace.id)

    @log_performance(expected=(WorkroomError,))
    def cancel_invitation(self, workspace_id: str, invitation_id: str, actor: Actor) -> None:
        with self._transaction() as uow:
            workspace = uow.workspaces.require(workspace_id)
            is_member = uow.members.is_member(workspace.id, actor.id)
            if not self.guard.can_invite(workspace, actor, is_member):
                raise ForbiddenError("Not authorized to cancel invitations")
            uow.invitations.cancel(workspace.id, invitation_id)

    def resolve_invitation(self, token: str) -> ResolvedInvitation:
        with self._transaction() as uow:
            return uow.invitations.resolve_by_token(token)

    def list_invitations_for_email(self, email: str) -> list[ResolvedInvitation]:
        with self._transaction() as uow:
            return uow.invitations.list_pending_for_email(email)

    def list_invitations_for_actor(self, actor: Actor) -> list[ResolvedInvitation]:
        """The caller's invitation inbox, keyed by their email address."""
        email = actor.email
        if not email and self.directory is not None:
            profile = self.directory.get_profile(actor.id)
            email = profile.email if profile else None
        if not email:
            raise ValidationError("Caller email address is unknown", field="email")
        return self.list_invitations_for_email(email)

    @log_performance(expected=(WorkroomError,))
    def accept_invitation(self, token: str, user_id: str) -> Membership:
        """Consume an invitation and create the membership atomically.

        Validity is checked inside the transaction. If the user already
        belongs to the workspace, nothing is written and the invitation
        stays PENDING.

        Raises:
            InvitationExpiredError: Unknown, consumed or expired token.
            AlreadyMemberError: The user already holds the membership.
        """
        user_id = validate_identifier(user_id, "user_id")
        with self._transaction() as uow:
            invitation = uow.invitations.require_acceptable(token)
            membership = uow.members.add(invitation.workspace_id, user_id)
            uow.invitations.mark_accepted(invitation)

        logger.info(
            "Invitation accepted",
            extra={
                "workspace_id": invitation.workspace_id,
                "invitation_id": invitation.id,
                "user_id": user_id,
            },
        )
        return membership

    def _send_invitation_email(self, invitation: Invitation, workspace: Workspace) -> None:
        try:
            inviter = self.directory.get_profile(invitation.invited_by_id) if self.directory else None
            self.mailer.send_invitation(
                to=invitation.email,
                inviter_name=inviter.name if inviter else "",
                workspace_name=workspace.name,
                accept_url=self.config.accept_url(invitation.token),
                expires_at=invitation.expires_at,
            )
        except Exception:
            logger.warning(
                f"Invitation email to {invitation.email} could not be sent",
                exc_info=True,
                extra={"workspace_id": workspace.id, "invitation_id": invitation.id},
            )
