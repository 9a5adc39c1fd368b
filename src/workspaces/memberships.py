"""Workspace membership registry.

The join model between users and workspaces. The storage-level unique
constraint on (workspace_id, user_id) is the only guard against
duplicates; a violation surfaces as AlreadyMemberError.
"""

import logging
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from src.api_errors.exceptions import AlreadyMemberError, ForbiddenError, NotFoundError
from src.api_errors.validators import validate_identifier
from src.db.models import WorkspaceMemberRecord, WorkspaceRecord
from src.workspaces.collaborators import UserDirectory
from src.workspaces.guard import AccessGuard
from src.workspaces.models import Actor, Membership, Workspace

logger = logging.getLogger(__name__)


class MembershipRegistry:
    """Adds, removes and lists workspace members."""

    def __init__(
        self,
        session: Session,
        guard: AccessGuard,
        directory: Optional[UserDirectory] = None,
    ):
        self._session = session
        self._guard = guard
        self._directory = directory

    def add(self, workspace_id: str, user_id: str) -> Membership:
        """Insert a membership row.

        On a uniqueness conflict the session is left in a failed state;
        the enclosing transaction must be rolled back.

        Raises:
            ValidationError: Missing ids.
            NotFoundError: Unknown workspace.
            AlreadyMemberError: The pair already exists.
        """
        workspace_id = validate_identifier(workspace_id, "workspace_id")
        user_id = validate_identifier(user_id, "user_id")
        self._require_workspace(workspace_id)

        record = WorkspaceMemberRecord(workspace_id=workspace_id, user_id=user_id)
        self._session.add(record)
        try:
            self._session.flush()
        except IntegrityError:
            logger.info(
                "Membership conflict",
                extra={"workspace_id": workspace_id, "user_id": user_id},
            )
            raise AlreadyMemberError() from None

        logger.info("Member added", extra={"workspace_id": workspace_id, "user_id": user_id})
        return Membership.from_record(record)

    def remove(self, workspace_id: str, member_id: str, actor_id: str) -> None:
        """Delete a membership on behalf of ``actor_id``.

        The workspace owner may remove anyone; any member may remove
        themselves.

        Raises:
            NotFoundError: Unknown workspace, or no such member in it.
            ForbiddenError: Actor is neither the owner nor the member.
        """
        actor_id = validate_identifier(actor_id, "actor_id")
        workspace = self._require_workspace(workspace_id)

        record = self._session.get(WorkspaceMemberRecord, member_id) if member_id else None
        if record is None or record.workspace_id != workspace.id:
            raise NotFoundError("Member not found", resource_type="member", resource_id=member_id)

        member = Membership.from_record(record)
        if not self._guard.can_remove_member(workspace, member, Actor(id=actor_id)):
            raise ForbiddenError("Not authorized to remove this member")

        self._session.delete(record)
        self._session.flush()
        logger.info(
            f"Member removed by {'self' if actor_id == member.user_id else 'owner'}",
            extra={"workspace_id": workspace.id, "user_id": member.user_id},
        )

    def list_for_workspace(self, workspace_id: str) -> list[Membership]:
        """Members of a workspace with their user projections, oldest first.

        Raises:
            NotFoundError: Unknown workspace.
        """
        self._require_workspace(workspace_id)
        records = self._session.scalars(
            select(WorkspaceMemberRecord)
            .where(WorkspaceMemberRecord.workspace_id == workspace_id)
            .order_by(WorkspaceMemberRecord.created_at, WorkspaceMemberRecord.id)
        ).all()

        profiles = {}
        if self._directory is not None:
            profiles = self._directory.get_profiles(r.user_id for r in records)

        return [Membership.from_record(r, user=profiles.get(r.user_id)) for r in records]

    def get_membership(self, workspace_id: str, user_id: str) -> Optional[Membership]:
        record = self._session.scalars(
            select(WorkspaceMemberRecord).where(
                WorkspaceMemberRecord.workspace_id == workspace_id,
                WorkspaceMemberRecord.user_id == user_id,
            )
        ).first()
        return Membership.from_record(record) if record else None

    def is_member(self, workspace_id: str, user_id: str) -> bool:
        return self.get_membership(workspace_id, user_id) is not None

    def count(self, workspace_id: str) -> int:
        return self._session.scalar(
            select(func.count())
            .select_from(WorkspaceMemberRecord)
            .where(WorkspaceMemberRecord.workspace_id == workspace_id)
        ) or 0

    def _require_workspace(self, workspace_id: str) -> Workspace:
        record = self._session.get(WorkspaceRecord, workspace_id) if workspace_id else None
        if record is None:
            raise NotFoundError("Workspace not found", resource_type="workspace", resource_id=workspace_id)
        return Workspace.from_record(record)
