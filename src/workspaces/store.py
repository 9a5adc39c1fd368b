"""Workspace persistence.

Creates, renames, deletes and lists workspace rows. Validation runs
before any storage access. Operates inside the caller's session; the
transaction boundary belongs to LifecycleCoordinator.
"""

import logging
from typing import Optional

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from src.api_errors.exceptions import CannotDeleteDefaultError, NotFoundError
from src.api_errors.validators import validate_identifier, validate_pagination, validate_workspace_name
from src.db.models import WorkspaceInvitationRecord, WorkspaceMemberRecord, WorkspaceRecord
from src.workspaces.config import DEFAULT_WORKSPACES_CONFIG, WorkspacesConfig
from src.workspaces.models import Workspace, WorkspacePage, utcnow

logger = logging.getLogger(__name__)


class WorkspaceStore:
    """Workspace rows and their default/non-default status."""

    def __init__(self, session: Session, config: Optional[WorkspacesConfig] = None):
        self._session = session
        self.config = config or DEFAULT_WORKSPACES_CONFIG

    def create(self, name: str, owner_id: str, is_default: bool = False) -> Workspace:
        """Insert a workspace row.

        Non-default workspaces must only be created after the caller has
        checked the workspaces feature flag; default workspaces bypass it.

        Raises:
            ValidationError: Empty or over-long name, missing owner.
        """
        name = validate_workspace_name(name, self.config.name_max_length)
        owner_id = validate_identifier(owner_id, "owner_id")

        record = WorkspaceRecord(name=name, owner_id=owner_id, is_default=bool(is_default))
        self._session.add(record)
        self._session.flush()

        logger.info(
            f"Workspace created: {record.name} (default={record.is_default})",
            extra={"workspace_id": record.id, "user_id": owner_id},
        )
        return Workspace.from_record(record)

    def get(self, workspace_id: str) -> Optional[Workspace]:
        """Get workspace by ID."""
        record = self._session.get(WorkspaceRecord, workspace_id)
        return Workspace.from_record(record) if record else None

    def require(self, workspace_id: str) -> Workspace:
        """Get workspace by ID or raise NotFoundError."""
        return Workspace.from_record(self._require_record(workspace_id))

    def find_default_for_owner(self, owner_id: str) -> Optional[Workspace]:
        """The owner's default (home) workspace, if one exists."""
        record = self._session.scalars(
            select(WorkspaceRecord)
            .where(WorkspaceRecord.owner_id == owner_id, WorkspaceRecord.is_default.is_(True))
            .order_by(WorkspaceRecord.created_at)
            .limit(1)
        ).first()
        return Workspace.from_record(record) if record else None

    def rename(self, workspace_id: str, name: str) -> Workspace:
        """Rename a workspace.

        Raises:
            ValidationError: Empty or over-long name.
            NotFoundError: Unknown workspace.
        """
        name = validate_workspace_name(name, self.config.name_max_length)
        record = self._require_record(workspace_id)

        record.name = name
        record.updated_at = utcnow()
        self._session.flush()
        return Workspace.from_record(record)

    def delete(self, workspace_id: str) -> None:
        """Delete a non-default workspace and everything that hangs off it.

        Invitations and memberships are removed explicitly in the same
        transaction before the workspace row.

        Raises:
            NotFoundError: Unknown workspace.
            CannotDeleteDefaultError: The workspace is a default workspace.
        """
        record = self._require_record(workspace_id)
        if record.is_default:
            raise CannotDeleteDefaultError()

        invitations = self._session.execute(
            delete(WorkspaceInvitationRecord).where(
                WorkspaceInvitationRecord.workspace_id == workspace_id
            )
        ).rowcount
        members = self._session.execute(
            delete(WorkspaceMemberRecord).where(WorkspaceMemberRecord.workspace_id == workspace_id)
        ).rowcount
        self._session.delete(record)
        self._session.flush()

        logger.info(
            f"Workspace deleted: {record.name} ({members} members, {invitations} invitations removed)",
            extra={"workspace_id": workspace_id},
        )

    def list_for_user(self, user_id: str, page: int = 1, page_size: Optional[int] = None) -> WorkspacePage:
        """Workspaces the user is a member of, oldest first.

        Raises:
            ValidationError: Missing user or bad pagination.
        """
        user_id = validate_identifier(user_id, "user_id")
        page, page_size = validate_pagination(
            page,
            page_size if page_size is not None else self.config.default_page_size,
            self.config.max_page_size,
        )

        membership = select(WorkspaceMemberRecord.workspace_id).where(
            WorkspaceMemberRecord.user_id == user_id
        )
        total = self._session.scalar(
            select(func.count()).select_from(WorkspaceRecord).where(WorkspaceRecord.id.in_(membership))
        ) or 0
        records = self._session.scalars(
            select(WorkspaceRecord)
            .where(WorkspaceRecord.id.in_(membership))
            .order_by(WorkspaceRecord.created_at, WorkspaceRecord.id)
            .offset((page - 1) * page_size)
            .limit(page_size)
        ).all()

        return WorkspacePage(
            items=[Workspace.from_record(r) for r in records],
            total=total,
            page=page,
            page_size=page_size,
        )

    def _require_record(self, workspace_id: str) -> WorkspaceRecord:
        record = self._session.get(WorkspaceRecord, workspace_id) if workspace_id else None
        if record is None:
            raise NotFoundError("Workspace not found", resource_type="workspace", resource_id=workspace_id)
        return record
