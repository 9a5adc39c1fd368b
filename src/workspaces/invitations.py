"""Workspace invitation ledger.

At most one invitation row exists per (workspace, email). Re-inviting
rewrites that row in place with a fresh token and expiry. Expiry is
lazy: a row is expired when ``is_expired`` says so at read time, and
nothing ever sweeps the table.
"""

import logging
import secrets
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Optional

from sqlalchemy import select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from src.api_errors.exceptions import InvitationExpiredError, NotFoundError
from src.api_errors.validators import validate_email, validate_identifier
from src.db.models import WorkspaceInvitationRecord, WorkspaceRecord
from src.workspaces.collaborators import UserDirectory
from src.workspaces.config import DEFAULT_WORKSPACES_CONFIG, InvitationStatus, WorkspacesConfig
from src.workspaces.models import (
    Invitation,
    InviterSummary,
    ResolvedInvitation,
    WorkspaceSummary,
    generate_uuid,
    utcnow,
)

logger = logging.getLogger(__name__)

# Dialects with a native INSERT ... ON CONFLICT DO UPDATE.
_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}

TOKEN_BYTES = 32


def generate_token() -> str:
    """Opaque, URL-safe invitation token."""
    return secrets.token_urlsafe(TOKEN_BYTES)


def is_expired(invitation: Any, now: datetime) -> bool:
    """True when the invitation can no longer be accepted.

    Works on domain objects and ORM records alike.
    """
    return invitation.status != InvitationStatus.PENDING or now > invitation.expires_at


class InvitationLedger:
    """Issues, resolves, cancels and consumes invitations."""

    def __init__(
        self,
        session: Session,
        config: Optional[WorkspacesConfig] = None,
        clock: Callable[[], datetime] = utcnow,
        directory: Optional[UserDirectory] = None,
    ):
        self._session = session
        self.config = config or DEFAULT_WORKSPACES_CONFIG
        self._clock = clock
        self._directory = directory

    # -------------------------------------------------------------------------
    # Issue
    # -------------------------------------------------------------------------

    def upsert(self, workspace_id: str, email: str, invited_by_id: str) -> Invitation:
        """Create the invitation for ``email`` or refresh the existing one.

        An existing row gets a new token, PENDING status, a new expiry and
        the new inviter regardless of its previous status; the old token
        stops resolving immediately.

        Raises:
            ValidationError: Malformed email or missing inviter.
            NotFoundError: Unknown workspace.
        """
        email = validate_email(email)
        invited_by_id = validate_identifier(invited_by_id, "invited_by_id")
        workspace_id = validate_identifier(workspace_id, "workspace_id")
        if self._session.get(WorkspaceRecord, workspace_id) is None:
            raise NotFoundError("Workspace not found", resource_type="workspace", resource_id=workspace_id)

        now = self._clock()
        values = {
            "invited_by_id": invited_by_id,
            "token": generate_token(),
            "status": InvitationStatus.PENDING.value,
            "expires_at": now + self.config.invitation_ttl,
            "updated_at": now,
        }

        dialect = self._session.get_bind().dialect.name
        insert = _UPSERT_INSERTS.get(dialect)
        if insert is not None:
            stmt = insert(WorkspaceInvitationRecord).values(
                id=generate_uuid(),
                email=email,
                workspace_id=workspace_id,
                created_at=now,
                **values,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=["workspace_id", "email"],
                set_=values,
            )
            self._session.execute(stmt)
            record = self._session.scalars(
                select(WorkspaceInvitationRecord)
                .where(
                    WorkspaceInvitationRecord.workspace_id == workspace_id,
                    WorkspaceInvitationRecord.email == email,
                )
                .execution_options(populate_existing=True)
            ).one()
        else:
            record = self._find(workspace_id, email)
            if record is None:
                record = WorkspaceInvitationRecord(
                    workspace_id=workspace_id, email=email, created_at=now, **values
                )
                self._session.add(record)
            else:
                for key, value in values.items():
                    setattr(record, key, value)
            self._session.flush()

        logger.info(
            f"Invitation issued to {email}, expires {record.expires_at.isoformat()}",
            extra={"workspace_id": workspace_id, "invitation_id": record.id, "user_id": invited_by_id},
        )
        return Invitation.from_record(record)

    # -------------------------------------------------------------------------
    # Read
    # -------------------------------------------------------------------------

    def resolve_by_token(self, token: str) -> ResolvedInvitation:
        """Look up an invitation for display on the accept page.

        Raises:
            NotFoundError: No invitation carries this token.
            InvitationExpiredError: Already accepted or past its expiry.
        """
        record = self._find_by_token(token)
        if record is None:
            raise NotFoundError("Invitation not found", resource_type="invitation")
        if is_expired(record, self._clock()):
            raise InvitationExpiredError()

        workspace = self._session.get(WorkspaceRecord, record.workspace_id)
        return self._resolved(Invitation.from_record(record), workspace)

    def list_pending(self, workspace_id: str) -> list[Invitation]:
        """PENDING invitations of a workspace, oldest first (expired ones included)."""
        records = self._session.scalars(
            select(WorkspaceInvitationRecord)
            .where(
                WorkspaceInvitationRecord.workspace_id == workspace_id,
                WorkspaceInvitationRecord.status == InvitationStatus.PENDING.value,
            )
            .order_by(WorkspaceInvitationRecord.created_at, WorkspaceInvitationRecord.id)
        ).all()
        return [Invitation.from_record(r) for r in records]

    def list_pending_for_email(self, email: str) -> list[ResolvedInvitation]:
        """Acceptable invitations addressed to ``email`` across all workspaces."""
        email = validate_email(email)
        rows = self._session.execute(
            select(WorkspaceInvitationRecord, WorkspaceRecord)
            .join(WorkspaceRecord, WorkspaceRecord.id == WorkspaceInvitationRecord.workspace_id)
            .where(
                WorkspaceInvitationRecord.email == email,
                WorkspaceInvitationRecord.status == InvitationStatus.PENDING.value,
                WorkspaceInvitationRecord.expires_at >= self._clock(),
            )
            .order_by(WorkspaceInvitationRecord.created_at, WorkspaceInvitationRecord.id)
        ).all()

        inviters = {}
        if self._directory is not None:
            inviters = self._directory.get_profiles(inv.invited_by_id for inv, _ in rows)

        return [
            self._resolved(Invitation.from_record(inv), ws, inviters.get(inv.invited_by_id))
            for inv, ws in rows
        ]

    # -------------------------------------------------------------------------
    # Mutate
    # -------------------------------------------------------------------------

    def cancel(self, workspace_id: str, invitation_id: str) -> None:
        """Delete an invitation of this workspace.

        Raises:
            NotFoundError: No such invitation in this workspace.
        """
        record = self._session.get(WorkspaceInvitationRecord, invitation_id) if invitation_id else None
        if record is None or record.workspace_id != workspace_id:
            raise NotFoundError("Invitation not found", resource_type="invitation", resource_id=invitation_id)

        self._session.delete(record)
        self._session.flush()
        logger.info(
            f"Invitation to {record.email} cancelled",
            extra={"workspace_id": workspace_id, "invitation_id": invitation_id},
        )

    def require_acceptable(self, token: str) -> Invitation:
        """The invitation behind ``token`` if it can be accepted right now.

        An unknown token is reported as expired, the same as a consumed one.

        Raises:
            InvitationExpiredError
        """
        record = self._find_by_token(token)
        if record is None or is_expired(record, self._clock()):
            raise InvitationExpiredError()
        return Invitation.from_record(record)

    def mark_accepted(self, invitation: Invitation) -> Invitation:
        """Flip a PENDING invitation to ACCEPTED.

        The update only matches a row that is still PENDING, so a second
        consumer of the same token updates nothing.

        Raises:
            InvitationExpiredError: The row was consumed or removed meanwhile.
        """
        now = self._clock()
        result = self._session.execute(
            update(WorkspaceInvitationRecord)
            .where(
                WorkspaceInvitationRecord.id == invitation.id,
                WorkspaceInvitationRecord.status == InvitationStatus.PENDING.value,
            )
            .values(status=InvitationStatus.ACCEPTED.value, updated_at=now)
        )
        if result.rowcount != 1:
            logger.info(
                "Invitation already consumed",
                extra={"workspace_id": invitation.workspace_id, "invitation_id": invitation.id},
            )
            raise InvitationExpiredError()
        return replace(invitation, status=InvitationStatus.ACCEPTED, updated_at=now)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _find(self, workspace_id: str, email: str) -> Optional[WorkspaceInvitationRecord]:
        return self._session.scalars(
            select(WorkspaceInvitationRecord).where(
                WorkspaceInvitationRecord.workspace_id == workspace_id,
                WorkspaceInvitationRecord.email == email,
            )
        ).first()

    def _find_by_token(self, token: Optional[str]) -> Optional[WorkspaceInvitationRecord]:
        if not token:
            return None
        return self._session.scalars(
            select(WorkspaceInvitationRecord).where(WorkspaceInvitationRecord.token == token)
        ).first()

    def _resolved(self, invitation, workspace, inviter=None) -> ResolvedInvitation:
        if inviter is None and self._directory is not None:
            inviter = self._directory.get_profile(invitation.invited_by_id)
        return ResolvedInvitation(
            invitation=invitation,
            workspace=WorkspaceSummary(
                id=invitation.workspace_id,
                name=workspace.name if workspace is not None else "",
            ),
            invited_by=InviterSummary(
                id=invitation.invited_by_id,
                name=inviter.name if inviter is not None else "",
            ),
        )
