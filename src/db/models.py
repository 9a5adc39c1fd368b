"""SQLAlchemy ORM models for the Workroom service.

Tables:
- users: user directory (owned by the account service, read here for projections)
- app_settings: singleton row holding global feature flags
- workspaces: tenant groupings; default workspaces are never deleted
- workspace_members: user <-> workspace join, unique per pair
- workspace_invitations: token-identified offers to join, unique per (workspace, email)
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from src.db.base import Base


def _uuid() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    # Stored naive, always UTC.
    return datetime.now(timezone.utc).replace(tzinfo=None)


# =============================================================================
# Collaborator tables
# =============================================================================


class UserRecord(Base):
    """User directory entry."""

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    is_admin = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)


class AppSettingsRecord(Base):
    """Global application settings (single row, id = "default")."""

    __tablename__ = "app_settings"

    id = Column(String(36), primary_key=True, default="default")
    workspaces_enabled = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=_utcnow)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)


# =============================================================================
# Workspace tables
# =============================================================================


class WorkspaceRecord(Base):
    """Tenant workspace."""

    __tablename__ = "workspaces"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(100), nullable=False)
    owner_id = Column(String(36), nullable=False, index=True)
    is_default = Column(Boolean, default=False, nullable=False)

    # Timestamps
    created_at = Column(DateTime, default=_utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    # Relationships (read-only; deletes are cascaded explicitly by the store)
    members = relationship("WorkspaceMemberRecord", back_populates="workspace", viewonly=True)
    invitations = relationship("WorkspaceInvitationRecord", back_populates="workspace", viewonly=True)


class WorkspaceMemberRecord(Base):
    """Workspace membership."""

    __tablename__ = "workspace_members"

    id = Column(String(36), primary_key=True, default=_uuid)
    workspace_id = Column(String(36), ForeignKey("workspaces.id"), nullable=False, index=True)
    user_id = Column(String(36), nullable=False, index=True)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    workspace = relationship("WorkspaceRecord", back_populates="members", viewonly=True)

    __table_args__ = (
        UniqueConstraint("workspace_id", "user_id", name="uq_workspace_member"),
    )


class WorkspaceInvitationRecord(Base):
    """Invitation for an email address to join a workspace."""

    __tablename__ = "workspace_invitations"

    id = Column(String(36), primary_key=True, default=_uuid)
    email = Column(String(255), nullable=False)
    workspace_id = Column(String(36), ForeignKey("workspaces.id"), nullable=False, index=True)
    invited_by_id = Column(String(36), nullable=False)
    token = Column(String(64), unique=True, nullable=False, index=True)
    status = Column(String(20), nullable=False, default="PENDING")
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=_utcnow, nullable=False)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)

    workspace = relationship("WorkspaceRecord", back_populates="invitations", viewonly=True)

    __table_args__ = (
        UniqueConstraint("workspace_id", "email", name="uq_workspace_invitation_email"),
    )
