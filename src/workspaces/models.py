"""Workspace Domain Models.

Plain data structures returned by the stores and the coordinator.
ORM records never leave a transaction; they are converted here.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional
import uuid

from src.workspaces.config import InvitationStatus


def generate_uuid() -> str:
    """Generate a new UUID string."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Current UTC time as a naive datetime (the storage convention)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


# =============================================================================
# Identity & projections
# =============================================================================


@dataclass
class Actor:
    """Caller identity supplied by the authentication layer."""

    id: str
    is_admin: bool = False
    email: Optional[str] = None


@dataclass
class UserProfile:
    """Denormalized user projection from the user directory."""

    id: str
    name: str = ""
    email: str = ""

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "email": self.email}


@dataclass
class WorkspaceSummary:
    id: str
    name: str

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name}


@dataclass
class InviterSummary:
    id: str
    name: str = ""

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name}


# =============================================================================
# Workspace
# =============================================================================


@dataclass
class Workspace:
    """Tenant workspace."""

    id: str = field(default_factory=generate_uuid)
    name: str = ""
    owner_id: str = ""
    is_default: bool = False
    created_at: datetime = field(default_factory=utcnow)
    updated_at: Optional[datetime] = None
    owner: Optional[UserProfile] = None

    @classmethod
    def from_record(cls, record: Any) -> "Workspace":
        return cls(
            id=record.id,
            name=record.name,
            owner_id=record.owner_id,
            is_default=bool(record.is_default),
            created_at=record.created_at,
            updated_at=record.updated_at,
        )

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        data = {
            "id": self.id,
            "name": self.name,
            "owner_id": self.owner_id,
            "is_default": self.is_default,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
        if self.owner is not None:
            data["owner"] = self.owner.to_dict()
        return data


@dataclass
class WorkspacePage:
    """One page of a user's workspaces, oldest first."""

    items: list[Workspace]
    total: int
    page: int
    page_size: int

    @property
    def has_more(self) -> bool:
        return self.page * self.page_size < self.total


# =============================================================================
# Membership
# =============================================================================


@dataclass
class Membership:
    """Link between one user and one workspace."""

    id: str = field(default_factory=generate_uuid)
    workspace_id: str = ""
    user_id: str = ""
    created_at: datetime = field(default_factory=utcnow)
    updated_at: Optional[datetime] = None
    user: Optional[UserProfile] = None

    @classmethod
    def from_record(cls, record: Any, user: Optional[UserProfile] = None) -> "Membership":
        return cls(
            id=record.id,
            workspace_id=record.workspace_id,
            user_id=record.user_id,
            created_at=record.created_at,
            updated_at=record.updated_at,
            user=user,
        )

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "workspace_id": self.workspace_id,
            "user_id": self.user_id,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
        if self.user is not None:
            data["user"] = self.user.to_dict()
        return data


# =============================================================================
# Invitation
# =============================================================================


@dataclass
class Invitation:
    """Time-boxed, token-identified offer for an email to join a workspace."""

    id: str = field(default_factory=generate_uuid)
    email: str = ""
    workspace_id: str = ""
    invited_by_id: str = ""
    token: str = ""
    status: InvitationStatus = InvitationStatus.PENDING
    expires_at: datetime = field(default_factory=utcnow)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: Any) -> "Invitation":
        return cls(
            id=record.id,
            email=record.email,
            workspace_id=record.workspace_id,
            invited_by_id=record.invited_by_id,
            token=record.token,
            status=InvitationStatus(record.status),
            expires_at=record.expires_at,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )

    def to_dict(self, include_token: bool = True) -> dict:
        data = {
            "id": self.id,
            "email": self.email,
            "workspace_id": self.workspace_id,
            "invited_by_id": self.invited_by_id,
            "status": self.status.value,
            "expires_at": _iso(self.expires_at),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
        if include_token:
            data["token"] = self.token
        return data


@dataclass
class ResolvedInvitation:
    """Invitation with the workspace and inviter projections for display."""

    invitation: Invitation
    workspace: WorkspaceSummary
    invited_by: InviterSummary

    def to_dict(self) -> dict:
        data = self.invitation.to_dict()
        data["workspace"] = self.workspace.to_dict()
        data["invited_by"] = self.invited_by.to_dict()
        return data


@dataclass
class WorkspaceDetail:
    """Workspace with its members and pending invitations."""

    workspace: Workspace
    members: list[Membership] = field(default_factory=list)
    invitations: list[Invitation] = field(default_factory=list)

    def to_dict(self) -> dict:
        data = self.workspace.to_dict()
        data["members"] = [m.to_dict() for m in self.members]
        data["invitations"] = [i.to_dict(include_token=False) for i in self.invitations]
        return data
