"""Database package for the Workroom service."""

from src.db.base import Base
from src.db.engine import get_engine, get_session_factory, SessionLocal
from src.db.models import (
    UserRecord,
    AppSettingsRecord,
    WorkspaceRecord,
    WorkspaceMemberRecord,
    WorkspaceInvitationRecord,
)

__all__ = [
    "Base",
    "get_engine",
    "get_session_factory",
    "SessionLocal",
    "UserRecord",
    "AppSettingsRecord",
    "WorkspaceRecord",
    "WorkspaceMemberRecord",
    "WorkspaceInvitationRecord",
]
