"""Workspace Configuration.

Invitation statuses, limits and defaults for the membership lifecycle.
"""

from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import Optional

from src.settings import Settings


class InvitationStatus(str, Enum):
    """Stored invitation statuses. "Expired" is computed, never stored."""
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"


WORKSPACE_NAME_MAX_LENGTH = 100
INVITATION_TTL = timedelta(days=7)
DEFAULT_WORKSPACE_NAME_TEMPLATE = "{name}'s workspace"


@dataclass
class WorkspacesConfig:
    """Membership lifecycle configuration."""

    name_max_length: int = WORKSPACE_NAME_MAX_LENGTH
    invitation_ttl: timedelta = field(default_factory=lambda: INVITATION_TTL)
    default_page_size: int = 20
    max_page_size: int = 100
    default_workspace_name_template: str = DEFAULT_WORKSPACE_NAME_TEMPLATE
    # Base URL of the web app; accept links are <app_url>/invitations/<token>
    app_url: str = "http://localhost:3000"

    @classmethod
    def from_settings(cls, settings: Settings) -> "WorkspacesConfig":
        return cls(
            invitation_ttl=timedelta(days=settings.invitation_ttl_days),
            app_url=settings.app_url,
        )

    def accept_url(self, token: str) -> str:
        return f"{self.app_url.rstrip('/')}/invitations/{token}"

    def default_workspace_name(self, user_name: Optional[str]) -> str:
        name = self.default_workspace_name_template.format(name=(user_name or "My").strip() or "My")
        return name[: self.name_max_length]


DEFAULT_WORKSPACES_CONFIG = WorkspacesConfig()
