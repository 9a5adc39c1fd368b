"""Workspace authorization predicates.

Pure checks over already-loaded data. The only storage touched is the
feature-flag source, read on every call so a flip takes effect on the
next request.
"""

from src.workspaces.collaborators import FeatureFlagSource
from src.workspaces.models import Actor, Membership, Workspace


class AccessGuard:
    """Authorization decisions for workspace operations."""

    def __init__(self, flags: FeatureFlagSource):
        self._flags = flags

    def can_manage_workspace(self, workspace: Workspace, actor: Actor) -> bool:
        """Owner or admin may rename and delete."""
        return actor.is_admin or workspace.owner_id == actor.id

    def can_remove_member(self, workspace: Workspace, member: Membership, actor: Actor) -> bool:
        """Owner may remove anyone; a member may always remove themself."""
        return workspace.owner_id == actor.id or member.user_id == actor.id

    def can_create_non_default_workspace(self) -> bool:
        return bool(self._flags.workspaces_enabled())

    def can_view_workspace(self, workspace: Workspace, actor: Actor, is_member: bool) -> bool:
        return is_member or actor.is_admin

    def can_invite(self, workspace: Workspace, actor: Actor, is_member: bool) -> bool:
        return is_member or actor.is_admin or workspace.owner_id == actor.id
