"""External collaborators consumed by the workspace core.

The settings store and the user directory belong to the surrounding
system. The core depends only on the protocols below; the SQL-backed
implementations read the shared tables.
"""

import logging
from typing import Iterable, Optional, Protocol, runtime_checkable

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from src.db.models import AppSettingsRecord, UserRecord
from src.workspaces.models import UserProfile

logger = logging.getLogger(__name__)

SETTINGS_ROW_ID = "default"


@runtime_checkable
class FeatureFlagSource(Protocol):
    """Read-only view of global feature flags."""

    def workspaces_enabled(self) -> bool:
        """Whether self-service (non-default) workspace creation is allowed."""
        ...


@runtime_checkable
class UserDirectory(Protocol):
    """Source of ``{id, name, email}`` user projections."""

    def get_profile(self, user_id: str) -> Optional[UserProfile]:
        ...

    def get_profiles(self, user_ids: Iterable[str]) -> dict[str, UserProfile]:
        ...


class SettingsTableFlags:
    """Feature flags read from the ``app_settings`` row on every call.

    Nothing is cached, so a flag flip is visible to the next request.
    A missing row falls back to ``default_enabled``.
    """

    def __init__(self, session_factory: sessionmaker, default_enabled: bool = True):
        self._session_factory = session_factory
        self._default_enabled = default_enabled

    def workspaces_enabled(self) -> bool:
        with self._session_factory() as session:
            enabled = session.scalar(
                select(AppSettingsRecord.workspaces_enabled).where(
                    AppSettingsRecord.id == SETTINGS_ROW_ID
                )
            )
        if enabled is None:
            return self._default_enabled
        return bool(enabled)

    def set_workspaces_enabled(self, enabled: bool) -> None:
        """Write the flag (admin settings screens use this)."""
        with self._session_factory() as session, session.begin():
            record = session.get(AppSettingsRecord, SETTINGS_ROW_ID)
            if record is None:
                session.add(AppSettingsRecord(id=SETTINGS_ROW_ID, workspaces_enabled=enabled))
            else:
                record.workspaces_enabled = enabled
        logger.info(f"Feature flag workspaces_enabled set to {enabled}")


class SqlUserDirectory:
    """User projections read from the ``users`` table.

    Built on a session factory, each lookup opens its own short session.
    ``bind(session)`` returns a directory that reads through an existing
    session instead, so lookups inside a transaction reuse its
    connection and see its snapshot.
    """

    def __init__(self, session_factory: Optional[sessionmaker] = None, session: Optional[Session] = None):
        if session_factory is None and session is None:
            raise ValueError("SqlUserDirectory needs a session_factory or a session")
        self._session_factory = session_factory
        self._session = session

    def bind(self, session: Session) -> "SqlUserDirectory":
        return SqlUserDirectory(session=session)

    def get_profile(self, user_id: str) -> Optional[UserProfile]:
        return self.get_profiles([user_id]).get(user_id)

    def get_profiles(self, user_ids: Iterable[str]) -> dict[str, UserProfile]:
        ids = {uid for uid in user_ids if uid}
        if not ids:
            return {}
        stmt = select(UserRecord.id, UserRecord.name, UserRecord.email).where(UserRecord.id.in_(ids))
        if self._session is not None:
            rows = self._session.execute(stmt).all()
        else:
            with self._session_factory() as session:
                rows = session.execute(stmt).all()
        return {
            row.id: UserProfile(id=row.id, name=row.name or "", email=row.email or "")
            for row in rows
        }
