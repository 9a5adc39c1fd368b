"""Pytest configuration and shared fixtures."""

import logging
import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytest
from sqlalchemy import create_engine

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from src.db.base import Base  # noqa: E402
from src.db.engine import get_session_factory  # noqa: E402
from src.db.models import UserRecord  # noqa: E402
from src.workspaces.collaborators import SettingsTableFlags, SqlUserDirectory  # noqa: E402
from src.workspaces.coordinator import LifecycleCoordinator  # noqa: E402
from src.workspaces.models import Actor  # noqa: E402


class FrozenClock:
    """Controllable clock returning naive UTC datetimes."""

    def __init__(self, now: datetime = datetime(2026, 1, 15, 12, 0, 0)):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class RecordingMailer:
    """Invitation mailer that records sends and can be told to fail."""

    def __init__(self):
        self.sent = []
        self.fail = False

    def send_invitation(self, to, inviter_name, workspace_name, accept_url, expires_at=None):
        if self.fail:
            raise ConnectionError("SMTP relay unreachable")
        self.sent.append({
            "to": to,
            "inviter_name": inviter_name,
            "workspace_name": workspace_name,
            "accept_url": accept_url,
            "expires_at": expires_at,
        })


USERS = {
    "u1": ("Alice", "alice@example.com", False),
    "u2": ("Bob", "bob@example.com", False),
    "u3": ("Carol", "carol@example.com", False),
    "admin": ("Root", "root@example.com", True),
}


@pytest.fixture(autouse=True)
def restore_root_logger():
    """configure_logging() replaces root handlers; put them back after each test."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def engine(tmp_path):
    """File-backed SQLite database, fresh per test."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'workroom.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return get_session_factory(engine)


@pytest.fixture
def users(session_factory):
    with session_factory() as session, session.begin():
        for user_id, (name, email, is_admin) in USERS.items():
            session.add(UserRecord(id=user_id, name=name, email=email, is_admin=is_admin))
    return {
        user_id: Actor(id=user_id, is_admin=is_admin, email=email)
        for user_id, (_, email, is_admin) in USERS.items()
    }


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def flags(session_factory):
    return SettingsTableFlags(session_factory)


@pytest.fixture
def directory(session_factory):
    return SqlUserDirectory(session_factory)


@pytest.fixture
def coordinator(session_factory, flags, directory, mailer, clock, users):
    return LifecycleCoordinator(
        session_factory,
        flags=flags,
        directory=directory,
        mailer=mailer,
        clock=clock,
    )
