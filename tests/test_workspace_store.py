"""Tests for WorkspaceStore: validation, rename, delete and listing."""

from datetime import datetime, timedelta

import pytest
from sqlalchemy import func, select, update

from src.api_errors.exceptions import CannotDeleteDefaultError, NotFoundError, ValidationError
from src.db.models import WorkspaceInvitationRecord, WorkspaceMemberRecord, WorkspaceRecord
from src.workspaces.store import WorkspaceStore


@pytest.fixture
def session(session_factory):
    with session_factory() as session:
        yield session


@pytest.fixture
def store(session):
    return WorkspaceStore(session)


def _add_member(session, workspace_id, user_id):
    session.add(WorkspaceMemberRecord(workspace_id=workspace_id, user_id=user_id))
    session.flush()


def _count(session, model):
    return session.scalar(select(func.count()).select_from(model))


class TestCreate:

    def test_create_trims_name(self, store):
        ws = store.create("  Research  ", "u1")
        assert ws.name == "Research"
        assert ws.owner_id == "u1"
        assert ws.is_default is False

    def test_create_default(self, store):
        assert store.create("Home", "u1", is_default=True).is_default is True

    @pytest.mark.parametrize("name", ["", "   ", None, "x" * 101])
    def test_invalid_name_rejected_before_insert(self, store, session, name):
        with pytest.raises(ValidationError):
            store.create(name, "u1")
        assert _count(session, WorkspaceRecord) == 0

    def test_name_at_limit_accepted(self, store):
        assert len(store.create("x" * 100, "u1").name) == 100

    def test_missing_owner_rejected(self, store):
        with pytest.raises(ValidationError):
            store.create("Research", "")


class TestGet:

    def test_get_unknown_returns_none(self, store):
        assert store.get("missing") is None

    def test_require_unknown_raises(self, store):
        with pytest.raises(NotFoundError):
            store.require("missing")

    def test_find_default_for_owner(self, store):
        store.create("Side project", "u1")
        home = store.create("Home", "u1", is_default=True)
        assert store.find_default_for_owner("u1").id == home.id
        assert store.find_default_for_owner("u2") is None


class TestRename:

    def test_rename(self, store):
        ws = store.create("Research", "u1")
        renamed = store.rename(ws.id, " Lab ")
        assert renamed.name == "Lab"
        assert store.get(ws.id).name == "Lab"

    def test_rename_unknown_raises(self, store):
        with pytest.raises(NotFoundError):
            store.rename("missing", "Lab")

    def test_rename_validates_first(self, store):
        with pytest.raises(ValidationError):
            store.rename("missing", "")


class TestDelete:

    def test_delete_cascades_members_and_invitations(self, store, session):
        ws = store.create("Research", "u1")
        _add_member(session, ws.id, "u1")
        _add_member(session, ws.id, "u2")
        session.add(WorkspaceInvitationRecord(
            workspace_id=ws.id, email="c@example.com", invited_by_id="u1",
            token="tok", expires_at=datetime(2030, 1, 1),
        ))
        session.flush()

        store.delete(ws.id)

        assert store.get(ws.id) is None
        assert _count(session, WorkspaceMemberRecord) == 0
        assert _count(session, WorkspaceInvitationRecord) == 0

    def test_delete_default_refused(self, store):
        ws = store.create("Home", "u1", is_default=True)
        with pytest.raises(CannotDeleteDefaultError):
            store.delete(ws.id)
        assert store.get(ws.id) is not None

    def test_delete_unknown_raises(self, store):
        with pytest.raises(NotFoundError):
            store.delete("missing")

    def test_delete_leaves_other_workspaces(self, store, session):
        keep = store.create("Keep", "u1")
        drop = store.create("Drop", "u1")
        _add_member(session, keep.id, "u1")
        _add_member(session, drop.id, "u1")

        store.delete(drop.id)

        assert store.get(keep.id) is not None
        assert _count(session, WorkspaceMemberRecord) == 1


class TestListForUser:

    def _create_ordered(self, store, session, names, user_id="u1"):
        base = datetime(2026, 1, 1)
        created = []
        for i, name in enumerate(names):
            ws = store.create(name, "owner")
            _add_member(session, ws.id, user_id)
            session.execute(
                update(WorkspaceRecord)
                .where(WorkspaceRecord.id == ws.id)
                .values(created_at=base + timedelta(minutes=i))
            )
            created.append(ws)
        return created

    def test_only_member_workspaces(self, store, session):
        mine = self._create_ordered(store, session, ["A", "B"])
        store.create("Not mine", "u2")

        page = store.list_for_user("u1")
        assert [w.id for w in page.items] == [w.id for w in mine]
        assert page.total == 2

    def test_oldest_first_and_paginated(self, store, session):
        self._create_ordered(store, session, ["A", "B", "C", "D", "E"])

        first = store.list_for_user("u1", page=1, page_size=2)
        last = store.list_for_user("u1", page=3, page_size=2)

        assert [w.name for w in first.items] == ["A", "B"]
        assert first.has_more is True
        assert [w.name for w in last.items] == ["E"]
        assert last.has_more is False
        assert last.total == 5

    def test_empty_for_user_without_memberships(self, store):
        page = store.list_for_user("nobody")
        assert page.items == []
        assert page.total == 0

    @pytest.mark.parametrize("page,page_size", [(0, 10), (1, 0), (1, 101)])
    def test_bad_pagination_rejected(self, store, page, page_size):
        with pytest.raises(ValidationError):
            store.list_for_user("u1", page=page, page_size=page_size)

    def test_missing_user_rejected(self, store):
        with pytest.raises(ValidationError):
            store.list_for_user("")
