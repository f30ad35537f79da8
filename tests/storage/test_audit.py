"""Tests for edufam.storage.audit module."""

from __future__ import annotations

import typing as t

from sqlalchemy.orm import Session

from edufam.model import Role
from edufam.storage import audit as audit_storage

if t.TYPE_CHECKING:
    from conftest import Actors


class TestCreate(object):
    """Tests for audit_storage.create() and find()."""

    def test_entry_records_actor(self, db_session: Session, actors: Actors) -> None:
        with db_session.begin():
            audit_storage.create(
                context=actors.principal,
                action="grade.approve",
                target="grade$abc",
                old_value={"status": "pending_approval"},
                new_value={"status": "approved"},
                session=db_session,
            )
            (entry,) = audit_storage.find(context=actors.principal, target="grade$abc", session=db_session)

        assert entry.user_id == actors.principal.user_id
        assert entry.role is Role.Principal
        assert entry.school_id == actors.school.school_id
        assert entry.old_value == {"status": "pending_approval"}
        assert entry.new_value == {"status": "approved"}

    def test_find_is_tenant_scoped(self, db_session: Session, actors_factory: t.Callable[..., Actors]) -> None:
        s1, s2 = actors_factory(), actors_factory()

        with db_session.begin():
            audit_storage.create(context=s1.principal, action="grade.release", target="t1", session=db_session)
            audit_storage.create(context=s2.principal, action="grade.release", target="t2", session=db_session)
            entries = audit_storage.find(context=s2.principal, action="grade.release", session=db_session)

        assert [e.target for e in entries] == ["t2"]
