from __future__ import annotations

import typing as t

import sqlalchemy as sqla

from edufam.core import di
from edufam.grading.scope import scope_query
from edufam.model import AuditEntry, AuditEntryID, SchoolID, TenantContext

from . import Session
from .table import audit_entries


def create(
    *,
    context: TenantContext,
    action: str,
    target: str,
    school_id: SchoolID | None = None,
    old_value: dict[str, t.Any] | None = None,
    new_value: dict[str, t.Any] | None = None,
    session: Session = di.Provide["storage.persistent.session"],
) -> AuditEntryID:
    entry_id = AuditEntryID()
    stmt = sqla.insert(audit_entries).values(
        entry_id=entry_id,
        school_id=school_id if school_id is not None else context.school_id,
        user_id=context.user_id,
        role=context.role,
        action=action,
        target=target,
        old_value=old_value,
        new_value=new_value,
    )
    session.execute(stmt)
    session.flush()
    return entry_id


def find(
    *,
    context: TenantContext,
    target: str | None = None,
    action: str | None = None,
    limit: int = 100,
    session: Session = di.Provide["storage.persistent.session"],
) -> tuple[AuditEntry, ...]:
    """Most recent entries first."""
    stmt = scope_query(sqla.select(audit_entries.__table__), context, audit_entries.school_id)
    stmt = stmt.order_by(audit_entries.create_time.desc()).limit(limit)
    if target is not None:
        stmt = stmt.where(audit_entries.target == target)
    if action is not None:
        stmt = stmt.where(audit_entries.action == action)
    rows = session.execute(stmt).mappings().all()
    return tuple(AuditEntry(**row) for row in rows)
