from __future__ import annotations

from sqlalchemy import func, select, update

from edufam.core import di
from edufam.grading.scope import resolve_school, scope_query, stamp
from edufam.model import GradeID, GradeOverride, OverrideID, OverrideStatus, SchoolID, TenantContext

from . import Session
from .table import grade_overrides


def get(
    key: OverrideID,
    *,
    context: TenantContext | None = None,
    for_update: bool = False,
    session: Session = di.Provide["storage.persistent.session"],
) -> GradeOverride | None:
    stmt = select(grade_overrides.__table__).where(grade_overrides.override_id == key)
    if context is not None:
        stmt = scope_query(stmt, context, grade_overrides.school_id)
    if for_update:
        stmt = stmt.with_for_update()
    row = session.execute(stmt).mappings().one_or_none()
    return GradeOverride(**row) if row else None


def find(
    *,
    grade_id: GradeID | None = None,
    status: OverrideStatus | None = None,
    context: TenantContext | None = None,
    session: Session = di.Provide["storage.persistent.session"],
) -> tuple[GradeOverride, ...]:
    """Overrides, oldest first.

    Without a `context` the lookup is unscoped; callers pass one whenever the
    result leaves the service layer.
    """
    stmt = select(grade_overrides.__table__).order_by(grade_overrides.create_time, grade_overrides.override_id)
    if context is not None:
        stmt = scope_query(stmt, context, grade_overrides.school_id)
    if grade_id is not None:
        stmt = stmt.where(grade_overrides.grade_id == grade_id)
    if status is not None:
        stmt = stmt.where(grade_overrides.status == status)
    rows = session.execute(stmt).mappings().all()
    return tuple(GradeOverride(**row) for row in rows)


def count(
    *,
    context: TenantContext,
    status: OverrideStatus | None = None,
    school_id: SchoolID | None = None,
    session: Session = di.Provide["storage.persistent.session"],
) -> int:
    stmt = scope_query(select(func.count()).select_from(grade_overrides), context, grade_overrides.school_id)
    if status is not None:
        stmt = stmt.where(grade_overrides.status == status)
    if school_id is not None:
        stmt = stmt.where(grade_overrides.school_id == school_id)
    return session.execute(stmt).scalar_one()


def create(
    override: GradeOverride,
    *,
    context: TenantContext,
    session: Session = di.Provide["storage.persistent.session"],
) -> GradeOverride:
    values = stamp({"school_id": override.school_id}, context)
    row = grade_overrides(
        override_id=override.override_id,
        grade_id=override.grade_id,
        school_id=values["school_id"],
        original_score=override.original_score,
        new_score=override.new_score,
        reason=override.reason,
        requested_by=override.requested_by,
        status=override.status,
    )
    session.add(row)
    session.flush()
    return get(row.override_id, session=session)  # type: ignore[return-value]


def save_decision(
    override: GradeOverride,
    *,
    context: TenantContext,
    session: Session = di.Provide["storage.persistent.session"],
) -> GradeOverride:
    """Persist the decision recorded on `override`.

    Raises:
        KeyError: If the override does not exist within the actor's school
    """
    stmt = (
        update(grade_overrides)
        .where(grade_overrides.override_id == override.override_id)
        .values(status=override.status, approved_by=override.approved_by, decided_at=override.decided_at)
    )
    if not context.is_system_admin:
        stmt = stmt.where(grade_overrides.school_id == resolve_school(context))

    result = session.execute(stmt)
    if result.rowcount == 0:  # pyright: ignore[reportAttributeAccessIssue]
        raise KeyError(f"Override {override.override_id} not found")

    session.flush()
    return get(override.override_id, session=session)  # type: ignore[return-value]

