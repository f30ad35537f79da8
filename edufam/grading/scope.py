"""Tenant scoping for every grading read and write.

Non-admin actors only ever see and write rows of their own school. System
admins are unrestricted for reads, but must name the school explicitly for
writes.
"""

from __future__ import annotations

import logging
import typing as t

import sqlalchemy as sqla

from edufam.model import SchoolID, TenantContext

from .errors import NotFoundError, TenantScopeError, TenantScopeReason

logger = logging.getLogger(__name__)

TSelect = t.TypeVar("TSelect", bound=sqla.Select[t.Any])


def resolve_school(context: TenantContext) -> SchoolID:
    """The school a non-admin actor is confined to.

    Raises:
        TenantScopeError: if the actor has no school, or it is malformed
    """
    if context.school_id is None:
        raise TenantScopeError(TenantScopeReason.NoSchoolAssigned, f"user {context.user_id}")
    return _well_formed(context.school_id)


def scope_query(stmt: TSelect, context: TenantContext, column: sqla.ColumnElement[t.Any]) -> TSelect:
    """Restrict `stmt` to rows whose `column` matches the actor's school."""
    if context.is_system_admin:
        return stmt
    school_id = resolve_school(context)
    return stmt.where(column == school_id)


def stamp(values: dict[str, t.Any], context: TenantContext) -> dict[str, t.Any]:
    """Return write `values` with `school_id` forced to the actor's school.

    A non-admin that names another school is silently moved back into its own
    school; the attempt is logged. System admins have no school of their own,
    so they must provide a valid one.
    """
    if context.is_system_admin:
        supplied = values.get("school_id")
        if supplied is None:
            raise TenantScopeError(TenantScopeReason.NoSchoolAssigned, "system admin writes must name a school")
        return {**values, "school_id": _well_formed(supplied)}

    school_id = resolve_school(context)
    supplied = values.get("school_id")
    if supplied is not None and str(supplied) != str(school_id):
        logger.warning(
            "corrected cross-tenant write",
            extra={
                "user_id": str(context.user_id),
                "supplied_school_id": str(supplied),
                "school_id": str(school_id),
            },
        )
    return {**values, "school_id": school_id}


def assert_same_tenant(row_school_id: SchoolID, context: TenantContext, *, kind: str, key: str) -> None:
    """Hide rows of other schools from single-record lookups."""
    if context.is_system_admin:
        return
    if str(row_school_id) != str(resolve_school(context)):
        raise NotFoundError(kind, key)


def _well_formed(school_id: SchoolID | str) -> SchoolID:
    if isinstance(school_id, SchoolID):
        return school_id
    try:
        return SchoolID(str(school_id))
    except ValueError as e:
        raise TenantScopeError(TenantScopeReason.MalformedSchoolId, repr(school_id)) from e
