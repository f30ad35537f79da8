"""Role capability matrix.

A static table from role to the grading permissions it holds. Lookups are
total: anything that is not a known role gets `NoCapabilities`.
"""

from __future__ import annotations

import enum
import types
import typing as t

from edufam.model import Role


class ViewScope(enum.Enum):
    Nothing = "none"
    OwnClasses = "own_classes"
    School = "school"
    All = "all"
    Children = "children"


class Action(enum.Enum):
    Create = "create"
    Edit = "edit"
    Submit = "submit"
    Approve = "approve"
    Reject = "reject"
    Override = "override"
    Release = "release"


class PermissionSet(t.NamedTuple):
    create: bool = False
    edit: bool = False
    submit: bool = False
    approve: bool = False
    reject: bool = False
    override: bool = False
    release: bool = False
    view_detailed: bool = False
    view_summary: bool = False
    edit_attendance: bool = False
    view_attendance: bool = False
    view_scope: ViewScope = ViewScope.Nothing

    def allows(self, action: Action) -> bool:
        return getattr(self, action.value)


NoCapabilities: t.Final = PermissionSet()

# fmt: off
_Matrix: t.Final[t.Mapping[Role, PermissionSet]] = types.MappingProxyType({
    Role.Teacher: PermissionSet(
        create=True, edit=True, submit=True,
        view_detailed=True, view_summary=True,
        edit_attendance=True, view_attendance=True,
        view_scope=ViewScope.OwnClasses,
    ),
    Role.Principal: PermissionSet(
        edit=True, approve=True, reject=True, override=True, release=True,
        view_detailed=True, view_summary=True,
        edit_attendance=True, view_attendance=True,
        view_scope=ViewScope.School,
    ),
    Role.SchoolOwner: PermissionSet(
        view_summary=True,
        edit_attendance=True, view_attendance=True,
        view_scope=ViewScope.School,
    ),
    Role.FinanceOfficer: PermissionSet(
        view_summary=True,
        view_attendance=True,
        view_scope=ViewScope.School,
    ),
    Role.SystemAdmin: PermissionSet(
        view_summary=True,
        edit_attendance=True, view_attendance=True,
        view_scope=ViewScope.All,
    ),
    Role.Parent: PermissionSet(
        view_detailed=True,
        view_attendance=True,
        view_scope=ViewScope.Children,
    ),
    Role.Unknown: NoCapabilities,
})
# fmt: on


def capabilities_for(role: Role | str | None) -> PermissionSet:
    if not isinstance(role, Role):
        try:
            role = Role(role)
        except (ValueError, TypeError):
            return NoCapabilities
    return _Matrix.get(role, NoCapabilities)
