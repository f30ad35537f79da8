"""Staff, parents and platform admins.

Credentials live with the identity provider; only the profile and the school
membership are kept here. Emails are stored lower-cased, which is how the
identity provider matches them.
"""

from __future__ import annotations

import typing as t

import sqlalchemy as sqla

from edufam.core import di
from edufam.lib import NotSet
from edufam.model import Role, SchoolID, User, UserID

from . import Session
from .table import users


def _check_membership(role: Role, school_id: SchoolID | None) -> None:
    # system admins work across schools, everyone else inside exactly one
    if role is Role.SystemAdmin:
        if school_id is not None:
            raise ValueError("a system_admin cannot belong to a school")
    elif school_id is None:
        raise ValueError(f"a {role.value} must belong to a school")


def get(
    *,
    user_id: UserID | None = None,
    email: str | None = None,
    session: Session = di.Provide["storage.persistent.session"],
) -> User | None:
    """Look a user up by exactly one of `user_id` or `email`."""
    if (user_id is None) == (email is None):
        raise ValueError("exactly one of user_id or email must be given")

    stmt = sqla.select(users.__table__)
    if user_id is not None:
        stmt = stmt.where(users.user_id == user_id)
    else:
        stmt = stmt.where(users.email == t.cast(str, email).lower())
    row = session.execute(stmt).mappings().one_or_none()
    return User(**row) if row else None


def find(
    *,
    school_id: SchoolID | None = None,
    role: Role | None = None,
    session: Session = di.Provide["storage.persistent.session"],
) -> tuple[User, ...]:
    stmt = sqla.select(users.__table__).order_by(users.name, users.email)
    if school_id is not None:
        stmt = stmt.where(users.school_id == school_id)
    if role is not None:
        stmt = stmt.where(users.role == role)
    return tuple(User(**row) for row in session.execute(stmt).mappings())


def create(
    *,
    email: str,
    name: str,
    role: Role,
    school_id: SchoolID | None = None,
    session: Session = di.Provide["storage.persistent.session"],
) -> User:
    _check_membership(role, school_id)
    user_id = UserID()
    session.add(users(user_id=user_id, email=email.lower(), name=name, role=role, school_id=school_id))
    session.flush()
    return t.cast(User, get(user_id=user_id, session=session))


def update(
    user_id: UserID,
    *,
    email: str | NotSet = NotSet(),
    name: str | NotSet = NotSet(),
    role: Role | NotSet = NotSet(),
    school_id: SchoolID | None | NotSet = NotSet(),
    session: Session = di.Provide["storage.persistent.session"],
) -> User:
    """Change a user's profile or membership; `school_id=None` detaches a system admin.

    Raises:
        KeyError: no such user
        ValueError: the result would break the one-school-per-user rule
    """
    current = get(user_id=user_id, session=session)
    if current is None:
        raise KeyError(f"User {user_id} not found")

    values: dict[str, t.Any] = {}
    if not isinstance(email, NotSet):
        values["email"] = email.lower()
    if not isinstance(name, NotSet):
        values["name"] = name
    if not isinstance(role, NotSet):
        values["role"] = role
    if not isinstance(school_id, NotSet):
        values["school_id"] = school_id
    if not values:
        return current

    _check_membership(values.get("role", current.role), values.get("school_id", current.school_id))
    session.execute(sqla.update(users).where(users.user_id == user_id).values(**values))
    session.flush()
    return t.cast(User, get(user_id=user_id, session=session))
