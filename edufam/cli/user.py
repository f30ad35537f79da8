"""CLI commands for managing users."""

from __future__ import annotations

import datetime

from sqlalchemy.orm import Session

import edufam.lib.cli as click
from edufam.auth import JWTManager
from edufam.core import di
from edufam.model import ClassID, Role, StudentID
from edufam.storage import school as school_storage
from edufam.storage import user as user_storage

_Roles = [r.value for r in Role if r is not Role.Unknown]


@click.group("user")
def user():
    """Manage users."""
    ...


@user.command("create")
@click.argument("email")
@click.argument("name")
@click.option("--role", "-r", type=click.Choice(_Roles), required=True, help="User role")
@click.option("--school", "-s", "school_slug", help="Slug of the user's school (not for system admins)")
@di.inject
def user_create(
    email: str,
    name: str,
    role: str,
    school_slug: str | None,
    session: Session = di.Provide["storage.persistent.session"],
) -> None:
    """Create a new user.

    EMAIL is the address the identity provider knows the user by.
    NAME is the user's display name.
    """
    user_role = Role(role)
    if user_role is not Role.SystemAdmin and not school_slug:
        raise click.UsageError(f"a {role} must belong to a school; pass --school")

    with session.begin():
        school_id = None
        if school_slug:
            found = school_storage.get(slug=school_slug, session=session)
            if not found:
                click.echo(f"Error: School '{school_slug}' not found.", err=True)
                raise SystemExit(1)
            school_id = found.school_id

        existing = user_storage.get(email=email, session=session)
        if existing:
            click.echo(f"Error: User with email '{email}' already exists.", err=True)
            raise SystemExit(1)

        new_user = user_storage.create(email=email, name=name, role=user_role, school_id=school_id, session=session)

    click.echo(f"Created user: {new_user.name}")
    click.echo(f"  ID: {new_user.user_id}")
    click.echo(f"  Email: {new_user.email}")
    click.echo(f"  Role: {new_user.role.value}")
    if school_slug:
        click.echo(f"  School: {school_slug}")


@user.command("list")
@click.option("--school", "-s", "school_slug", help="Filter by school slug")
@click.option("--role", "-r", type=click.Choice(_Roles), help="Filter by role")
@di.inject
def user_list(
    school_slug: str | None,
    role: str | None,
    session: Session = di.Provide["storage.persistent.session"],
) -> None:
    """List users, optionally filtered by school or role."""
    with session.begin():
        school_id = None
        if school_slug:
            found = school_storage.get(slug=school_slug, session=session)
            if not found:
                click.echo(f"Error: School '{school_slug}' not found.", err=True)
                raise SystemExit(1)
            school_id = found.school_id
        users = user_storage.find(school_id=school_id, role=Role(role) if role else None, session=session)

    if not users:
        click.echo("No users found.")
        return

    click.echo(f"{'ID':<30} {'Name':<25} {'Email':<30} {'Role':<15}")
    click.echo("-" * 100)
    for u in users:
        click.echo(f"{str(u.user_id):<30} {u.name:<25} {u.email:<30} {u.role.value:<15}")


@user.command("token")
@click.argument("email")
@click.option("--class", "-c", "class_ids", type=click.KeyParamType(ClassID), multiple=True, help="Teacher's class")
@click.option("--child", "student_ids", type=click.KeyParamType(StudentID), multiple=True, help="Parent's child")
@click.option("--minutes", "-m", type=click.IntRange(min=1), default=60, help="Token lifetime")
@di.inject
def user_token(
    email: str,
    class_ids: tuple[ClassID, ...],
    student_ids: tuple[StudentID, ...],
    minutes: int,
    session: Session = di.Provide["storage.persistent.session"],
    jwt_manager: JWTManager = di.Provide["auth.jwt_manager"],
) -> None:
    """Issue a bearer token for EMAIL, for local development.

    In production tokens come from the identity provider.
    """
    with session.begin():
        found = user_storage.get(email=email, session=session)
    if not found:
        click.echo(f"Error: User '{email}' not found.", err=True)
        raise SystemExit(1)

    token = jwt_manager.create_access_token(
        user_id=found.user_id,
        role=found.role,
        school_id=found.school_id,
        class_ids=class_ids,
        student_ids=student_ids,
        expires_delta=datetime.timedelta(minutes=minutes),
    )
    click.echo(token)
