"""CLI commands for managing schools."""

from __future__ import annotations

from sqlalchemy.orm import Session

import edufam.lib.cli as click
from edufam.core import di
from edufam.storage import school as school_storage
from edufam.storage import user as user_storage


@click.group("school")
def school():
    """Manage schools."""
    ...


@school.command("create")
@click.argument("name")
@click.argument("slug")
@di.inject
def school_create(
    name: str,
    slug: str,
    session: Session = di.Provide["storage.persistent.session"],
) -> None:
    """Create a new school.

    NAME is the display name for the school.
    SLUG is a URL-friendly identifier (e.g., 'st-marys-nairobi').
    """
    with session.begin():
        existing = school_storage.get(slug=slug, session=session)
        if existing:
            click.echo(f"Error: School with slug '{slug}' already exists.", err=True)
            raise SystemExit(1)

        created = school_storage.create(name=name, slug=slug, session=session)

    click.echo(f"Created school: {created.name}")
    click.echo(f"  ID: {created.school_id}")
    click.echo(f"  Slug: {created.slug}")


@school.command("list")
@di.inject
def school_list(session: Session = di.Provide["storage.persistent.session"]) -> None:
    """List all schools."""
    with session.begin():
        schools = school_storage.find(session=session)

    if not schools:
        click.echo("No schools found.")
        return

    click.echo(f"{'ID':<30} {'Slug':<25} {'Name':<30}")
    click.echo("-" * 85)
    for s in schools:
        click.echo(f"{str(s.school_id):<30} {s.slug:<25} {s.name:<30}")


@school.command("show")
@click.argument("slug")
@di.inject
def school_show(
    slug: str,
    session: Session = di.Provide["storage.persistent.session"],
) -> None:
    """Show a school and its staff."""
    with session.begin():
        found = school_storage.get(slug=slug, session=session)
        if not found:
            click.echo(f"Error: School '{slug}' not found.", err=True)
            raise SystemExit(1)
        members = user_storage.find(school_id=found.school_id, session=session)

    click.echo(f"School: {found.name}")
    click.echo(f"  ID: {found.school_id}")
    click.echo(f"  Slug: {found.slug}")
    click.echo(f"  Created: {found.create_time}")
    if members:
        click.echo(f"\nUsers ({len(members)}):")
        for u in members:
            click.echo(f"  - {u.name} ({u.email}) [{u.role.value}]")
    else:
        click.echo("\nNo users.")
