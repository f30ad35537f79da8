from __future__ import annotations

import alembic.command
import alembic.config
import sqlalchemy

import edufam.lib.cli as click
from edufam.core import di
from edufam.storage.table import base

AlembicConfig = di.Provide["storage.persistent.alembic_config"]


@click.group("schema")
def schema():
    """Create and migrate the grading database."""


@schema.command()
@di.inject
def create(
    engine: sqlalchemy.Engine = di.Provide["storage.persistent.engine"],
    alembic_conf: alembic.config.Config = AlembicConfig,
):
    """Create all tables on an empty database and stamp it at head.

    Refuses to touch a database that already has any of the tables, since
    stamping would hide migrations it never ran.
    """
    existing = set(sqlalchemy.inspect(engine).get_table_names()) & set(base.metadata.tables)
    if existing:
        raise click.ClickException(f"database already has {', '.join(sorted(existing))}; use `schema upgrade`")
    base.metadata.create_all(engine)
    alembic.command.stamp(alembic_conf, "head")
    click.echo(f"Created {len(base.metadata.tables)} tables")


@schema.command()
@click.argument("revision", default="head")
@click.option("--sql", is_flag=True, default=False, help="Print the SQL instead of running it.")
@di.inject
def upgrade(revision: str, sql: bool, alembic_conf: alembic.config.Config = AlembicConfig):
    """Migrate the database up to REVISION."""
    alembic.command.upgrade(alembic_conf, revision, sql=sql)


@schema.command()
@click.argument("revision")
@click.option("--sql", is_flag=True, default=False, help="Print the SQL instead of running it.")
@di.inject
def downgrade(revision: str, sql: bool, alembic_conf: alembic.config.Config = AlembicConfig):
    """Migrate the database down to REVISION."""
    alembic.command.downgrade(alembic_conf, revision, sql=sql)


@schema.command()
@click.option("-v", "--verbose", is_flag=True, default=False)
@di.inject
def status(verbose: bool, alembic_conf: alembic.config.Config = AlembicConfig):
    """Show the applied revision and the history leading to it."""
    alembic.command.current(alembic_conf, verbose=verbose)
    alembic.command.history(alembic_conf, verbose=verbose, indicate_current=True)


@schema.command()
@click.argument("message")
@di.inject
def revision(message: str, alembic_conf: alembic.config.Config = AlembicConfig):
    """Autogenerate a migration from the difference between tables and database."""
    alembic.command.revision(alembic_conf, message, autogenerate=True)
