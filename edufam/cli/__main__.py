"""`edufam` command line entry point.

Subcommands live in sibling modules and are imported only when invoked, so
`edufam --help` does not pull in the web or storage stacks.
"""

from __future__ import annotations

import importlib
import sys
import threading
import traceback
import types
import typing as t
from pathlib import Path

import pydantic as p

import edufam
import edufam.lib.cli as click
from edufam.core import EduFamContainer
from edufam.model import DeploymentEnvironment

# subcommand module -> one line summary for --help
Commands: t.Final[t.Mapping[str, str]] = {
    "schema": "Create and migrate the database schema.",
    "school": "Register and inspect schools.",
    "user": "Manage users and issue development tokens.",
    "web": "Run the grading API.",
}

_booted = False
_loaded: list[types.ModuleType] = []


class LazyCommandGroup(click.Group):
    def list_commands(self, ctx: click.Context) -> list[str]:
        return sorted(Commands)

    def get_command(self, ctx: click.Context, cmd_name: str) -> click.Command | None:
        if cmd_name not in Commands:
            return None
        module = importlib.import_module(f"{__package__}.{cmd_name}")
        # loaded before boot, so the container wires their di.Provide defaults
        _loaded.append(module)
        command: click.Command = getattr(module, cmd_name)
        command.short_help = command.short_help or Commands[cmd_name]
        return command


@click.group(cls=LazyCommandGroup)
@click.version_option(edufam.__version__, prog_name="edufam")
@click.option(
    "-E",
    "--env",
    default=DeploymentEnvironment.Local,
    type=click.EnumType(DeploymentEnvironment),
    help="Deployment environment; selects config/env.d/<env>/.",
)
@click.option(
    "-c",
    "--config-root",
    default=Path(edufam.__file__).resolve().parents[1] / "config",
    type=click.URIParamType(dir_ok=True),
)
@click.option("-s", "--secrets-path", default=None, type=click.URIParamType(), help="Directory holding secrets.yaml.")
@click.option("-o", "--override", multiple=True, help="Override a setting: -o grading.bulk_validation=skip_invalid")
@click.option("-D", "--debug", is_flag=True, default=False, help="Print tracebacks and capture warnings.")
@click.pass_obj
def main(
    ct: EduFamContainer,
    env: DeploymentEnvironment,
    config_root: p.FileUrl,
    secrets_path: p.AnyUrl | None,
    override: tuple[str, ...],
    debug: bool,
):
    global _booted
    EduFamContainer.boot(
        ct,
        debug=debug,
        env=env,
        config_root=config_root,
        secrets_path=secrets_path,
        override=override,
        wiring=tuple(_loaded),
    )
    _booted = True


def execute_command(*argv: str) -> None:
    threading.current_thread().name = "edufam-cli"
    args = list(argv or sys.argv)
    prog = Path(args[0]).name
    container = EduFamContainer()

    try:
        with main.make_context(prog, args=args[1:]) as ctx:
            ctx.obj = container
            sys.exit(t.cast(int, main.invoke(ctx)))
    except (EOFError, KeyboardInterrupt, click.Abort):
        click.echo("Aborted!", file=sys.stderr)
        sys.exit(1)
    except click.exceptions.Exit as e:
        sys.exit(e.exit_code)
    except click.ClickException as e:
        e.show()
        sys.exit(e.exit_code)
    except Exception as e:
        click.echo(click.style("ERROR ", fg="red") + str(e), file=sys.stderr)
        # before boot the container cannot say whether --debug was given
        if (container.debug() if _booted else "-D" in args or "--debug" in args):
            traceback.print_exc()
        sys.exit(1)
    finally:
        container.shutdown_resources()


if __name__ == "__main__":
    execute_command(*sys.argv)
