import os

import uvicorn

import edufam.lib.cli as click
from edufam.core import BootConfiguration, BootEnvVar, di
from edufam.core.config import EduFamWebSettings, LoggingSettings

AppFactory = "edufam.web.edufam.main:create_app"


@click.group()
def web():
    """Run the grading API."""


@web.command(name="serve")
@click.option("-w", "--workers", type=click.IntRange(min=1), default=None, help="Defaults to web.edufam.backend.")
@click.option("--reload", is_flag=True, default=False, help="Restart on source changes; implies one worker.")
@click.option("--host", default=None, help="Bind address, overriding web.edufam.backend.host.")
@click.option("--port", type=click.IntRange(min=1, max=65535), default=None)
@di.inject
def serve(
    workers: int | None,
    reload: bool,
    host: str | None,
    port: int | None,
    boot_cf: BootConfiguration = di.Provide["_boot_config"],
    logging_cf: LoggingSettings = di.Provide["config.logging", di.as_(LoggingSettings)],  # noqa: B008
    web_cf: EduFamWebSettings = di.Provide["config.web.edufam", di.as_(EduFamWebSettings)],  # noqa: B008
):
    """Serve the grading API with uvicorn.

    Workers are separate processes, so the boot configuration travels to them
    through the environment and each one boots its own container.
    """
    backend = web_cf.backend
    if reload and (workers or 1) > 1:
        raise click.UsageError("--reload cannot be combined with more than one worker")

    os.environ[BootEnvVar] = boot_cf.model_dump_json()
    uvicorn.run(
        AppFactory,
        factory=True,
        host=host or str(backend.host),
        port=port or backend.port,
        workers=None if reload else workers or backend.workers,
        reload=reload,
        log_config=logging_cf.model_dump(),
    )
