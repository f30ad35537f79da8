"""Main entry point for the EduFam grading API."""

import logging
import os
import typing as t

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware

import edufam
from edufam.core import BootConfiguration, BootEnvVar, di, EduFamContainer
from edufam.core.config.web import EduFamWebSettings
from edufam.grading.errors import GradingError, ImmutableRecordError, InvalidTransitionError, NotFoundError, \
    OverrideDecidedError, PermissionDeniedError, TenantScopeError, ValidationError
from edufam.lib.json import FastAPIJSONResponse
from edufam.model import DeploymentEnvironment

from .route import router

logger = logging.getLogger(__name__)

# most specific first; the first match decides the status
_StatusCodes: t.Final[tuple[tuple[type[GradingError], int], ...]] = (
    (TenantScopeError, status.HTTP_403_FORBIDDEN),
    (PermissionDeniedError, status.HTTP_403_FORBIDDEN),
    (ImmutableRecordError, status.HTTP_409_CONFLICT),
    (InvalidTransitionError, status.HTTP_409_CONFLICT),
    (OverrideDecidedError, status.HTTP_409_CONFLICT),
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
)


def _grading_error(request: Request, exc: Exception) -> FastAPIJSONResponse:
    assert isinstance(exc, GradingError)
    code = next((c for kind, c in _StatusCodes if isinstance(exc, kind)), status.HTTP_400_BAD_REQUEST)
    body: dict[str, t.Any] = {"detail": str(exc), "error": type(exc).__name__}

    match exc:
        case ImmutableRecordError():
            body["override_path"] = f"/api/grades/{exc.grade_id}/overrides"
        case ValidationError():
            body["issues"] = [issue._asdict() for issue in exc.issues]
        case TenantScopeError():
            body["reason"] = exc.reason.value
        case _:
            pass

    logger.info(
        "request refused",
        extra={"path": request.url.path, "method": request.method, "status": code, "error": type(exc).__name__},
    )
    return FastAPIJSONResponse(body, status_code=code)


@di.inject
def _create_app(
    config: EduFamWebSettings = di.Provide["config.web.edufam", di.as_(EduFamWebSettings)],
    env: DeploymentEnvironment = di.Provide["env"],
) -> FastAPI:
    app = FastAPI(
        title="EduFam",
        description="Grading lifecycle and multi-tenant access engine",
        version=edufam.__version__,
        default_response_class=FastAPIJSONResponse,
    )

    origins = list(config.cors_origins)
    if env is DeploymentEnvironment.Local and not origins:
        origins = ["http://localhost:3000", "http://127.0.0.1:3000"]
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.add_exception_handler(GradingError, _grading_error)
    app.include_router(router)
    return app


def create_app() -> FastAPI:
    """Factory function for uvicorn."""
    boot_vars = os.getenv(BootEnvVar)
    if boot_vars:
        boot_cf = BootConfiguration.model_validate_json(boot_vars)
        ct = EduFamContainer()
        EduFamContainer.boot(ct, **dict(boot_cf))
        ct.wire(modules=["edufam.web.edufam.main", "edufam.web.edufam.dependencies", "edufam.auth.middleware"])
        return _create_app(
            config=EduFamWebSettings(**ct.config.web.edufam()),
            env=boot_cf.env,
        )
    return _create_app()
