from __future__ import annotations

import typing as t

from dependency_injector.containers import DeclarativeContainer
from dependency_injector.providers import Configuration, Provider, Singleton

from edufam.auth.jwt import JWTManager

from ..config.secrets import AuthSecrets
from ..config.web import AuthSettings


def provide_jwt_manager(config: dict[str, t.Any], secrets: dict[str, t.Any] | None) -> JWTManager:
    """A verifier for the identity provider's tokens.

    Fails at first use rather than at boot, so commands that never touch tokens
    run without `auth.jwt` configured.
    """
    if not secrets:
        raise RuntimeError("no token signing key: set auth.jwt in secrets.yaml or EDUFAM_AUTH__JWT")
    key = AuthSecrets(secrets).jwt
    settings = AuthSettings(config)
    return JWTManager(
        secret_key=key,
        algorithm=settings.jwt_algorithm,
        issuer=settings.issuer,
        audience=settings.audience,
        leeway_seconds=settings.leeway_seconds,
    )


class AuthContainer(DeclarativeContainer):
    config: Configuration = Configuration()
    secrets: Configuration = Configuration()

    jwt_manager: Provider[JWTManager] = Singleton(
        provide_jwt_manager,
        config=config,
        secrets=secrets,
    )
