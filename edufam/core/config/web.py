from __future__ import annotations

import typing as t

import annotated_types as ant
import pydantic as p

from .base import BaseSettings

Port = t.Annotated[int, ant.Gt(0), ant.Le(65535)]


class ServeSettings(BaseSettings):
    host: p.IPvAnyAddress
    port: Port
    workers: t.Annotated[int, ant.Ge(1)] = 1


class AuthSettings(BaseSettings):
    """How bearer tokens from the identity provider are verified.

    The signing key is not here; it is `auth.jwt` in secrets.yaml.
    """

    jwt_algorithm: t.Literal["HS256", "HS384", "HS512"] = "HS256"
    issuer: str | None = None
    audience: str | None = None
    # clock skew tolerated on exp/iat
    leeway_seconds: t.Annotated[int, ant.Ge(0)] = 0


class EduFamWebSettings(BaseSettings):
    backend: ServeSettings
    auth: AuthSettings = AuthSettings()
    cors_origins: list[str] = []


class WebSettings(BaseSettings):
    edufam: EduFamWebSettings
