import typing as t

import pydantic as p
from pydantic_settings import BaseSettings as PydanticBaseSettings
from pydantic_settings import PydanticBaseSettingsSource

from edufam.model import BaseModel, DeploymentEnvironment

from .base import BaseSettings
from .grading import GradingSettings
from .logging import LoggingSettings
from .source import OverrideSettingsSource, YAMLCascadingSettingsSource
from .storage import StorageSettings
from .web import WebSettings

SettingsField = p.Field(default=..., validate_default=True)


class Settings(BaseSettings, BaseModel):  # pyright: ignore [reportIncompatibleVariableOverride]
    """All configuration sections, one YAML file each.

    Precedence, highest first: constructor arguments, `-o section.key=value`
    overrides, `config/env.d/<env>/<section>.yaml`, `config/<section>.yaml`.
    """

    root: p.FileUrl
    env: DeploymentEnvironment
    override: tuple[str, ...]

    logging: LoggingSettings = SettingsField
    storage: StorageSettings = SettingsField
    web: WebSettings = SettingsField
    grading: GradingSettings = GradingSettings()

    Sections: t.ClassVar[frozenset[str]] = frozenset({"logging", "storage", "web", "grading"})

    @p.field_validator("override")
    @classmethod
    def check_override_sections(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        # an override for an unknown section would otherwise be dropped silently
        for o in v:
            section = o.split("=", 1)[0].split(".", 1)[0].strip()
            if section not in cls.Sections:
                raise ValueError(f"override {o!r} names an unknown section, expected one of {sorted(cls.Sections)}")
        return v

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[PydanticBaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return init_settings, OverrideSettingsSource(settings_cls), YAMLCascadingSettingsSource(settings_cls)
