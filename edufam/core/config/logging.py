"""Schema of `config/logging.yaml`.

The model dumps back to a `logging.config.dictConfig` dictionary, which is why
field aliases such as `()` and `class` mirror dictConfig keys exactly.
"""

import pathlib
import typing as t

import pydantic as p

from .base import BaseSettings

# logging's own levels plus TRACE from edufam.core.provider
LogLevel = t.Literal["NOTSET", "TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class ConsoleFormatterSettings(BaseSettings):
    """colorlog output with `extra={...}` fields appended, for terminals."""

    factory: t.Literal["edufam.lib.logging.ExtraFormatter"] = p.Field(alias="()")
    base: str
    format: str | None = None
    datefmt: str | None = None
    log_colors: dict[str, str] = {}
    no_color: bool = False
    indent: bool | None = None


class JSONFormatterSettings(BaseSettings):
    """One JSON object per record, for log shipping."""

    factory: t.Literal["edufam.lib.logging.JSONFormatter"] = p.Field(alias="()")


FormatterSettings = t.Annotated[ConsoleFormatterSettings | JSONFormatterSettings, p.Field(discriminator="factory")]


class StreamHandlerSettings(BaseSettings):
    handler: t.Literal["colorlog.StreamHandler"] = p.Field(alias="class")
    formatter: str
    level: LogLevel = "NOTSET"
    stream: str = "ext://sys.stderr"


class FileHandlerSettings(BaseSettings):
    handler: t.Literal["logging.handlers.WatchedFileHandler"] = p.Field(alias="class")
    formatter: str
    level: LogLevel = "NOTSET"
    filename: pathlib.Path


HandlerSettings = t.Annotated[StreamHandlerSettings | FileHandlerSettings, p.Field(discriminator="handler")]


class LoggerSettings(BaseSettings):
    level: LogLevel = "NOTSET"
    propagate: bool = True
    handlers: list[str] | None = None


class RootLoggerSettings(BaseSettings):
    handlers: list[str]
    level: LogLevel = "WARNING"


class LoggingSettings(BaseSettings):
    version: t.Literal[1]
    disable_existing_loggers: bool = False
    formatters: dict[str, FormatterSettings] = {}
    handlers: dict[str, HandlerSettings]
    root: RootLoggerSettings
    loggers: dict[str, LoggerSettings] = {}

    @p.model_validator(mode="after")
    def check_references(self) -> t.Self:
        """Every handler must name a known formatter, every logger a known handler."""
        for name, handler in self.handlers.items():
            if handler.formatter not in self.formatters:
                raise ValueError(f"handler {name!r} uses undefined formatter {handler.formatter!r}")
        used = set(self.root.handlers)
        for logger in self.loggers.values():
            used.update(logger.handlers or ())
        if missing := used - set(self.handlers):
            raise ValueError(f"undefined handlers: {', '.join(sorted(missing))}")
        return self
