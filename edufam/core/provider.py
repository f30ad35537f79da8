import datetime
import inspect
import logging
import logging.config
import typing as t

TimestampProvider = t.Callable[..., datetime.datetime]

TRACE: t.Final = 5


class TraceLogLevelLogger(logging.Logger):
    """Logger with a `trace()` method below DEBUG, for per-row detail."""

    def trace(self, message: str, *args: t.Any, **kwargs: t.Any) -> None:
        if self.isEnabledFor(TRACE):
            self._log(TRACE, message, args, **kwargs)


class LoggingProvider(object):
    """Applies the `logging` settings section with dictConfig and hands out loggers.

    Booted as a container resource, so configuration happens once, before the
    first logger is requested.
    """

    def __init__(self, config: dict[str, t.Any], debug: bool):
        self.install_trace_level()
        logging.config.dictConfig(config)
        if debug:
            self.capture_warnings(True)

    @staticmethod
    def install_trace_level() -> None:
        # must run before any logger is created, or it keeps the stock class
        logging.setLoggerClass(TraceLogLevelLogger)
        logging.addLevelName(TRACE, "TRACE")

    @staticmethod
    def get_logger(name: str | None = None) -> TraceLogLevelLogger:
        """The named logger, or the one of the calling module."""
        if name is None:
            caller = inspect.stack()[1]
            name = caller.frame.f_globals["__name__"]
        return t.cast(TraceLogLevelLogger, logging.getLogger(name))

    @staticmethod
    def capture_warnings(capture: bool) -> None:
        logging.captureWarnings(capture)
