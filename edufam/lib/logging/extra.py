import json
import logging
import string
import textwrap
import typing as t

import pygments
from pygments.formatters import Terminal256Formatter
from pygments.lexers.data import JsonLexer  # pyright: ignore [reportMissingTypeStubs]
from pygments.style import Style

from edufam.lib.json import JSONEncoder, JSONValue

from .style import LogStyle

ReservedKeys = frozenset({
    "exception",
    "args",
    "asctime",
    "color_message",
    "created",
    "exc_info",
    "exc_text",
    "filename",
    "funcName",
    "id",
    "levelname",
    "levelno",
    "lineno",
    "module",
    "msecs",
    "message",
    "msg",
    "name",
    "pathname",
    "process",
    "processName",
    "relativeCreated",
    "stack_info",
    "taskName",
    "thread",
    "threadName",
})


def extra_fields(record: logging.LogRecord) -> dict[str, t.Any]:
    """The `extra={...}` a record was logged with."""
    d = record.__dict__
    return {k: d[k] for k in d.keys() - ReservedKeys if not k.startswith("log_color")}


class ExtraFormatter(logging.Formatter):
    """Formats with `base`, then appends the record's extra fields as JSON.

    On a terminal the JSON is highlighted with pygments.
    """

    def __init__(
        self,
        base: type[logging.Formatter],
        format: str | None,
        datefmt: str | None = None,
        indent: bool = True,
        pyg_style: t.Type[Style] = LogStyle,
        style: t.Literal["%", "{", "$"] = "%",
        validate: bool = True,
        *,
        defaults: t.Any = None,
        **kwargs: t.Any,
    ):
        self.base = base(format, datefmt=datefmt, style=style, validate=validate, defaults=defaults, **kwargs)
        self.pyg_style = pyg_style
        self.indent = indent
        self.is_tty: bool | None = None

    def format(self, record: logging.LogRecord) -> str:
        if "color_message" in record.__dict__:
            record.msg = record.__dict__.pop("color_message")

        msg = record.getMessage()
        if "\n" in msg:
            formatted = self.base.format(record)
            idx = formatted.find(msg)
            indent = " " * len([c for c in formatted[:idx] if c in string.printable])
            line, *lines = msg.splitlines()
            body = textwrap.indent("\n".join(lines), prefix=indent)
            record.msg = record.message = f"{line}\n{body}"
            record.args = None
        message = self.base.format(record)

        extra = extra_fields(record)
        if not extra:
            return message

        encoder = JSONEncoder()

        def encode(obj: t.Any) -> JSONValue:
            try:
                return encoder.default(obj)
            except TypeError:
                return repr(obj)

        js = json.dumps(extra, sort_keys=True, indent=(4 if self.indent else None), default=encode)
        do_color = not getattr(self.base, "no_color", False)
        if do_color and self._attached_to_tty():
            hl = pygments.highlight  # pyright: ignore [reportUnknownMemberType, reportUnknownVariableType]
            ps = hl(js, JsonLexer(), Terminal256Formatter[str](style=self.pyg_style), None)
        else:
            ps = js
        return message + " " + ps.strip()

    def _attached_to_tty(self) -> bool:
        if self.is_tty is None:
            # the handler that owns us is not known at construction time
            streams = [
                getattr(h, "stream", None)
                for h in logging.root.handlers + [h for lg in _loggers() for h in lg.handlers]
                if h.formatter is self
            ]
            self.is_tty = any(s is not None and hasattr(s, "isatty") and s.isatty() for s in streams)
        return self.is_tty

    def __getattr__(self, name: str) -> t.Any:
        return getattr(self.base, name)


def _loggers() -> list[logging.Logger]:
    return [lg for lg in logging.root.manager.loggerDict.values() if isinstance(lg, logging.Logger)]
