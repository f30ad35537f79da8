import datetime
import logging
import typing as t

from edufam.lib.json import JSONEncoder as BaseJSONEncoder
from edufam.lib.json import JSONValue

from .extra import extra_fields


def encode_bytes(obj: bytes) -> str:
    lorig = len(obj)
    h = obj[:64].hex()
    s = " ".join([h[i : i + 2] for i in range(0, 32, 2)])

    if lorig > 64:
        s += " ..."
    return f"[{lorig:5}] {s.upper()}"


class JSONEncoder(BaseJSONEncoder):
    def get_encoders(self) -> dict[type, t.Callable[[t.Any], JSONValue]]:
        return {
            **super().get_encoders(),
            bytes: encode_bytes,
        }

    def default(self, o: t.Any) -> JSONValue:
        try:
            return super().default(o)
        except TypeError:
            return repr(o)


class JSONFormatter(logging.Formatter):
    """One JSON object per record, for log shippers.

    The record's `extra={...}` fields are merged into the top level.
    """

    def format(self, record: logging.LogRecord) -> str:
        doc: dict[str, t.Any] = {
            "time": datetime.datetime.fromtimestamp(record.created, datetime.UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **extra_fields(record),
        }
        if record.exc_info:
            doc["exception"] = self.formatException(record.exc_info)
        return JSONEncoder(sort_keys=True).encode(doc)
