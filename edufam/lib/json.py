"""JSON for the types grading data is made of.

Used in three places: the engine's JSON columns (audit old/new values), API
responses, and the extra fields of log records.
"""

from __future__ import annotations

import base64
import datetime
import enum
import json as pyjson
import typing as t

import fastapi
import fastapi.encoders
import pydantic as p
import starlette.background

JSONPrimitive = str | int | float | bool | None
JSONValue = JSONPrimitive | list["JSONValue"] | dict[str, "JSONValue"]


def encode_bytes(obj: bytes) -> str:
    return base64.b64encode(obj).decode("utf8")


def encode_set(obj: set[t.Any] | frozenset[t.Any]) -> list[t.Any]:
    # sorted, so that audit entries and logs of the same set compare equal
    return sorted(obj, key=str)


def encode_temporal(obj: datetime.datetime | datetime.date) -> str:
    return obj.isoformat()


def encode_enum(obj: enum.Enum) -> t.Any:
    return obj.value


def encode_pydantic(obj: p.BaseModel) -> dict[str, JSONValue]:
    return obj.model_dump(mode="json")


Encoders: t.Final[t.Mapping[type, t.Callable[[t.Any], JSONValue]]] = {
    bytes: encode_bytes,
    datetime.date: encode_temporal,
    datetime.datetime: encode_temporal,
    enum.Enum: encode_enum,
    frozenset: encode_set,
    p.BaseModel: encode_pydantic,
    set: encode_set,
}


class JSONEncoder(pyjson.JSONEncoder):
    """`json.JSONEncoder` that knows `Encoders`; subclasses extend `get_encoders`."""

    def get_encoders(self) -> dict[type, t.Callable[[t.Any], JSONValue]]:
        return dict(Encoders)

    def default(self, o: t.Any) -> JSONValue:
        for tp, encode in self.get_encoders().items():
            if isinstance(o, tp):
                return encode(o)
        return super().default(o)


def dumps(obj: t.Any, *, cls: type[pyjson.JSONEncoder] = JSONEncoder, **kw: t.Any) -> str:
    return pyjson.dumps(obj, cls=cls, **kw)


def loads(s: str | bytes | bytearray, **kw: t.Any) -> t.Any:
    return pyjson.loads(s, **kw)


def jsonable_encoder(obj: t.Any) -> JSONValue:
    if isinstance(obj, p.BaseModel):
        obj = encode_pydantic(obj)
    return fastapi.encoders.jsonable_encoder(obj, custom_encoder=dict(Encoders))


class FastAPIJSONResponse(fastapi.responses.JSONResponse):
    """Compact JSON responses; NaN and infinite scores are refused rather than sent."""

    def __init__(
        self,
        content: t.Any,
        status_code: int = 200,
        headers: t.Mapping[str, str] | None = None,
        media_type: str | None = None,
        background: starlette.background.BackgroundTask | None = None,
    ):
        super().__init__(
            jsonable_encoder(content),
            status_code=status_code,
            headers=headers,
            media_type=media_type,
            background=background,
        )

    def render(self, content: t.Any) -> bytes:
        return dumps(content, ensure_ascii=False, allow_nan=False, separators=(",", ":")).encode("utf-8")
