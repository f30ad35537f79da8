"""Prefixed identifiers.

Every entity is keyed by a 22 character shortuuid behind a four letter type
prefix, e.g. `grad$mhvXdrZT4jP5T8vBxuvm75`. The prefix makes IDs of different
entities impossible to mix up in logs, URLs and tokens; the database stores
only the key part.
"""

from __future__ import annotations

import re
import typing as t

import pydantic as p
import pydantic_core.core_schema as core_schema
import shortuuid

KeyLength: t.Final = 22


class ShortUUIDKey(str):
    prefix: t.ClassVar[str]
    separator: t.ClassVar[str]
    pattern: t.ClassVar[re.Pattern[str]]

    def __init_subclass__(cls, prefix: str, separator: str = "$", **kwargs: t.Any):
        super().__init_subclass__(**kwargs)
        if len(prefix) != 4 or len(separator) != 1:
            raise TypeError(f"{cls.__name__}: prefix must have 4 characters and separator 1")
        cls.prefix = prefix
        cls.separator = separator
        alphabet = re.escape(shortuuid.get_alphabet())
        cls.pattern = re.compile(f"^{re.escape(prefix + separator)}[{alphabet}]{{{KeyLength}}}$")

    def __new__(cls, s: str | None = None, /, key: str | None = None) -> t.Self:
        """Parse a prefixed ID `s`, wrap a bare `key` loaded from storage, or mint a new ID.

        Raises:
            ValueError: if `s` is not a well-formed ID of this type
        """
        if key is not None:
            # trusted: comes from our own columns
            return super().__new__(cls, f"{cls.prefix}{cls.separator}{key}")
        if s is None:
            return super().__new__(cls, f"{cls.prefix}{cls.separator}{shortuuid.uuid()}")
        if not cls.pattern.match(s):
            raise ValueError(f"invalid {cls.__name__}: expected {cls.prefix}{cls.separator} and {KeyLength} characters")
        return super().__new__(cls, s)

    @property
    def key(self) -> str:
        return self[len(self.prefix) + len(self.separator) :]

    def __hash__(self) -> int:
        return str.__hash__(self)

    def __str__(self) -> str:
        return str.__str__(self)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.key}>"

    @classmethod
    def __get_pydantic_core_schema__(cls, src: t.Any, handler: p.GetCoreSchemaHandler) -> core_schema.CoreSchema:
        from_str = core_schema.no_info_after_validator_function(cls, core_schema.str_schema())
        return core_schema.json_or_python_schema(
            json_schema=from_str,
            python_schema=core_schema.union_schema([core_schema.is_instance_schema(cls), from_str]),
            serialization=core_schema.plain_serializer_function_ser_schema(str),
        )

    @classmethod
    def __get_pydantic_json_schema__(
        cls, schema: core_schema.CoreSchema, handler: p.GetJsonSchemaHandler
    ) -> p.json_schema.JsonSchemaValue:
        return {"type": "string", "pattern": cls.pattern.pattern}


# fmt: off
class SchoolID(ShortUUIDKey, prefix="schl"): ...
class UserID(ShortUUIDKey, prefix="user"): ...
class StudentID(ShortUUIDKey, prefix="stdt"): ...
class SubjectID(ShortUUIDKey, prefix="subj"): ...
class ClassID(ShortUUIDKey, prefix="clss"): ...
class GradeID(ShortUUIDKey, prefix="grad"): ...
class SubmissionID(ShortUUIDKey, prefix="subm"): ...
class OverrideID(ShortUUIDKey, prefix="ovrd"): ...
class AuditEntryID(ShortUUIDKey, prefix="audt"): ...
# fmt: on
