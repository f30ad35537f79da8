"""Column types behind `table.base.type_annotation_map`."""

import datetime
import enum
import typing as t

from sqlalchemy.engine import Dialect
from sqlalchemy.sql.type_api import TypeDecorator
from sqlalchemy.types import DateTime, Enum, String

from edufam.model.id import KeyLength, ShortUUIDKey


class ShortUUIDKeyType(TypeDecorator[ShortUUIDKey]):
    """Stores only the key part of a prefixed ID; the prefix is implied by the column."""

    impl = String
    cache_ok = True

    def __init__(self, key_type: type[ShortUUIDKey]):
        self.key_type = key_type
        super().__init__(KeyLength)

    def process_bind_param(self, value: ShortUUIDKey | str | None, dialect: Dialect) -> str | None:
        if value is None:
            return None
        # raises ValueError for an ID of another entity, e.g. a SchoolID bound to a class_id column
        return self.key_type(value).key

    def process_result_value(self, value: str | None, dialect: Dialect) -> ShortUUIDKey | None:
        return None if value is None else self.key_type(key=value)


class UTCDateTime(TypeDecorator[datetime.datetime]):
    """Timezone-aware UTC datetimes on every backend.

    PostgreSQL hands back aware values already; SQLite has no timezone support
    and returns naive ones, which are UTC by construction here.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime.datetime | None, dialect: Dialect) -> datetime.datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            raise ValueError(f"naive datetime {value.isoformat()} cannot be stored")
        value = value.astimezone(datetime.UTC)
        return value.replace(tzinfo=None) if dialect.name == "sqlite" else value

    def process_result_value(self, value: datetime.datetime | None, dialect: Dialect) -> datetime.datetime | None:
        if value is None or value.tzinfo is not None:
            return value
        return value.replace(tzinfo=datetime.UTC)


class ValueEnumMapper(object):
    """Maps enum-annotated columns to VARCHAR holding the member's value.

    Statuses and roles are stored as plain strings so that adding a member
    never requires altering a database type.
    """

    @staticmethod
    def values_callable(en: type[enum.Enum]) -> list[str]:
        return [str(e.value) for e in en]

    def _resolve_for_python_type(
        self, python_type: type[t.Any], matched_on: t.Any, matched_on_flattened: t.Any
    ) -> Enum | None:
        return Enum(
            python_type,
            values_callable=self.values_callable,
            native_enum=False,
            create_constraint=False,
            length=32,
        )
