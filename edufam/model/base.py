import datetime
import typing as t

import pydantic as p


class BaseModel(p.BaseModel):
    """Base of every domain model and settings section.

    Dumps use field aliases by default, so settings round-trip to the keys
    `logging.config.dictConfig` expects (`()`, `class`).
    """

    model_config = p.ConfigDict(populate_by_name=True)

    def model_dump(self, *, by_alias: bool | None = True, **kwargs: t.Any) -> dict[str, t.Any]:
        return super().model_dump(by_alias=by_alias, **kwargs)

    def evolve(self, **changes: t.Any) -> t.Self:
        """Return a validated copy with `changes` applied.

        Unlike `model_copy(update=...)`, the result goes through validation, so
        a transition can never produce a model that could not have been loaded
        from storage.
        """
        data = {name: getattr(self, name) for name in type(self).model_fields}
        data.update(changes)
        return type(self).model_validate(data)


class WithCtime(BaseModel):
    create_time: datetime.datetime | None = None


class WithMtime(BaseModel):
    update_time: datetime.datetime | None = None


class WithTimestamps(WithCtime, WithMtime): ...
