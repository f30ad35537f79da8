from __future__ import annotations

import typing as t


class Sentinel(object):
    """Singleton marker values, distinct from None and falsy."""

    _instances: t.ClassVar[dict[type, Sentinel]] = {}

    def __new__(cls) -> t.Self:
        if cls not in Sentinel._instances:
            Sentinel._instances[cls] = super().__new__(cls)
        return t.cast(t.Self, Sentinel._instances[cls])

    def __bool__(self) -> bool:
        return False

    def __repr__(self):
        return f"<{type(self).__name__}>"


class NotReady(Sentinel):
    """A container value that only exists once boot has run."""


class NotSet(Sentinel):
    """An update argument that was not given, where None is a meaningful value."""
