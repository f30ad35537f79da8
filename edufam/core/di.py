"""The slice of dependency_injector that application code uses.

Functions take their collaborators as `di.Provide["dotted.provider.path"]`
defaults and are wrapped with `di.inject`; the container wires the modules at
boot. Tests pass collaborators explicitly instead.
"""

from __future__ import annotations

__all__ = [
    "NotReady",
    "Provide",
    "ProviderOf",
    "as_",
    "inject",
]

import typing as t

import dependency_injector.wiring as wiring
from dependency_injector.wiring import Provide, TypeModifier
from dependency_injector.wiring import Provider as ProviderOf

from edufam.lib.sentinel import NotReady

P = t.ParamSpec("P")
TReturn = t.TypeVar("TReturn")
TAs = t.TypeVar("TAs")


def inject(fn: t.Callable[P, TReturn]) -> t.Callable[P, TReturn]:
    return t.cast(t.Callable[P, TReturn], wiring.inject(fn))


def as_(type_: t.Type[TAs]) -> TypeModifier:
    """Build the injected value as `type_`, e.g. a settings model from a config section."""
    return TypeModifier(type_)
