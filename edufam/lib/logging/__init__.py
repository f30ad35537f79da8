__all__ = [
    "ExtraFormatter",
    "JSONFormatter",
    "LogStyle",
]

from .extra import ExtraFormatter
from .json import JSONFormatter
from .style import LogStyle
