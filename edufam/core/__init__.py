__all__ = [
    "BootConfiguration",
    "BootEnvVar",
    "di",
    "EduFamContainer",
    "LoggingProvider",
    "Settings",
    "Secrets",
    "TimestampProvider",
]


from . import di
from .config import Secrets, Settings
from .container import BootConfiguration, BootEnvVar, EduFamContainer
from .provider import LoggingProvider, TimestampProvider
