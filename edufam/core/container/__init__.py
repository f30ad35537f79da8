__all__ = [
    "AuthContainer",
    "BootConfiguration",
    "BootEnvVar",
    "EduFamContainer",
    "StorageContainer",
]

from .auth import AuthContainer
from .edufam import BootConfiguration, BootEnvVar, EduFamContainer
from .storage import StorageContainer
